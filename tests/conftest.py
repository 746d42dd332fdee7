from __future__ import annotations

import pytest

from vnuma_rightsizer.models import (
    ClusterContext,
    ClusterRecord,
    EvaluationContext,
    HostRecord,
    PowerPolicy,
    VmRecord,
)


def _host(**overrides) -> HostRecord:
    values = {
        "name": "esx01",
        "id": "host-1",
        "memory_gb": 256.0,
        "sockets": 2,
        "cores_per_socket": 16,
        "hyperthreading_active": True,
        "power_policy": PowerPolicy.HIGH_PERFORMANCE,
        "vcenter": "vcenter.lab.local",
    }
    values.update(overrides)
    return HostRecord(**values)


def _vm(**overrides) -> VmRecord:
    values = {
        "name": "vm01",
        "memory_gb": 16.0,
        "sockets": 1,
        "cores_per_socket": 4,
        "hardware_version": "vmx-19",
        "host_id": "host-1",
    }
    values.update(overrides)
    return VmRecord(**values)


@pytest.fixture
def make_host():
    return _host


@pytest.fixture
def make_vm():
    return _vm


@pytest.fixture
def make_cluster():
    def _cluster(**overrides) -> ClusterRecord:
        values = {"name": "prod-cluster", "id": "domain-c1", "host_ids": []}
        values.update(overrides)
        return ClusterRecord(**values)

    return _cluster


@pytest.fixture
def make_context():
    def _context(vm=None, host=None, cluster=None) -> EvaluationContext:
        return EvaluationContext(
            vm=vm or _vm(),
            host=host or _host(),
            cluster=cluster or ClusterContext.unclustered(),
        )

    return _context
