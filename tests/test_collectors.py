from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest
from pyVmomi import vim

from vnuma_rightsizer.collectors import CollectorContext, collect_inventory
from vnuma_rightsizer.collectors import clusters as cluster_collector
from vnuma_rightsizer.collectors import hosts as host_collector
from vnuma_rightsizer.collectors import vms as vm_collector
from vnuma_rightsizer.collectors.hosts import build_host_record, power_policy_from
from vnuma_rightsizer.collectors.options import read_int_option
from vnuma_rightsizer.collectors.vms import build_vm_record
from vnuma_rightsizer.diagnostics import Diagnostics
from vnuma_rightsizer.models import PowerPolicy


def _option(key, value):
    return SimpleNamespace(key=key, value=value)


def _vm_props(**overrides):
    props = {
        "name": "sql01",
        "config.template": False,
        "config.version": "vmx-17",
        "config.hardware.numCPU": 8,
        "config.hardware.numCoresPerSocket": 4,
        "config.hardware.memoryMB": 65536,
        "config.cpuHotAddEnabled": True,
        "config.extraConfig": [_option("numa.vcpu.min", "6"), _option("svga.present", "TRUE")],
        "runtime.host": vim.HostSystem("host-10"),
    }
    props.update(overrides)
    return props


def _host_props(**overrides):
    props = {
        "name": "esx10.lab.local",
        "parent": vim.ClusterComputeResource("domain-c7"),
        "summary.hardware": SimpleNamespace(numCpuPkgs=2, numCpuCores=32, memorySize=512 * 1024**3),
        "config.hyperThread": SimpleNamespace(active=True),
        "hardware.cpuPowerManagementInfo": SimpleNamespace(currentPolicy="Balanced"),
        "config.option": [_option("Numa.VcpuMin", 4)],
    }
    props.update(overrides)
    return props


@pytest.fixture
def context():
    return CollectorContext(
        service_instance=object(),
        logger=logging.getLogger("test"),
        diagnostics=Diagnostics(),
        vcenter="vc01.lab.local",
    )


def test_build_vm_record():
    record = build_vm_record(_vm_props())

    assert record.name == "sql01"
    assert record.memory_gb == 64
    assert (record.sockets, record.cores_per_socket, record.num_cpu) == (2, 4, 8)
    assert record.cpu_hot_add_enabled is True
    assert record.hardware_version == "vmx-17"
    assert record.host_id == "host-10"
    assert record.numa_vcpu_min_override == 6


def test_build_vm_record_defaults_missing_cores_per_socket():
    record = build_vm_record(
        _vm_props(**{"config.hardware.numCoresPerSocket": None, "config.extraConfig": None})
    )

    assert (record.sockets, record.cores_per_socket) == (8, 1)
    assert record.numa_vcpu_min_override is None


def test_build_host_record():
    record = build_host_record("host-10", _host_props(), vcenter="vc01")

    assert record.id == "host-10"
    assert record.cluster_id == "domain-c7"
    assert record.memory_gb == 512
    assert (record.sockets, record.cores_per_socket, record.total_cores) == (2, 16, 32)
    assert record.mem_per_numa_node == 256
    assert record.hyperthreading_active is True
    assert record.power_policy == PowerPolicy.BALANCED
    assert record.numa_vcpu_min_override == 4
    assert record.vcenter == "vc01"


def test_standalone_host_has_no_cluster():
    record = build_host_record("host-11", _host_props(parent=vim.ComputeResource("domain-s11")))

    assert record.cluster_id is None


def test_host_without_hardware_summary_is_rejected():
    with pytest.raises(ValueError):
        build_host_record("host-12", _host_props(**{"summary.hardware": None}))


@pytest.mark.parametrize(
    "value,expected",
    [
        ("High performance", PowerPolicy.HIGH_PERFORMANCE),
        ("static", PowerPolicy.HIGH_PERFORMANCE),
        ("Balanced", PowerPolicy.BALANCED),
        ("Low power", PowerPolicy.LOW_POWER),
        ("custom", PowerPolicy.CUSTOM),
        ("Not supported", PowerPolicy.NA),
        (None, PowerPolicy.NA),
    ],
)
def test_power_policy_mapping(value, expected):
    assert power_policy_from(value) == expected


def test_read_int_option_ignores_invalid_values():
    assert read_int_option([_option("numa.vcpu.min", "abc")], "numa.vcpu.min") is None
    assert read_int_option([_option("numa.vcpu.min", "0")], "numa.vcpu.min") is None
    assert read_int_option([_option("NUMA.VCPU.MIN", " 5 ")], "numa.vcpu.min") == 5
    assert read_int_option(None, "numa.vcpu.min") is None


def test_vm_collector_skips_templates_and_bad_rows(context, monkeypatch):
    items = [
        {"moid": "vm-1", "props": _vm_props()},
        {"moid": "vm-2", "props": _vm_props(name="tpl01", **{"config.template": True})},
        {"moid": "vm-3", "props": _vm_props(name="broken01", **{"config.hardware.numCPU": 0})},
    ]
    monkeypatch.setattr(vm_collector, "fetch_objects", lambda *_args: items)

    records = vm_collector.collect(context)

    assert [record.name for record in records] == ["sql01"]
    stats = context.diagnostics.get_stage_stats(vm_collector.STAGE)
    assert stats.attempted_count == 2
    assert stats.success_count == 1
    assert stats.other_error_count == 1


def test_collector_returns_empty_list_on_fetch_failure(context, monkeypatch):
    def _fail(*_args):
        raise RuntimeError("collector down")

    monkeypatch.setattr(host_collector, "fetch_objects", _fail)

    assert host_collector.collect(context) == []
    assert context.diagnostics.get_stage_stats(host_collector.STAGE).other_error_count == 1


def test_collect_inventory(context, monkeypatch):
    monkeypatch.setattr(
        vm_collector, "fetch_objects", lambda *_args: [{"moid": "vm-1", "props": _vm_props()}]
    )
    monkeypatch.setattr(
        host_collector, "fetch_objects", lambda *_args: [{"moid": "host-10", "props": _host_props()}]
    )
    monkeypatch.setattr(
        cluster_collector,
        "fetch_objects",
        lambda *_args: [
            {
                "moid": "domain-c7",
                "props": {"name": "prod", "host": [vim.HostSystem("host-10")]},
            }
        ],
    )

    inventory = collect_inventory(context)

    assert [vm.host_id for vm in inventory.vms] == ["host-10"]
    assert inventory.hosts[0].vcenter == "vc01.lab.local"
    assert inventory.clusters[0].host_ids == ["host-10"]
