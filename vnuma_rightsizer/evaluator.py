"""Rightsizing rules for a single VM.

Compares the virtual socket/core layout of a VM with the physical NUMA
layout of its host (one NUMA node per socket) and produces the optimal
layout together with the findings explaining why a VM is not optimal.
"""

import logging
import re
from typing import List, Optional, Tuple

from .errors import MalformedVersionIdentifier
from .models import (
    ClusterContext,
    Evaluation,
    EvaluationContext,
    Finding,
    HostRecord,
    PowerPolicy,
    Priority,
    RunWarning,
    VmRecord,
)

logger = logging.getLogger(__name__)

# vNUMA is presented to the guest starting with virtual hardware vmx-08
VNUMA_MIN_HARDWARE_VERSION = 8
# ESXi default for numa.vcpu.min
DEFAULT_NUMA_VCPU_MIN = 9
POWER_POLICY_MIN_VCPUS = 8

RULE_NOT_WIDE_NOT_OPTIMAL = "not_wide_not_optimal"
RULE_WIDE_NOT_OPTIMAL = "wide_not_optimal"
RULE_CLUSTER_HETEROGENEOUS = "cluster_heterogeneous"
RULE_EXCEEDS_PHYSICAL_CORES = "exceeds_physical_cores"
RULE_POWER_POLICY = "power_policy"

_VERSION_RE = re.compile(r"^\s*(?:vmx-)?(\d+)\s*$", re.IGNORECASE)


def parse_hardware_version(value) -> int:
    """Return the numeric virtual hardware version ("vmx-13" -> 13)."""
    if isinstance(value, bool) or value is None:
        raise MalformedVersionIdentifier(value)
    if isinstance(value, int):
        return value
    match = _VERSION_RE.match(str(value))
    if not match:
        raise MalformedVersionIdentifier(value)
    return int(match.group(1))


def optimal_layout(
    memory_gb: float,
    calc_vcpus: int,
    mem_per_numa_node: float,
    host_cores_per_socket: int,
    host_total_cores: int,
) -> Tuple[int, int]:
    """Smallest socket count whose per-socket share fits one NUMA node.

    Only socket counts dividing ``calc_vcpus`` are candidates. A single core
    per socket always fits, so the search ends at ``calc_vcpus`` at the latest.
    """
    sockets = 1
    while True:
        if calc_vcpus % sockets == 0:
            cores = calc_vcpus // sockets
            fits_memory = memory_gb / sockets <= mem_per_numa_node or cores == 1
            fits_cpu = (
                cores <= host_cores_per_socket
                or cores == 1
                or calc_vcpus == host_total_cores
            )
            if fits_memory and fits_cpu:
                return sockets, cores
        sockets += 1


def _fmt_gb(value: Optional[float]) -> str:
    if value is None:
        return ""
    return f"{round(value, 2):g}GB"


def _wide_dimensions(mem_wide: bool, cpu_wide: bool) -> str:
    if mem_wide and cpu_wide:
        return "memory and CPU"
    if mem_wide:
        return "memory"
    return "CPU"


def _effective_numa_override(vm: VmRecord, host: HostRecord) -> Tuple[Optional[int], str]:
    if vm.numa_vcpu_min_override is not None:
        return vm.numa_vcpu_min_override, "VM"
    if host.numa_vcpu_min_override is not None:
        return host.numa_vcpu_min_override, "host"
    return None, ""


def _exposure_notes(vm: VmRecord, host: HostRecord, hardware_version: Optional[int]) -> List[str]:
    notes: List[str] = []

    if hardware_version is None or hardware_version < VNUMA_MIN_HARDWARE_VERSION:
        reported = vm.hardware_version if vm.hardware_version is not None else "unknown"
        notes.append(
            f"vNUMA not exposed: virtual hardware '{reported}' is older than "
            f"vmx-{VNUMA_MIN_HARDWARE_VERSION:02d}, upgrade the VM hardware."
        )

    if vm.cpu_hot_add_enabled:
        notes.append("vNUMA not exposed: CPU hot add is enabled and disables vNUMA, disable it.")

    if vm.num_cpu < DEFAULT_NUMA_VCPU_MIN:
        override, source = _effective_numa_override(vm, host)
        if override is None:
            notes.append(
                f"vNUMA not exposed: {vm.num_cpu} vCPUs is below the default numa.vcpu.min "
                f"of {DEFAULT_NUMA_VCPU_MIN}, set numa.vcpu.min to {vm.num_cpu} or lower."
            )
        elif override <= vm.num_cpu:
            notes.append(f"Info: vNUMA exposed through {source} numa.vcpu.min={override}.")
        else:
            notes.append(
                f"vNUMA not exposed: {source} numa.vcpu.min={override} is above the "
                f"{vm.num_cpu} vCPUs of this VM, lower it to {vm.num_cpu} or less."
            )

    return notes


def _cluster_differences(host: HostRecord, cluster: ClusterContext) -> List[str]:
    differences: List[str] = []
    if cluster.min_memory_gb is not None and host.memory_gb != cluster.min_memory_gb:
        differences.append(
            f"memory {_fmt_gb(host.memory_gb)} vs {_fmt_gb(cluster.min_memory_gb)}"
        )
    if cluster.min_sockets is not None and host.sockets != cluster.min_sockets:
        differences.append(f"sockets {host.sockets} vs {cluster.min_sockets}")
    if (
        cluster.min_cores_per_socket is not None
        and host.cores_per_socket != cluster.min_cores_per_socket
    ):
        differences.append(
            f"cores per socket {host.cores_per_socket} vs {cluster.min_cores_per_socket}"
        )
    return differences


def evaluate(ctx: EvaluationContext) -> Evaluation:
    vm = ctx.vm
    host = ctx.host
    warnings: List[RunWarning] = []

    try:
        hardware_version: Optional[int] = parse_hardware_version(vm.hardware_version)
    except MalformedVersionIdentifier as exc:
        message = f"VM {vm.name}: {exc}, treated as older than vmx-{VNUMA_MIN_HARDWARE_VERSION:02d}"
        logger.warning("%s", message)
        warnings.append(RunWarning(error_type=exc.error_type, message=message))
        hardware_version = None

    mem_wide = vm.memory_gb > host.mem_per_numa_node
    cpu_wide = vm.num_cpu > host.cores_per_socket
    wide = mem_wide or cpu_wide

    cpu_odd = wide and vm.num_cpu % 2 == 1
    calc_vcpus = vm.num_cpu + 1 if cpu_odd else vm.num_cpu

    optimal_sockets, optimal_cores = optimal_layout(
        vm.memory_gb,
        calc_vcpus,
        host.mem_per_numa_node,
        host.cores_per_socket,
        host.total_cores,
    )
    cpu_optimal = (
        optimal_sockets == vm.sockets
        and optimal_cores == vm.cores_per_socket
        and not cpu_odd
    )

    exceeds_cores = vm.num_cpu > host.total_cores
    if exceeds_cores:
        optimal_sockets, optimal_cores = host.sockets, host.cores_per_socket

    layout = f"{optimal_sockets} socket(s) x {optimal_cores} core(s)"
    findings: List[Finding] = []

    if not wide and not cpu_optimal:
        findings.append(
            Finding(
                rule=RULE_NOT_WIDE_NOT_OPTIMAL,
                severity=Priority.LOW,
                message=(
                    f"VM fits in one pNUMA node but its layout does not match the pNUMA "
                    f"architecture, use {layout}."
                ),
            )
        )

    if wide and not cpu_optimal:
        parts = [
            f"VM is wide on {_wide_dimensions(mem_wide, cpu_wide)}, use {layout} to span "
            f"as few pNUMA nodes as possible."
        ]
        parts.extend(_exposure_notes(vm, host, hardware_version))
        if cpu_odd:
            parts.append(
                f"Odd vCPU count ({vm.num_cpu}) makes spanning pNUMA nodes worse, "
                f"use {calc_vcpus} vCPUs."
            )
        findings.append(
            Finding(rule=RULE_WIDE_NOT_OPTIMAL, severity=Priority.HIGH, message=" ".join(parts))
        )

    if ctx.cluster.is_set:
        differences = _cluster_differences(host, ctx.cluster)
        if differences:
            findings.append(
                Finding(
                    rule=RULE_CLUSTER_HETEROGENEOUS,
                    severity=Priority.MEDIUM,
                    message=(
                        f"Host hardware differs from cluster {ctx.cluster.name} minimums "
                        f"({', '.join(differences)}), size VMs to the cluster minimum "
                        f"instead of this host."
                    ),
                )
            )

    if exceeds_cores:
        findings.append(
            Finding(
                rule=RULE_EXCEEDS_PHYSICAL_CORES,
                severity=Priority.MEDIUM,
                message=(
                    f"VM has {vm.num_cpu} vCPUs but host {host.name} has only "
                    f"{host.total_cores} physical cores, reduce the vCPU count."
                ),
            )
        )

    if vm.num_cpu > POWER_POLICY_MIN_VCPUS and host.power_policy not in (
        PowerPolicy.HIGH_PERFORMANCE,
        PowerPolicy.NA,
    ):
        # Advisory only, never raises the priority
        findings.append(
            Finding(
                rule=RULE_POWER_POLICY,
                severity=Priority.NA,
                message=(
                    f"Host power policy is {host.power_policy.value}, use HighPerformance "
                    f"for VMs with more than {POWER_POLICY_MIN_VCPUS} vCPUs."
                ),
            )
        )

    return Evaluation(
        optimal_sockets=optimal_sockets,
        optimal_cores_per_socket=optimal_cores,
        findings=findings,
        calc_vcpus=calc_vcpus,
        mem_wide=mem_wide,
        cpu_wide=cpu_wide,
        cpu_odd=cpu_odd,
        cpu_optimal=cpu_optimal,
        warnings=warnings,
    )
