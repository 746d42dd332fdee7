from typing import Iterable

from .models import (
    EvaluationContext,
    Finding,
    FullResult,
    OutputMode,
    Priority,
    ResultRecord,
    SimpleResult,
)

DETAILS_SEPARATOR = " | "


def format_details(findings: Iterable[Finding]) -> str:
    messages = [finding.message.strip() for finding in findings]
    return DETAILS_SEPARATOR.join(message for message in messages if message)


def project(
    ctx: EvaluationContext,
    optimal_sockets: int,
    optimal_cores_per_socket: int,
    priority: Priority,
    optimized: bool,
    findings: Iterable[Finding],
    mode: OutputMode = OutputMode.FULL,
) -> ResultRecord:
    vm = ctx.vm
    details = format_details(findings)

    if mode == OutputMode.SIMPLE:
        return SimpleResult(
            vm=vm.name,
            vm_memory_gb=vm.memory_gb,
            vm_sockets=vm.sockets,
            vm_cores_per_socket=vm.cores_per_socket,
            vm_vcpus=vm.num_cpu,
            optimal_sockets=optimal_sockets,
            optimal_cores_per_socket=optimal_cores_per_socket,
            priority=priority,
            optimized=optimized,
            details=details,
        )

    host = ctx.host
    cluster = ctx.cluster
    return FullResult(
        vcenter=host.vcenter,
        cluster=cluster.name or "",
        cluster_min_memory_gb=cluster.min_memory_gb,
        cluster_min_sockets=cluster.min_sockets,
        cluster_min_cores_per_socket=cluster.min_cores_per_socket,
        host=host.name,
        host_memory_gb=host.memory_gb,
        host_mem_per_numa_node_gb=round(host.mem_per_numa_node, 2),
        host_sockets=host.sockets,
        host_cores_per_socket=host.cores_per_socket,
        host_total_cores=host.total_cores,
        host_hyperthreading=host.hyperthreading_active,
        host_power_policy=host.power_policy,
        vm=vm.name,
        vm_memory_gb=vm.memory_gb,
        vm_sockets=vm.sockets,
        vm_cores_per_socket=vm.cores_per_socket,
        vm_vcpus=vm.num_cpu,
        vm_cpu_hot_add=vm.cpu_hot_add_enabled,
        vm_hardware_version="" if vm.hardware_version is None else str(vm.hardware_version),
        vm_numa_vcpu_min=vm.numa_vcpu_min_override,
        optimal_sockets=optimal_sockets,
        optimal_cores_per_socket=optimal_cores_per_socket,
        priority=priority,
        optimized=optimized,
        details=details,
    )
