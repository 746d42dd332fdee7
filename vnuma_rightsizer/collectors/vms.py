from typing import List

from pyVmomi import vim

from .context import CollectorContext
from .options import read_int_option
from ..models import VmRecord
from ..property_fetch import fetch_objects

STAGE = "VM"
NUMA_VCPU_MIN_KEY = "numa.vcpu.min"

VM_PROPERTIES = [
    "name",
    "config.template",
    "config.version",
    "config.hardware.numCPU",
    "config.hardware.numCoresPerSocket",
    "config.hardware.memoryMB",
    "config.cpuHotAddEnabled",
    "config.extraConfig",
    "runtime.host",
]


def _moid(ref) -> str:
    if ref is None:
        return ""
    return ref._GetMoId() if hasattr(ref, "_GetMoId") else str(ref)


def build_vm_record(props: dict, logger=None) -> VmRecord:
    num_cpu = int(props.get("config.hardware.numCPU") or 0)
    cores_per_socket = int(props.get("config.hardware.numCoresPerSocket") or 1)
    memory_mb = props.get("config.hardware.memoryMB") or 0
    return VmRecord(
        name=props.get("name") or "",
        memory_gb=round(memory_mb / 1024, 2),
        sockets=max(num_cpu // cores_per_socket, 1),
        cores_per_socket=cores_per_socket,
        num_cpu=num_cpu,
        cpu_hot_add_enabled=bool(props.get("config.cpuHotAddEnabled")),
        hardware_version=props.get("config.version"),
        host_id=_moid(props.get("runtime.host")) or None,
        numa_vcpu_min_override=read_int_option(
            props.get("config.extraConfig"), NUMA_VCPU_MIN_KEY, logger
        ),
    )


def collect(context: CollectorContext) -> List[VmRecord]:
    diagnostics = context.diagnostics
    logger = context.logger

    try:
        vm_items = fetch_objects(context.service_instance, vim.VirtualMachine, VM_PROPERTIES)
    except Exception as exc:
        diagnostics.add_error(STAGE, "property_fetch", exc)
        logger.error("Failed fetching VMs: %s", exc)
        return []

    records = []
    for item in vm_items:
        props = item.get("props", {})
        name = props.get("name") or item.get("moid") or "<unknown>"
        if props.get("config.template"):
            continue

        diagnostics.add_attempt(STAGE)
        try:
            record = build_vm_record(props, logger)
        except Exception as exc:
            diagnostics.add_error(STAGE, name, exc)
            logger.debug("Could not read VM %s: %s", name, exc)
            continue

        diagnostics.add_success(STAGE)
        records.append(record)

    return records
