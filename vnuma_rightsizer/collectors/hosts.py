from typing import List, Optional

from pyVmomi import vim

from .context import CollectorContext
from .options import read_int_option
from ..models import HostRecord, PowerPolicy
from ..property_fetch import fetch_objects

STAGE = "Host"
NUMA_VCPU_MIN_OPTION = "Numa.VcpuMin"

HOST_PROPERTIES = [
    "name",
    "parent",
    "summary.hardware",
    "config.hyperThread",
    "hardware.cpuPowerManagementInfo",
    "config.option",
]

# Display names (hardware.cpuPowerManagementInfo) and short names (powerSystemInfo)
_POWER_POLICIES = {
    "high performance": PowerPolicy.HIGH_PERFORMANCE,
    "static": PowerPolicy.HIGH_PERFORMANCE,
    "balanced": PowerPolicy.BALANCED,
    "dynamic": PowerPolicy.BALANCED,
    "low power": PowerPolicy.LOW_POWER,
    "low": PowerPolicy.LOW_POWER,
    "custom": PowerPolicy.CUSTOM,
}


def power_policy_from(value: Optional[str]) -> PowerPolicy:
    if not value:
        return PowerPolicy.NA
    return _POWER_POLICIES.get(str(value).strip().lower(), PowerPolicy.NA)


def _cluster_id(parent) -> Optional[str]:
    if isinstance(parent, vim.ClusterComputeResource):
        return parent._GetMoId()
    return None


def build_host_record(moid: str, props: dict, vcenter: str = "", logger=None) -> HostRecord:
    hardware = props.get("summary.hardware")
    sockets = int(getattr(hardware, "numCpuPkgs", 0) or 0) if hardware else 0
    cores = int(getattr(hardware, "numCpuCores", 0) or 0) if hardware else 0
    memory_bytes = getattr(hardware, "memorySize", 0) if hardware else 0
    if not sockets or not cores:
        raise ValueError("Missing CPU package or core count")

    hyper_thread = props.get("config.hyperThread")
    cpu_power = props.get("hardware.cpuPowerManagementInfo")

    return HostRecord(
        name=props.get("name") or moid,
        id=moid,
        cluster_id=_cluster_id(props.get("parent")),
        memory_gb=round((memory_bytes or 0) / (1024**3), 2),
        sockets=sockets,
        cores_per_socket=max(cores // sockets, 1),
        hyperthreading_active=bool(getattr(hyper_thread, "active", False)) if hyper_thread else False,
        power_policy=power_policy_from(getattr(cpu_power, "currentPolicy", None) if cpu_power else None),
        numa_vcpu_min_override=read_int_option(props.get("config.option"), NUMA_VCPU_MIN_OPTION, logger),
        vcenter=vcenter,
    )


def collect(context: CollectorContext) -> List[HostRecord]:
    diagnostics = context.diagnostics
    logger = context.logger

    try:
        host_items = fetch_objects(context.service_instance, vim.HostSystem, HOST_PROPERTIES)
    except Exception as exc:
        diagnostics.add_error(STAGE, "property_fetch", exc)
        logger.error("Failed fetching hosts: %s", exc)
        return []

    records = []
    for item in host_items:
        props = item.get("props", {})
        moid = item.get("moid") or ""
        name = props.get("name") or moid or "<unknown>"

        diagnostics.add_attempt(STAGE)
        try:
            record = build_host_record(moid, props, vcenter=context.vcenter, logger=logger)
        except Exception as exc:
            diagnostics.add_error(STAGE, name, exc)
            logger.debug("Could not read host %s: %s", name, exc)
            continue

        diagnostics.add_success(STAGE)
        records.append(record)

    return records
