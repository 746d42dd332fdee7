from typing import List

from pyVmomi import vim

from .context import CollectorContext
from ..models import ClusterRecord
from ..property_fetch import fetch_objects

STAGE = "Cluster"

CLUSTER_PROPERTIES = [
    "name",
    "host",
]


def collect(context: CollectorContext) -> List[ClusterRecord]:
    diagnostics = context.diagnostics
    logger = context.logger

    try:
        cluster_items = fetch_objects(
            context.service_instance, vim.ClusterComputeResource, CLUSTER_PROPERTIES
        )
    except Exception as exc:
        diagnostics.add_error(STAGE, "property_fetch", exc)
        logger.error("Failed fetching clusters: %s", exc)
        return []

    records = []
    for item in cluster_items:
        diagnostics.add_attempt(STAGE)
        props = item.get("props", {})
        moid = item.get("moid") or ""
        name = props.get("name") or ""

        if not name or not moid:
            diagnostics.add_error(STAGE, moid or "<unknown>", ValueError("Missing name"))
            continue

        host_refs = props.get("host") or []
        records.append(
            ClusterRecord(
                name=name,
                id=moid,
                host_ids=[ref._GetMoId() for ref in host_refs if hasattr(ref, "_GetMoId")],
            )
        )
        diagnostics.add_success(STAGE)

    return records
