from .context import CollectorContext
from .clusters import collect as collect_clusters
from .hosts import collect as collect_hosts
from .vms import collect as collect_vms
from ..models import Inventory

COLLECTORS = {
    "VM": collect_vms,
    "Host": collect_hosts,
    "Cluster": collect_clusters,
}

STAGE_ORDER = ["VM", "Host", "Cluster"]


def collect_inventory(context: CollectorContext) -> Inventory:
    tables = {}
    for stage in STAGE_ORDER:
        try:
            tables[stage] = COLLECTORS[stage](context) or []
        except Exception as exc:
            context.logger.error("Error in collector %s: %s", stage, exc)
            tables[stage] = []
        if not tables[stage]:
            context.diagnostics.add_empty(stage)

    return Inventory(vms=tables["VM"], hosts=tables["Host"], clusters=tables["Cluster"])


__all__ = ["CollectorContext", "COLLECTORS", "STAGE_ORDER", "collect_inventory"]
