import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol, Union

from .collectors import CollectorContext, collect_inventory
from .diagnostics import Diagnostics
from .models import ClusterRecord, HostRecord, Inventory, VmRecord

logger = logging.getLogger(__name__)


class InventoryProvider(Protocol):
    def load(self) -> Inventory:
        ...


class StaticInventoryProvider:
    """Inventory tables already held in memory."""

    def __init__(
        self,
        vms: Iterable[VmRecord] = (),
        hosts: Iterable[HostRecord] = (),
        clusters: Iterable[ClusterRecord] = (),
    ) -> None:
        self._inventory = Inventory(vms=list(vms), hosts=list(hosts), clusters=list(clusters))

    def load(self) -> Inventory:
        return self._inventory


class JsonInventoryProvider:
    """Inventory snapshot stored as ``{"vms": [...], "hosts": [...], "clusters": [...]}``."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Inventory:
        logger.info("Loading inventory from %s", self.path)
        return Inventory.model_validate_json(self.path.read_text(encoding="utf-8"))


class VCenterInventoryProvider:
    def __init__(
        self,
        service_instance,
        diagnostics: Optional[Diagnostics] = None,
        vcenter: str = "",
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.context = CollectorContext(
            service_instance=service_instance,
            logger=log or logger,
            diagnostics=diagnostics or Diagnostics(),
            vcenter=vcenter,
        )

    def load(self) -> Inventory:
        inventory = collect_inventory(self.context)
        self.context.logger.info(
            "Inventory collected: vms=%s hosts=%s clusters=%s",
            len(inventory.vms),
            len(inventory.hosts),
            len(inventory.clusters),
        )
        return inventory
