from dataclasses import dataclass
from typing import Any


@dataclass
class CollectorContext:
    service_instance: Any
    logger: Any
    diagnostics: Any
    vcenter: str = ""
