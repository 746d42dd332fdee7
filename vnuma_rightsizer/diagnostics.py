from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pyVmomi import vim, vmodl

from .errors import RightsizingError

MAX_EXAMPLES = 10


@dataclass
class StageDiagnostics:
    attempted_count: int = 0
    success_count: int = 0
    empty_count: int = 0
    warning_count: int = 0
    # Degraded evaluations, counted under warning_count as well
    cluster_not_found_count: int = 0
    malformed_version_count: int = 0
    host_not_found_count: int = 0
    no_permission_count: int = 0
    invalid_property_count: int = 0
    not_found_count: int = 0
    other_error_count: int = 0
    examples: List[Dict[str, str]] = field(default_factory=list)

    @property
    def total_error_count(self) -> int:
        return (
            self.host_not_found_count
            + self.no_permission_count
            + self.invalid_property_count
            + self.not_found_count
            + self.other_error_count
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "attempted_count": self.attempted_count,
            "success_count": self.success_count,
            "empty_count": self.empty_count,
            "warning_count": self.warning_count,
            "host_not_found_count": self.host_not_found_count,
            "cluster_not_found_count": self.cluster_not_found_count,
            "malformed_version_count": self.malformed_version_count,
            "no_permission_count": self.no_permission_count,
            "invalid_property_count": self.invalid_property_count,
            "not_found_count": self.not_found_count,
            "other_error_count": self.other_error_count,
            "examples": list(self.examples),
        }


class Diagnostics:
    """Per-stage counters for inventory collection and evaluation."""

    def __init__(self, stage_names: Optional[List[str]] = None) -> None:
        self._stats: Dict[str, StageDiagnostics] = {}
        self._runtime_config: Dict[str, object] = {}
        if stage_names:
            for name in stage_names:
                self._stats[name] = StageDiagnostics()

    def _get_stats(self, stage: str) -> StageDiagnostics:
        if stage not in self._stats:
            self._stats[stage] = StageDiagnostics()
        return self._stats[stage]

    def get_stage_stats(self, stage: str) -> StageDiagnostics:
        return self._get_stats(stage)

    @staticmethod
    def classify_exception(exc: Exception) -> str:
        if isinstance(exc, RightsizingError):
            return exc.error_type
        if isinstance(exc, vim.fault.NoPermission):
            return "no_permission"
        invalid_cls = getattr(vim.fault, "InvalidProperty", None)
        if invalid_cls and isinstance(exc, invalid_cls):
            return "invalid_property"
        message = str(exc).lower()
        if "invalidproperty" in message or "invalid property" in message:
            return "invalid_property"
        not_found = [vmodl.fault.ManagedObjectNotFound]
        if hasattr(vim.fault, "NotFound"):
            not_found.append(vim.fault.NotFound)
        if isinstance(exc, tuple(not_found)):
            return "not_found"
        return "other_error"

    def add_attempt(self, stage: str) -> None:
        self._get_stats(stage).attempted_count += 1

    def add_success(self, stage: str) -> None:
        self._get_stats(stage).success_count += 1

    def add_empty(self, stage: str) -> None:
        self._get_stats(stage).empty_count += 1

    def _add_example(self, stats: StageDiagnostics, entity: str, error_type: str, message: str) -> None:
        if len(stats.examples) < MAX_EXAMPLES:
            stats.examples.append(
                {
                    "entity": str(entity),
                    "error_type": error_type,
                    "message": message,
                }
            )

    def add_warning(self, stage: str, entity: str, message: str, error_type: str = "warning") -> None:
        stats = self._get_stats(stage)
        stats.warning_count += 1
        counter = f"{error_type}_count"
        if error_type != "warning" and hasattr(stats, counter):
            setattr(stats, counter, getattr(stats, counter) + 1)
        self._add_example(stats, entity, error_type, message)

    def add_error(self, stage: str, entity: str, exc: Exception) -> str:
        error_type = self.classify_exception(exc)
        stats = self._get_stats(stage)

        counter = f"{error_type}_count"
        if hasattr(stats, counter):
            setattr(stats, counter, getattr(stats, counter) + 1)
        else:
            stats.other_error_count += 1

        self._add_example(stats, entity, error_type, str(exc))
        return error_type

    def set_runtime_config(self, runtime_config: Dict[str, object]) -> None:
        self._runtime_config = dict(runtime_config)

    def to_dict(self) -> Dict[str, object]:
        serialized = {stage: stats.to_dict() for stage, stats in self._stats.items()}
        return {"runtime_config": dict(self._runtime_config), **serialized}
