from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, model_validator


class Priority(str, Enum):
    NA = "N/A"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.NA: 0,
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
}


class PowerPolicy(str, Enum):
    HIGH_PERFORMANCE = "HighPerformance"
    BALANCED = "Balanced"
    LOW_POWER = "LowPower"
    CUSTOM = "Custom"
    NA = "N/A"


class OutputMode(str, Enum):
    FULL = "full"
    SIMPLE = "simple"


# Inventory tables


class VmRecord(BaseModel):
    name: str
    memory_gb: float = Field(ge=0)
    sockets: int = Field(ge=1)
    cores_per_socket: int = Field(ge=1)
    num_cpu: int = Field(ge=1)
    cpu_hot_add_enabled: bool = False
    # Raw identifier as reported by vCenter ("vmx-13"); parsed during evaluation
    hardware_version: Optional[Union[int, str]] = None
    host_id: Optional[str] = None
    numa_vcpu_min_override: Optional[int] = Field(default=None, ge=1)

    model_config = {"frozen": True, "extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def _derive_cpu_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        cores = data.get("cores_per_socket") or 1
        data["cores_per_socket"] = cores
        if data.get("num_cpu") is None and data.get("sockets") is not None:
            data["num_cpu"] = int(data["sockets"]) * int(cores)
        if data.get("sockets") is None and data.get("num_cpu") is not None:
            data["sockets"] = max(int(data["num_cpu"]) // int(cores), 1)
        return data

    @model_validator(mode="after")
    def _check_cpu_shape(self) -> "VmRecord":
        if self.num_cpu != self.sockets * self.cores_per_socket:
            raise ValueError(
                f"num_cpu {self.num_cpu} != sockets {self.sockets} x cores_per_socket {self.cores_per_socket}"
            )
        return self


class HostRecord(BaseModel):
    name: str
    id: str
    cluster_id: Optional[str] = None
    memory_gb: float = Field(ge=0)
    sockets: int = Field(ge=1)
    cores_per_socket: int = Field(ge=1)
    hyperthreading_active: bool = False
    power_policy: PowerPolicy = PowerPolicy.NA
    numa_vcpu_min_override: Optional[int] = Field(default=None, ge=1)
    vcenter: str = ""

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def mem_per_numa_node(self) -> float:
        """Memory of one physical NUMA node, assuming one node per socket."""
        return self.memory_gb / self.sockets

    @property
    def total_cores(self) -> int:
        return self.sockets * self.cores_per_socket


class ClusterRecord(BaseModel):
    name: str
    id: str
    host_ids: List[str] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "ignore"}


class Inventory(BaseModel):
    vms: List[VmRecord] = Field(default_factory=list)
    hosts: List[HostRecord] = Field(default_factory=list)
    clusters: List[ClusterRecord] = Field(default_factory=list)


# Evaluation


class RunWarning(BaseModel):
    """A degraded but completed evaluation step, tagged like a diagnostics error."""

    error_type: str
    message: str

    model_config = {"frozen": True}


class ClusterContext(BaseModel):
    """Cluster-wide hardware minimums; every field unset for unclustered hosts."""

    id: Optional[str] = None
    name: Optional[str] = None
    min_memory_gb: Optional[float] = None
    min_sockets: Optional[int] = None
    min_cores_per_socket: Optional[int] = None

    model_config = {"frozen": True}

    @classmethod
    def unclustered(cls) -> "ClusterContext":
        return cls()

    @property
    def is_set(self) -> bool:
        return self.id is not None


class EvaluationContext(BaseModel):
    vm: VmRecord
    host: HostRecord
    cluster: ClusterContext = Field(default_factory=ClusterContext.unclustered)
    warnings: List[RunWarning] = Field(default_factory=list)


class Finding(BaseModel):
    rule: str
    severity: Priority
    message: str

    model_config = {"frozen": True}


class Evaluation(BaseModel):
    optimal_sockets: int
    optimal_cores_per_socket: int
    findings: List[Finding] = Field(default_factory=list)
    calc_vcpus: int
    mem_wide: bool = False
    cpu_wide: bool = False
    cpu_odd: bool = False
    cpu_optimal: bool = False
    warnings: List[RunWarning] = Field(default_factory=list)


# Results


class SimpleResult(BaseModel):
    vm: str = Field(serialization_alias="VM")
    vm_memory_gb: float = Field(serialization_alias="VM Memory GB")
    vm_sockets: int = Field(serialization_alias="VM Sockets")
    vm_cores_per_socket: int = Field(serialization_alias="VM Cores per Socket")
    vm_vcpus: int = Field(serialization_alias="VM vCPUs")
    optimal_sockets: int = Field(serialization_alias="Optimal Sockets")
    optimal_cores_per_socket: int = Field(serialization_alias="Optimal Cores per Socket")
    priority: Priority = Field(serialization_alias="Priority")
    optimized: bool = Field(serialization_alias="Optimized")
    details: str = Field(default="", serialization_alias="Details")

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class FullResult(BaseModel):
    vcenter: str = Field(default="", serialization_alias="vCenter")
    cluster: str = Field(default="", serialization_alias="Cluster")
    cluster_min_memory_gb: Optional[float] = Field(default=None, serialization_alias="Cluster Min Memory GB")
    cluster_min_sockets: Optional[int] = Field(default=None, serialization_alias="Cluster Min Sockets")
    cluster_min_cores_per_socket: Optional[int] = Field(
        default=None, serialization_alias="Cluster Min Cores per Socket"
    )
    host: str = Field(serialization_alias="Host")
    host_memory_gb: float = Field(serialization_alias="Host Memory GB")
    host_mem_per_numa_node_gb: float = Field(serialization_alias="Host Memory per NUMA Node GB")
    host_sockets: int = Field(serialization_alias="Host Sockets")
    host_cores_per_socket: int = Field(serialization_alias="Host Cores per Socket")
    host_total_cores: int = Field(serialization_alias="Host Total Cores")
    host_hyperthreading: bool = Field(serialization_alias="Host Hyperthreading")
    host_power_policy: PowerPolicy = Field(serialization_alias="Host Power Policy")
    vm: str = Field(serialization_alias="VM")
    vm_memory_gb: float = Field(serialization_alias="VM Memory GB")
    vm_sockets: int = Field(serialization_alias="VM Sockets")
    vm_cores_per_socket: int = Field(serialization_alias="VM Cores per Socket")
    vm_vcpus: int = Field(serialization_alias="VM vCPUs")
    vm_cpu_hot_add: bool = Field(serialization_alias="VM CPU Hot Add")
    vm_hardware_version: str = Field(default="", serialization_alias="VM Hardware Version")
    vm_numa_vcpu_min: Optional[int] = Field(default=None, serialization_alias="VM numa.vcpu.min")
    optimal_sockets: int = Field(serialization_alias="Optimal Sockets")
    optimal_cores_per_socket: int = Field(serialization_alias="Optimal Cores per Socket")
    priority: Priority = Field(serialization_alias="Priority")
    optimized: bool = Field(serialization_alias="Optimized")
    details: str = Field(default="", serialization_alias="Details")

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


ResultRecord = Union[FullResult, SimpleResult]


class VmError(BaseModel):
    vm: str = Field(serialization_alias="VM")
    error_type: str = Field(serialization_alias="Error Type")
    reason: str = Field(serialization_alias="Reason")

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class BatchResult(BaseModel):
    mode: OutputMode = OutputMode.FULL
    results: List[Union[FullResult, SimpleResult]] = Field(default_factory=list)
    errors: List[VmError] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def rows(self) -> List[Dict[str, Any]]:
        return [result.to_row() for result in self.results]

    @property
    def error_rows(self) -> List[Dict[str, Any]]:
        return [error.to_row() for error in self.errors]
