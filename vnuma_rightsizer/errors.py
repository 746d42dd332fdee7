from typing import Optional


class RightsizingError(Exception):
    """Base error for a single VM that could not be fully evaluated."""

    error_type = "rightsizing_error"

    def __init__(self, message: str, vm_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.vm_name = vm_name


class HostNotFound(RightsizingError):
    error_type = "host_not_found"

    def __init__(self, vm_name: str, host_id: Optional[str]) -> None:
        super().__init__(f"Host '{host_id}' not found for VM '{vm_name}'", vm_name=vm_name)
        self.host_id = host_id


class ClusterNotFound(RightsizingError):
    error_type = "cluster_not_found"

    def __init__(self, host_name: str, cluster_id: str) -> None:
        super().__init__(f"Cluster '{cluster_id}' not found for host '{host_name}'")
        self.host_name = host_name
        self.cluster_id = cluster_id


class MalformedVersionIdentifier(RightsizingError):
    error_type = "malformed_version"

    def __init__(self, value: object, vm_name: Optional[str] = None) -> None:
        super().__init__(f"Cannot parse hardware version '{value}'", vm_name=vm_name)
        self.value = value
