"""vNUMA rightsizing advisor for vSphere virtual machines."""

__version__ = "0.1.0"
