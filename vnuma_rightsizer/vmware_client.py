import ssl
from contextlib import contextmanager
from typing import Iterator, Tuple
from urllib.parse import urlparse

from pyVim.connect import Disconnect, SmartConnect
from pyVmomi import vim


def parse_server(server: str) -> Tuple[str, int]:
    if "://" not in server:
        server = f"https://{server}"

    parsed = urlparse(server)
    host = parsed.hostname
    port = parsed.port

    if not host:
        raise ValueError(f"Invalid server: {server}")

    if port is None:
        port = 443 if parsed.scheme == "https" else 80

    return host, port


def server_host(server: str) -> str:
    """Host name of a server URL, used to label results with their vCenter."""
    if not server:
        return ""
    try:
        return parse_server(server)[0]
    except ValueError:
        return server


def connect(server: str, user: str, password: str, insecure: bool):
    host, port = parse_server(server)

    ssl_context = None
    if insecure:
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE

    try:
        service_instance = SmartConnect(
            host=host,
            user=user,
            pwd=password,
            port=port,
            sslContext=ssl_context,
        )
    except Exception as exc:
        raise ConnectionError(f"Could not connect to {server}: {exc}") from exc

    if not isinstance(service_instance, vim.ServiceInstance):
        raise ConnectionError("No valid service instance returned")

    return service_instance


def disconnect(service_instance) -> None:
    if service_instance is not None:
        Disconnect(service_instance)


@contextmanager
def vcenter_session(server: str, user: str, password: str, insecure: bool) -> Iterator[object]:
    service_instance = connect(server, user, password, insecure)
    try:
        yield service_instance
    finally:
        disconnect(service_instance)
