"""
Host and URL helpers for listening addresses reported by the child.
"""

from typing import Union

# Addresses that mean "listening on every interface". They are not useful as a
# URL host, so they are replaced by the loopback name.
ANY_ADDRESSES = ("", "::")
LOOPBACK_HOST = "localhost"


def join_host_port(host: str, port: Union[int, str]) -> str:
    """
    Combine host and port into "host:port".

    Literal IPv6 addresses contain colons and are wrapped in square brackets,
    e.g. ``join_host_port("2001:db8::1", 80) == "[2001:db8::1]:80"``.
    """
    if ":" in host:
        host = f"[{host}]"
    return f"{host}:{port}"


def host_for_url(ip: str) -> str:
    """Map an any-address to localhost; return other addresses unchanged."""
    if ip in ANY_ADDRESSES:
        return LOOPBACK_HOST
    return ip


def build_url(ip: str, port: int) -> str:
    """Build the http URL a client would use to reach the reported address."""
    return f"http://{join_host_port(host_for_url(ip), port)}"
