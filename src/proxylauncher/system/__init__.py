"""
System-level helpers for proxylauncher.
"""

from .network import (
    ANY_ADDRESSES,
    LOOPBACK_HOST,
    build_url,
    host_for_url,
    join_host_port,
)

__all__ = [
    "ANY_ADDRESSES",
    "LOOPBACK_HOST",
    "build_url",
    "host_for_url",
    "join_host_port",
]
