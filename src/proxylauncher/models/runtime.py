"""
Runtime data models.

This module contains data structures produced while a supervisor is running:
the address the child reports and the supervisor's lifecycle state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from ..system.network import build_url
from ..validation.exceptions import ChannelError


class SupervisorState(Enum):
    """Lifecycle of a ProcessSupervisor."""
    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    RESTARTING = "restarting"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class ListeningAddress:
    """
    Where the child is listening, as reported on the readiness channel.
    """

    # Verbatim from the child; may be "" or "::" for the any-address.
    ip: str
    port: int
    # Derived from ip and port; any-addresses become localhost.
    url: str

    @classmethod
    def from_report(cls, report: Dict[str, Any]) -> "ListeningAddress":
        """
        Build an address from a decoded readiness message.

        Raises:
            ChannelError: If ip is not a string or port is not an integer
        """
        ip = report.get("ip")
        port = report.get("port")
        if not isinstance(ip, str):
            raise ChannelError(f"Readiness message has no string 'ip' field: {report!r}")
        if not isinstance(port, int) or isinstance(port, bool):
            raise ChannelError(f"Readiness message has no integer 'port' field: {report!r}")
        return cls(ip=ip, port=port, url=build_url(ip, port))
