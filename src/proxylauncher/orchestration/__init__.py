"""
Orchestration module for child-process supervision.

Components:
- ProcessSupervisor: Owns the child lifecycle (spawn, readiness, restart, stop)
- ProcessManager: Argument/environment construction and process signalling
- StartupChannel: Reads the child's one-shot readiness message
- StreamRelay: Forwards child output to caller-supplied sinks
- SignalRelay: Stops the child when our own process is terminating
"""

from .process_manager import ProcessManager, describe_exit, signal_name
from .shared_state import (
    INVALID_CONFIG_EXIT_CODE,
    TimeoutConstants,
    resolve_startup_timeout,
)
from .signal_handler import SignalRelay
from .startup_channel import StartupChannel
from .stream_relay import StreamRelay
from .supervisor import ProcessSupervisor

__all__ = [
    "INVALID_CONFIG_EXIT_CODE",
    "ProcessManager",
    "ProcessSupervisor",
    "SignalRelay",
    "StartupChannel",
    "StreamRelay",
    "TimeoutConstants",
    "describe_exit",
    "resolve_startup_timeout",
    "signal_name",
]
