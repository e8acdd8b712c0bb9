"""
Shared constants for the orchestration module.

This module defines the child-process contract (flags, exit codes) and the
timing defaults used across the orchestration components.
"""

from typing import Optional

# Exit code the child uses for "my configuration is invalid, do not restart
# me" (EX_CONFIG from sysexits.h).
INVALID_CONFIG_EXIT_CODE = 78

# Command-line flags understood by the child binary.
LISTENING_REPORTER_FLAG = "-listening-reporter-fd"
CONFIG_FLAG = "-config"
CONFIG_FROM_ENV = "env"

# Event names accepted by ProcessSupervisor.add_listener().
START_EVENT = "start"
RESTARTING_EVENT = "restarting"
ERROR_EVENT = "error"
NOTIFICATION_EVENTS = (START_EVENT, RESTARTING_EVENT, ERROR_EVENT)


class TimeoutConstants:
    """
    Centralized timeout configuration.
    """
    # Startup window when the caller does not pass one (milliseconds).
    DEFAULT_STARTUP_TIMEOUT_MS = 5000

    # Read size for the readiness channel and relayed output streams.
    PIPE_READ_CHUNK = 64 * 1024


def resolve_startup_timeout(timeout_ms: Optional[float]) -> Optional[float]:
    """
    Convert a caller-supplied startup timeout into seconds.

    None selects the default. Zero or any negative value disables the
    timeout entirely and returns None.
    """
    if timeout_ms is None:
        return TimeoutConstants.DEFAULT_STARTUP_TIMEOUT_MS / 1000.0
    if timeout_ms <= 0:
        return None
    return timeout_ms / 1000.0
