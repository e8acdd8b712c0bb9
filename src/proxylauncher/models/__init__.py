"""
Data models for the proxylauncher package.
"""

from .config import (
    DEFAULT_CLEANUP_EVENTS,
    EngineConfig,
    LauncherOptions,
    SupervisorConfig,
)
from .runtime import ListeningAddress, SupervisorState

__all__ = [
    "DEFAULT_CLEANUP_EVENTS",
    "EngineConfig",
    "LauncherOptions",
    "SupervisorConfig",
    "ListeningAddress",
    "SupervisorState",
]
