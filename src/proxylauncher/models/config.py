"""
Configuration data models.

This module contains the structures a caller hands to the supervisor: which
executable to run, where its configuration comes from, and the per-start
launcher options.
"""

import os
from dataclasses import dataclass, field
from typing import IO, Any, Dict, List, Mapping, Optional, Union

# Either a path to a config file the child watches itself, or an inline
# mapping that is serialized to JSON and passed through the environment.
EngineConfig = Union[str, os.PathLike, Mapping[str, Any]]

DEFAULT_CLEANUP_EVENTS = [
    "exit",
    "uncaught_exception",
    "SIGINT",
    "SIGTERM",
    # nodemon-style file watchers restart their child with SIGUSR2.
    "SIGUSR2",
]


@dataclass
class LauncherOptions:
    """
    Options for a single ProcessSupervisor.start() call.
    """

    # Appended to the child's argument vector after the launcher's own flags.
    extra_args: List[str] = field(default_factory=list)
    # Merged over the inherited environment; these entries win.
    extra_env: Dict[str, str] = field(default_factory=dict)
    # Binary writable sinks. When unset the child writes straight to our
    # stdout/stderr.
    stdout_sink: Optional[IO[bytes]] = None
    stderr_sink: Optional[IO[bytes]] = None
    # Milliseconds. None means the default; zero or negative disables it.
    startup_timeout: Optional[float] = None
    # Termination events that stop the child before this process exits.
    cleanup_events: Optional[List[str]] = None

    def effective_cleanup_events(self) -> List[str]:
        if self.cleanup_events is None:
            return list(DEFAULT_CLEANUP_EVENTS)
        return list(self.cleanup_events)


@dataclass
class SupervisorConfig:
    """
    Everything needed to build and start a ProcessSupervisor, as loaded from a
    launcher TOML file or assembled by the CLI.
    """

    executable: str
    engine_config: EngineConfig
    options: LauncherOptions = field(default_factory=LauncherOptions)
    # Environment variable that carries an inline engine config.
    config_env_var: str = "ENGINE_CONFIG"
