"""
proxylauncher: run a proxy binary as a supervised child process.

The package starts an external long-running binary, waits until it reports on
which address it listens, restarts it when it crashes, and makes sure it is
stopped before the host process exits.

The package is organized into specialized modules:
- orchestration: ProcessSupervisor and its building blocks
- models: Configuration and runtime data structures
- validation: Error taxonomy, error handling and input validation
- config: Launcher TOML loading
- system: Host/port and URL helpers
- cli: The ``proxylauncher`` command

Usage:
    From command line:
        proxylauncher --launcher-config launcher.toml

    Programmatically:
        from proxylauncher import ProcessSupervisor, LauncherOptions
        supervisor = ProcessSupervisor("/usr/local/bin/engineproxy", {"origins": [...]})
        address = await supervisor.start(LauncherOptions(startup_timeout=10000))
        ...
        await supervisor.stop()
"""

from .cli import main_cli
from .config import load_supervisor_config
from .models import (
    LauncherOptions,
    ListeningAddress,
    SupervisorConfig,
    SupervisorState,
)
from .orchestration import ProcessSupervisor, SignalRelay
from .system import join_host_port
from .validation import (
    ChannelError,
    ChildCrashedError,
    ConfigurationError,
    LauncherError,
    StartupAbortedError,
    StartupTimeoutError,
    UsageError,
    ValidationError,
)

__version__ = "1.1.0"

__all__ = [
    # Main interfaces
    "ProcessSupervisor",
    "SignalRelay",
    "load_supervisor_config",
    "main_cli",
    "join_host_port",
    # Models
    "LauncherOptions",
    "ListeningAddress",
    "SupervisorConfig",
    "SupervisorState",
    # Errors
    "ChannelError",
    "ChildCrashedError",
    "ConfigurationError",
    "LauncherError",
    "StartupAbortedError",
    "StartupTimeoutError",
    "UsageError",
    "ValidationError",
]
