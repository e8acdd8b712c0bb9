"""
Validation and error handling for the proxylauncher package.

This module provides the supervisor's error taxonomy plus input validation
with consistent error reporting across the application.
"""

from .exceptions import (
    ChannelError,
    ChildCrashedError,
    ConfigurationError,
    ErrorSeverity,
    LauncherError,
    StartupAbortedError,
    StartupTimeoutError,
    UsageError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
)

from .validators import (
    EXIT_EVENT,
    FAULT_EVENT,
    validate_cleanup_event,
    validate_cleanup_events,
    validate_env_mapping,
    validate_executable,
    validate_startup_timeout,
    validate_string_list,
)

__all__ = [
    # Errors
    "ChannelError",
    "ChildCrashedError",
    "ConfigurationError",
    "ErrorSeverity",
    "LauncherError",
    "StartupAbortedError",
    "StartupTimeoutError",
    "UsageError",
    "ValidationError",
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    # Validators
    "EXIT_EVENT",
    "FAULT_EVENT",
    "validate_cleanup_event",
    "validate_cleanup_events",
    "validate_env_mapping",
    "validate_executable",
    "validate_startup_timeout",
    "validate_string_list",
]
