"""
Exception hierarchy and error handling helpers.

This module defines the errors raised or reported by the supervisor, along with
the small logging helper used wherever an error is handled instead of raised.
"""

import logging
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LauncherError(Exception):
    """Base class for every error produced by proxylauncher."""


class UsageError(LauncherError):
    """
    Raised when the supervisor API is called in the wrong order.

    Calling start() twice, or stop() without a running child, is a caller bug
    and is never retried.
    """


class ConfigurationError(LauncherError):
    """
    The child exited with the invalid-configuration exit code.

    This is fatal: the child is not restarted.
    """

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        self.exit_code = exit_code


class StartupTimeoutError(LauncherError, TimeoutError):
    """The child did not report readiness within the startup window."""

    def __init__(self, message: str, timeout_ms: Optional[float] = None):
        super().__init__(message)
        self.timeout_ms = timeout_ms


class ChannelError(LauncherError):
    """Reading or decoding the readiness channel failed."""


class StartupAbortedError(LauncherError):
    """stop() was called before the pending start() could complete."""


class ChildCrashedError(LauncherError):
    """
    Describes an unexpected child exit.

    Never raised: instances are handed to "restarting" listeners so they can
    see why the child is being respawned.
    """

    def __init__(self, message: str, exit_code: Optional[int] = None,
                 signal_name: Optional[str] = None):
        super().__init__(message)
        self.exit_code = exit_code
        self.signal_name = signal_name


class ValidationError(LauncherError):
    """
    Exception raised when a configuration value fails validation.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=error)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=error)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Log a CLI error and exit with the requested status."""
    exit_code = kwargs.pop('exit_code', 1)

    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)

    import sys
    sys.exit(exit_code)
