"""
Validation functions for launcher configuration values.

Used by the TOML loader and the CLI to reject bad input before a child
process is ever spawned.
"""

import os
import signal
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import ValidationError

# Event names understood by the SignalRelay besides plain signal names.
EXIT_EVENT = "exit"
FAULT_EVENT = "uncaught_exception"


def validate_executable(path: Union[str, Path], field_name: str = "executable") -> str:
    """
    Validate that a path points at an executable file.

    Args:
        path: Path to validate
        field_name: Name of the field being validated

    Returns:
        The path as a string

    Raises:
        ValidationError: If the path is missing or not executable
    """
    if not path or not isinstance(path, (str, Path)):
        raise ValidationError(
            f"{field_name} must be a non-empty path",
            field_name=field_name,
            value=path
        )

    path_str = str(path)
    if not os.path.isfile(path_str):
        raise ValidationError(
            f"{field_name} does not exist: {path_str}",
            field_name=field_name,
            value=path
        )
    if not os.access(path_str, os.X_OK):
        raise ValidationError(
            f"{field_name} is not executable: {path_str}",
            field_name=field_name,
            value=path
        )

    return path_str


def validate_string_list(value: Any, field_name: str = "list") -> List[str]:
    """Validate a list whose items are all strings."""
    if not isinstance(value, (list, tuple)):
        raise ValidationError(
            f"{field_name} must be a list of strings, got {type(value).__name__}",
            field_name=field_name,
            value=value
        )

    for item in value:
        if not isinstance(item, str):
            raise ValidationError(
                f"{field_name} must only contain strings, got {item!r}",
                field_name=field_name,
                value=value
            )

    return list(value)


def validate_env_mapping(value: Any, field_name: str = "extra_env") -> Dict[str, str]:
    """
    Validate an environment overlay.

    Values are converted to strings, so TOML integers and booleans are
    accepted; nested tables are not.
    """
    if not isinstance(value, dict):
        raise ValidationError(
            f"{field_name} must be a table of environment variables",
            field_name=field_name,
            value=value
        )

    env = {}
    for key, item in value.items():
        if not key or "=" in key:
            raise ValidationError(
                f"{field_name} has an invalid variable name: {key!r}",
                field_name=field_name,
                value=value
            )
        if isinstance(item, (dict, list)):
            raise ValidationError(
                f"{field_name}.{key} must be a scalar value",
                field_name=field_name,
                value=value
            )
        if isinstance(item, bool):
            item = "true" if item else "false"
        env[key] = str(item)

    return env


def validate_startup_timeout(value: Any, field_name: str = "startup_timeout") -> Optional[float]:
    """
    Validate a startup timeout in milliseconds.

    None is kept as-is (meaning "use the default"); zero and negative numbers
    are legal and disable the timeout.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a number of milliseconds, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        return float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a number of milliseconds, got {value}",
            field_name=field_name,
            value=value
        )


def validate_cleanup_event(event: Any, field_name: str = "cleanup_events") -> str:
    """
    Validate a single termination event name.

    Accepts "exit", "uncaught_exception", or the name of a signal known to
    this platform (e.g. "SIGTERM").
    """
    if event in (EXIT_EVENT, FAULT_EVENT):
        return event

    if isinstance(event, str) and event.startswith("SIG") and not event.startswith("SIG_"):
        if isinstance(getattr(signal, event, None), signal.Signals):
            return event

    raise ValidationError(
        f"{field_name} contains an unknown event: {event!r}",
        field_name=field_name,
        value=event
    )


def validate_cleanup_events(events: Any, field_name: str = "cleanup_events") -> List[str]:
    """Validate a list of termination event names, keeping duplicates."""
    return [
        validate_cleanup_event(event, field_name)
        for event in validate_string_list(events, field_name)
    ]
