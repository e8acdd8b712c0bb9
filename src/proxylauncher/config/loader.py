"""
Launcher configuration file loading.

This module reads a TOML file describing which executable to supervise and
how, and turns it into a validated SupervisorConfig.

Example::

    [launcher]
    executable = "/usr/local/bin/engineproxy"
    config = "engine.json"
    startup_timeout_ms = 5000
    extra_args = ["-restart=false"]
    cleanup_events = ["exit", "SIGINT", "SIGTERM"]

    [launcher.extra_env]
    LOG_LEVEL = "debug"

Instead of ``config`` a ``[launcher.engine_config]`` table can carry the
engine configuration inline.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Union

from ..models.config import LauncherOptions, SupervisorConfig
from ..validation import (
    ErrorSeverity,
    ValidationError,
    handle_config_error,
    validate_cleanup_events,
    validate_env_mapping,
    validate_executable,
    validate_startup_timeout,
    validate_string_list,
)

logger = logging.getLogger(__name__)


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Load and parse a TOML file with error handling.

    Args:
        file_path: Path to the TOML file to load
        description: Human-readable description for error messages

    Returns:
        Parsed TOML data as a dictionary

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the file is malformed
    """
    logger.info(f"Loading {description} from: {file_path}")

    if not file_path.exists():
        logger.error(f"{description} not found: {file_path}")
        raise FileNotFoundError(f"{description} not found: {file_path}")

    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        handle_config_error(
            error=e,
            context=f"parsing {description}",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def parse_supervisor_config(data: Dict[str, Any], base_dir: Path) -> SupervisorConfig:
    """
    Build a SupervisorConfig from the ``[launcher]`` table of parsed TOML.

    Relative executable and config paths are resolved against ``base_dir``.

    Raises:
        ValidationError: If a field is missing or has the wrong shape
    """
    launcher = data.get("launcher")
    if not isinstance(launcher, dict):
        raise ValidationError("Missing [launcher] section", field_name="launcher")

    executable = launcher.get("executable")
    if isinstance(executable, str) and executable and not Path(executable).is_absolute():
        executable = str(base_dir / executable)
    executable = validate_executable(executable, "launcher.executable")

    config_path = launcher.get("config")
    inline_config = launcher.get("engine_config")
    if (config_path is None) == (inline_config is None):
        raise ValidationError(
            "Exactly one of launcher.config or [launcher.engine_config] must be set",
            field_name="launcher.config",
            value=config_path
        )
    if config_path is not None:
        if not isinstance(config_path, str) or not config_path:
            raise ValidationError(
                "launcher.config must be a non-empty path",
                field_name="launcher.config",
                value=config_path
            )
        engine_config: Union[str, Dict[str, Any]] = str(base_dir / config_path)
    else:
        if not isinstance(inline_config, dict):
            raise ValidationError(
                "[launcher.engine_config] must be a table",
                field_name="launcher.engine_config",
                value=inline_config
            )
        engine_config = inline_config

    options = LauncherOptions(
        extra_args=validate_string_list(launcher.get("extra_args", []), "launcher.extra_args"),
        extra_env=validate_env_mapping(launcher.get("extra_env", {}), "launcher.extra_env"),
        startup_timeout=validate_startup_timeout(
            launcher.get("startup_timeout_ms"), "launcher.startup_timeout_ms"
        ),
    )
    if "cleanup_events" in launcher:
        options.cleanup_events = validate_cleanup_events(
            launcher["cleanup_events"], "launcher.cleanup_events"
        )

    config_env_var = launcher.get("config_env_var", "ENGINE_CONFIG")
    if not isinstance(config_env_var, str) or not config_env_var:
        raise ValidationError(
            "launcher.config_env_var must be a non-empty string",
            field_name="launcher.config_env_var",
            value=config_env_var
        )

    return SupervisorConfig(
        executable=executable,
        engine_config=engine_config,
        options=options,
        config_env_var=config_env_var,
    )


def load_supervisor_config(config_path: Path) -> SupervisorConfig:
    """
    Load a launcher TOML file.

    Args:
        config_path: Path to the launcher TOML file

    Returns:
        Validated SupervisorConfig
    """
    config_path = Path(config_path)
    data = load_toml_file(config_path, "launcher configuration file")
    return parse_supervisor_config(data, config_path.parent)
