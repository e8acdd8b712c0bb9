"""
Command-line interface for proxylauncher.

Runs a child binary in the foreground under a ProcessSupervisor: prints the
URL it listens on, restarts it when it crashes, and stops it when this
process is interrupted or terminated.

Usage:
    proxylauncher --launcher-config launcher.toml
    proxylauncher /usr/local/bin/engineproxy --engine-config engine.json -- -extra-flag
"""

import argparse
import asyncio
import logging
import sys
import tomllib
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..config import load_supervisor_config
from ..models.config import LauncherOptions, SupervisorConfig
from ..orchestration import INVALID_CONFIG_EXIT_CODE, ProcessSupervisor
from ..validation import (
    ConfigurationError,
    ErrorSeverity,
    LauncherError,
    ValidationError,
    handle_cli_error,
    handle_error,
    validate_executable,
    validate_startup_timeout,
)

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def split_extra_args(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split argv at the first "--"; everything after it goes to the child."""
    argv = list(argv)
    if "--" in argv:
        index = argv.index("--")
        return argv[:index], argv[index + 1:]
    return argv, []


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proxylauncher",
        description="Run a proxy binary, wait until it listens, and restart it when it crashes.",
        epilog="Arguments after '--' are passed to the child unchanged.",
    )
    parser.add_argument(
        "executable",
        nargs="?",
        help="Binary to supervise. Not needed with --launcher-config.",
    )
    parser.add_argument(
        "-c",
        "--launcher-config",
        type=Path,
        help="TOML file with a [launcher] section describing what to run.",
    )
    parser.add_argument(
        "--engine-config",
        type=str,
        help="Config file passed to the child as -config=<path>.",
    )
    parser.add_argument(
        "--startup-timeout",
        type=float,
        help="Milliseconds to wait for the child to listen (default 5000, <= 0 disables).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for the launcher itself.",
    )
    return parser


def build_config(args: argparse.Namespace, extra_args: List[str]) -> SupervisorConfig:
    """
    Turn parsed arguments into a SupervisorConfig.

    Command-line values override the launcher TOML file.

    Raises:
        ValidationError: If the arguments do not describe a runnable child
    """
    if args.launcher_config is not None:
        config = load_supervisor_config(args.launcher_config)
        if args.executable:
            config.executable = validate_executable(args.executable)
        if args.engine_config:
            config.engine_config = args.engine_config
    else:
        if not args.executable:
            raise ValidationError("An executable or --launcher-config is required",
                                  field_name="executable")
        if not args.engine_config:
            raise ValidationError("--engine-config is required without --launcher-config",
                                  field_name="engine_config")
        config = SupervisorConfig(
            executable=validate_executable(args.executable),
            engine_config=args.engine_config,
            options=LauncherOptions(),
        )

    if args.startup_timeout is not None:
        config.options.startup_timeout = validate_startup_timeout(
            args.startup_timeout, "--startup-timeout"
        )
    config.options.extra_args.extend(extra_args)
    return config


async def run_supervisor(config: SupervisorConfig) -> int:
    """
    Supervise the configured child until it fails for good or is stopped.

    Returns:
        Process exit status for the launcher
    """
    supervisor = ProcessSupervisor.from_config(config)
    fatal_errors: List[Exception] = []
    supervisor.add_listener("restarting", lambda notice: logger.warning(f"{notice}; restarting"))
    supervisor.add_listener("error", fatal_errors.append)

    try:
        address = await supervisor.start(config.options)
    except ConfigurationError as e:
        handle_error(e, "starting child", ErrorSeverity.ERROR, reraise=False, logger=logger)
        return INVALID_CONFIG_EXIT_CODE
    except (LauncherError, OSError) as e:
        handle_error(e, "starting child", ErrorSeverity.ERROR, reraise=False, logger=logger)
        return 1

    logger.info(f"Child is listening on {address.url}")
    print(address.url, flush=True)

    await supervisor.wait_closed()
    for error in fatal_errors:
        logger.error(f"Supervision ended: {error}")
        if isinstance(error, ConfigurationError):
            return INVALID_CONFIG_EXIT_CODE
    return 1 if fatal_errors else 0


def main_cli(argv: Optional[Sequence[str]] = None) -> None:
    """
    Entry point of the ``proxylauncher`` command.

    Raises:
        SystemExit: With the launcher's exit status
    """
    own_args, extra_args = split_extra_args(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(own_args)
    setup_logging(args.log_level)

    try:
        config = build_config(args, extra_args)
    except (ValidationError, FileNotFoundError, tomllib.TOMLDecodeError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=2,
            logger=logger,
        )

    sys.exit(asyncio.run(run_supervisor(config)))


if __name__ == "__main__":
    main_cli()
