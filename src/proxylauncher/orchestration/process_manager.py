"""
Process management for the orchestration module.

This module builds the child's argument vector and environment, spawns it
with the readiness pipe attached, and provides the termination helpers the
supervisor uses.
"""

import asyncio
import json
import logging
import os
import signal
import subprocess
from typing import Dict, List, Mapping, Optional, Tuple

import psutil

from ..models.config import EngineConfig, LauncherOptions
from ..validation import ChildCrashedError
from .shared_state import CONFIG_FLAG, CONFIG_FROM_ENV, LISTENING_REPORTER_FLAG
from .stream_relay import StreamRelay

logger = logging.getLogger(__name__)


def signal_name(signum: int) -> str:
    """Return "SIGTERM" for 15, or the bare number for unknown signals."""
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


def describe_exit(returncode: int) -> ChildCrashedError:
    """
    Describe an unexpected child exit.

    asyncio reports death-by-signal as a negative return code.
    """
    if returncode < 0:
        name = signal_name(-returncode)
        return ChildCrashedError(
            f"Child was killed unexpectedly by signal: {name}",
            signal_name=name,
        )
    return ChildCrashedError(
        f"Child crashed unexpectedly with code: {returncode}",
        exit_code=returncode,
    )


class ProcessManager:
    """
    Knows how to launch one instance of the child binary.

    The supervisor calls spawn() for the initial start and for every restart,
    so everything here is stateless apart from the launch parameters.
    """

    def __init__(self, executable: str, engine_config: EngineConfig,
                 config_env_var: str = "ENGINE_CONFIG"):
        self.executable = executable
        self.engine_config = engine_config
        self.config_env_var = config_env_var

    def _config_is_path(self) -> bool:
        return isinstance(self.engine_config, (str, os.PathLike))

    def build_command(self, reporter_fd: int, extra_args: Optional[List[str]] = None) -> List[str]:
        """
        Build the child's argument vector.

        Args:
            reporter_fd: Descriptor number the child writes its readiness message to
            extra_args: Caller arguments, appended last

        Returns:
            The full argv, executable first
        """
        args = [self.executable, f"{LISTENING_REPORTER_FLAG}={reporter_fd}"]
        if self._config_is_path():
            # The child watches the file itself and reloads on change.
            args.append(f"{CONFIG_FLAG}={os.fspath(self.engine_config)}")
        else:
            args.append(f"{CONFIG_FLAG}={CONFIG_FROM_ENV}")
        args.extend(extra_args or [])
        return args

    def build_environment(self, extra_env: Optional[Mapping[str, str]] = None,
                          base_env: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Build the child's environment.

        Starts from ``base_env`` (our own environment by default), adds the
        serialized inline config if there is one, and lets ``extra_env``
        override anything.
        """
        env = dict(os.environ if base_env is None else base_env)
        if not self._config_is_path():
            env[self.config_env_var] = json.dumps(self.engine_config)
        env.update(extra_env or {})
        return env

    async def spawn(self, options: LauncherOptions,
                    relay: StreamRelay) -> Tuple[asyncio.subprocess.Process, int]:
        """
        Start the child process.

        Returns:
            The process and the read end of its readiness pipe. The caller owns
            the descriptor.

        Raises:
            OSError: If the executable cannot be started
        """
        read_fd, write_fd = os.pipe()
        try:
            args = self.build_command(write_fd, options.extra_args)
            env = self.build_environment(options.extra_env)
            stdout, stderr = relay.stdio_targets()

            logger.info(f"Starting child: {' '.join(args)}")
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
                env=env,
                pass_fds=(write_fd,),
            )
        except BaseException:
            os.close(read_fd)
            raise
        finally:
            # Only the child keeps the write end; EOF on read_fd then means
            # the child closed it or exited.
            os.close(write_fd)

        logger.info(f"Child started with PID: {process.pid}")
        return process, read_fd

    def send_signal(self, process: asyncio.subprocess.Process, sig: int) -> bool:
        """
        Send ``sig`` to a child spawned by this manager.

        Returns:
            False if the process was already gone
        """
        try:
            process.send_signal(sig)
            logger.debug(f"Sent {signal_name(sig)} to PID {process.pid}")
            return True
        except ProcessLookupError:
            logger.debug(f"PID {process.pid} already exited, {signal_name(sig)} not sent")
            return False

    def terminate_nowait(self, pid: int) -> bool:
        """
        Ask a process to terminate without waiting for it.

        Goes through psutil rather than the asyncio transport so it still
        works from atexit or an excepthook, after the event loop has closed.

        Returns:
            True if SIGTERM was delivered
        """
        try:
            psutil.Process(pid).terminate()
            logger.debug(f"Sent SIGTERM to PID {pid}")
            return True
        except psutil.NoSuchProcess:
            logger.debug(f"PID {pid} already terminated")
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending SIGTERM to PID {pid}")
        return False
