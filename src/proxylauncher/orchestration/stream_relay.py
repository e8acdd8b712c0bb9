"""
Optional forwarding of the child's stdout/stderr to caller-supplied sinks.
"""

import asyncio
import logging
import subprocess
from typing import IO, List, Optional, Tuple

from ..validation import ErrorSeverity, handle_error
from .shared_state import TimeoutConstants

logger = logging.getLogger(__name__)


class StreamRelay:
    """
    Pipes child output into sinks without ever closing them.

    A stream without a sink is not intercepted at all: the child inherits our
    own stdout/stderr, which costs nothing and keeps its output visible even
    if this process dies. The same sinks are reused by every respawned child,
    so their lifecycle stays with the caller.
    """

    def __init__(self, stdout_sink: Optional[IO[bytes]] = None,
                 stderr_sink: Optional[IO[bytes]] = None):
        self.stdout_sink = stdout_sink
        self.stderr_sink = stderr_sink

    def stdio_targets(self) -> Tuple[Optional[int], Optional[int]]:
        """Return the stdout/stderr arguments for spawning the child."""
        stdout = subprocess.PIPE if self.stdout_sink is not None else None
        stderr = subprocess.PIPE if self.stderr_sink is not None else None
        return stdout, stderr

    def attach(self, process: asyncio.subprocess.Process) -> List[asyncio.Task]:
        """
        Start forwarding tasks for the piped streams of ``process``.

        Returns:
            One task per relayed stream; each finishes at the child's EOF
        """
        tasks = []
        if self.stdout_sink is not None and process.stdout is not None:
            tasks.append(asyncio.create_task(
                self._pump(process.stdout, self.stdout_sink, f"stdout of PID {process.pid}")
            ))
        if self.stderr_sink is not None and process.stderr is not None:
            tasks.append(asyncio.create_task(
                self._pump(process.stderr, self.stderr_sink, f"stderr of PID {process.pid}")
            ))
        return tasks

    async def _pump(self, stream: asyncio.StreamReader, sink: IO[bytes], name: str) -> None:
        # A failing sink stops forwarding, but the pipe is still drained so
        # the child never blocks on a full pipe buffer.
        forwarding = True
        while True:
            chunk = await stream.read(TimeoutConstants.PIPE_READ_CHUNK)
            if not chunk:
                break
            if not forwarding:
                continue
            try:
                sink.write(chunk)
                flush = getattr(sink, "flush", None)
                if flush is not None:
                    flush()
            except (OSError, ValueError, TypeError) as e:
                forwarding = False
                handle_error(
                    error=e,
                    context=f"relaying {name}",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger
                )
        logger.debug(f"Finished relaying {name}")
