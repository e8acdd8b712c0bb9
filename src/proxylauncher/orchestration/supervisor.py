"""
Supervision of a single long-running child process.

ProcessSupervisor runs the child binary, waits until it reports the address it
listens on, restarts it whenever it exits unexpectedly, and stops it on
request or when our own process is about to go away.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set

from ..models.config import EngineConfig, LauncherOptions, SupervisorConfig
from ..models.runtime import ListeningAddress, SupervisorState
from ..validation import (
    ChannelError,
    ChildCrashedError,
    ConfigurationError,
    ErrorSeverity,
    LauncherError,
    StartupAbortedError,
    StartupTimeoutError,
    UsageError,
    handle_error,
    validate_cleanup_events,
)
from .process_manager import ProcessManager, describe_exit
from .shared_state import (
    ERROR_EVENT,
    INVALID_CONFIG_EXIT_CODE,
    NOTIFICATION_EVENTS,
    RESTARTING_EVENT,
    START_EVENT,
    resolve_startup_timeout,
)
from .signal_handler import SignalRelay
from .startup_channel import StartupChannel
from .stream_relay import StreamRelay

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


class ProcessSupervisor:
    """
    Owns the lifecycle of one child process at a time.

    Everything runs on a single asyncio event loop. The tracked child
    (``self._child``) is the only shared state; it is only reassigned in
    synchronous steps, never across an ``await``. An exit whose process is no
    longer the tracked child is expected (stop() or the startup timeout
    already let go of it) and is ignored.

    Notifications are delivered to listeners registered with add_listener():
    - "start": once, with the first ListeningAddress
    - "restarting": every unexpected exit, with a ChildCrashedError
    - "error": any failure after start() has completed
    """

    def __init__(self, executable: str, engine_config: EngineConfig,
                 config_env_var: str = "ENGINE_CONFIG"):
        self.process_manager = ProcessManager(executable, engine_config, config_env_var)
        self.spawn_count = 0
        self.address: Optional[ListeningAddress] = None

        self._child: Optional[asyncio.subprocess.Process] = None
        self._state = SupervisorState.NOT_STARTED
        self._start_called = False
        self._options = LauncherOptions()
        self._relay = StreamRelay()
        self._signal_relay: Optional[SignalRelay] = None

        # Single-assignment result of start(): readiness and the startup
        # timer race to complete it.
        self._startup: Optional[asyncio.Future] = None
        self._startup_timer: Optional[asyncio.TimerHandle] = None
        self._abandoned_child: Optional[asyncio.subprocess.Process] = None

        self._listeners: Dict[str, List[Listener]] = {event: [] for event in NOTIFICATION_EVENTS}
        self._tasks: Set[asyncio.Task] = set()
        self._closed = asyncio.Event()

    @classmethod
    def from_config(cls, config: SupervisorConfig) -> "ProcessSupervisor":
        return cls(config.executable, config.engine_config, config.config_env_var)

    # --- Introspection ---

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def has_child(self) -> bool:
        return self._child is not None

    @property
    def pid(self) -> Optional[int]:
        return self._child.pid if self._child is not None else None

    async def wait_closed(self) -> None:
        """Wait until the supervisor has stopped or failed for good."""
        await self._closed.wait()

    # --- Notifications ---

    def add_listener(self, event: str, callback: Listener) -> None:
        if event not in self._listeners:
            raise UsageError(f"Unknown event {event!r}, expected one of {NOTIFICATION_EVENTS}")
        self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    def _emit(self, event: str, payload: Any) -> bool:
        """Call every listener for ``event``. Returns whether there were any."""
        listeners = list(self._listeners[event])
        for callback in listeners:
            try:
                callback(payload)
            except Exception as e:
                handle_error(
                    error=e,
                    context=f"{event!r} listener",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger
                )
        return bool(listeners)

    # --- Public API ---

    async def start(self, options: Optional[LauncherOptions] = None) -> ListeningAddress:
        """
        Run the child and wait until it is listening.

        The child is restarted whenever it exits, unless it exits with the
        invalid-configuration code or is stopped through stop().

        Returns:
            The address the first child reported

        Raises:
            UsageError: If start() was already called on this supervisor
            ConfigurationError: If the child rejected its configuration
            StartupTimeoutError: If readiness was not reported in time
            ChannelError: If the readiness message could not be read
            StartupAbortedError: If stop() was called first
            OSError: If the executable could not be started
            RuntimeError: If signal cleanup events are requested off the
                main thread
        """
        if self._start_called:
            raise UsageError("Only call start() on a ProcessSupervisor once")
        self._start_called = True

        self._options = options or LauncherOptions()
        cleanup_events = validate_cleanup_events(self._options.effective_cleanup_events())
        self._relay = StreamRelay(self._options.stdout_sink, self._options.stderr_sink)

        loop = asyncio.get_running_loop()
        self._startup = loop.create_future()
        self._set_state(SupervisorState.STARTING)

        self._signal_relay = SignalRelay(self, cleanup_events, loop)
        try:
            self._signal_relay.install()
        except (RuntimeError, ValueError) as e:
            # Loop signal handlers need the main thread.
            self._signal_relay.detach()
            self._set_state(SupervisorState.FAILED)
            self._closed.set()
            handle_error(
                error=e,
                context="installing cleanup hooks",
                severity=ErrorSeverity.ERROR,
                reraise=True,
                logger=logger
            )

        timeout = resolve_startup_timeout(self._options.startup_timeout)
        if timeout is not None:
            self._startup_timer = loop.call_later(timeout, self._on_startup_timeout, timeout)

        try:
            try:
                process, read_fd = await self.process_manager.spawn(self._options, self._relay)
            except OSError as e:
                handle_error(
                    error=e,
                    context="starting child process",
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger
                )
                self._fail_startup(e)
            else:
                if self._startup.done():
                    # The startup window closed while the child was spawning.
                    os.close(read_fd)
                    self.process_manager.send_signal(process, signal.SIGKILL)
                    await process.wait()
                else:
                    self._track(process, read_fd)
            return await self._startup
        except LauncherError:
            abandoned, self._abandoned_child = self._abandoned_child, None
            if abandoned is not None:
                await abandoned.wait()
            raise
        finally:
            self._cancel_startup_timer()

    async def stop(self) -> None:
        """
        Stop the child and wait until it has exited.

        Raises:
            UsageError: If no child is running
        """
        child = self._release_child()
        self.process_manager.send_signal(child, signal.SIGTERM)
        returncode = await child.wait()
        logger.info(f"Child PID {child.pid} stopped with exit code {returncode}")
        self._closed.set()

    def stop_nowait(self) -> None:
        """
        Ask the child to terminate without waiting for it.

        Used from hooks that cannot await, such as atexit and sys.excepthook.

        Raises:
            UsageError: If no child is running
        """
        child = self._release_child()
        self.process_manager.terminate_nowait(child.pid)
        self._closed.set()

    def _release_child(self) -> asyncio.subprocess.Process:
        if self._child is None:
            raise UsageError("No child process is running")
        if self._signal_relay is not None:
            self._signal_relay.detach()
        # Cleared before signalling so the exit watcher treats the coming
        # exit as expected.
        child, self._child = self._child, None
        self._fail_startup(StartupAbortedError("Supervisor was stopped before the child became ready"))
        self._set_state(SupervisorState.STOPPED)
        logger.info(f"Stopping child PID {child.pid}")
        return child

    # --- Child lifecycle ---

    def _track(self, process: asyncio.subprocess.Process, read_fd: int) -> None:
        self.spawn_count += 1
        self._child = process
        self._spawn_task(self._watch_exit(process))
        self._spawn_task(self._read_readiness(process, read_fd))
        for task in self._relay.attach(process):
            self._remember(task)

    async def _watch_exit(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        self._on_child_exit(process, returncode)

    async def _read_readiness(self, process: asyncio.subprocess.Process, read_fd: int) -> None:
        try:
            channel = await StartupChannel.open(read_fd)
            report = await channel.read()
            if report is None:
                logger.debug(f"Readiness channel of PID {process.pid} closed without a message")
                return
            if process is not self._child:
                logger.debug(f"Ignoring readiness report from released PID {process.pid}")
                return
            self._on_child_ready(ListeningAddress.from_report(report))
        except ChannelError as e:
            if process is self._child:
                self._report_error(e)
            if process is self._child and process.returncode is None:
                # A child that can never report readiness is replaced like a
                # crashed one.
                logger.warning(f"Killing unready child PID {process.pid}")
                self.process_manager.send_signal(process, signal.SIGKILL)

    def _on_child_ready(self, address: ListeningAddress) -> None:
        self.address = address
        self._set_state(SupervisorState.RUNNING)
        if self._startup is not None and not self._startup.done():
            self._cancel_startup_timer()
            self._startup.set_result(address)
            logger.info(f"Child is listening on {address.url}")
            self._emit(START_EVENT, address)
        else:
            logger.info(f"Restarted child is listening on {address.url}")

    def _on_child_exit(self, process: asyncio.subprocess.Process, returncode: int) -> None:
        if process is not self._child:
            logger.debug(f"Released child PID {process.pid} exited with {returncode}")
            return

        if returncode == INVALID_CONFIG_EXIT_CODE:
            self._child = None
            if self._signal_relay is not None:
                self._signal_relay.detach()
            self._set_state(SupervisorState.FAILED)
            self._report_error(ConfigurationError(
                "Child crashed due to invalid configuration.", exit_code=returncode
            ))
            self._closed.set()
            return

        self._emit_restarting(describe_exit(returncode))
        self._set_state(SupervisorState.RESTARTING)
        self._spawn_task(self._respawn(process))

    async def _respawn(self, previous: asyncio.subprocess.Process) -> None:
        try:
            process, read_fd = await self.process_manager.spawn(self._options, self._relay)
        except OSError as e:
            if self._child is previous:
                self._child = None
                if self._signal_relay is not None:
                    self._signal_relay.detach()
                self._set_state(SupervisorState.FAILED)
                self._report_error(e)
                self._closed.set()
            return

        if self._child is not previous:
            # stop() ran while we were spawning.
            logger.info(f"Supervisor stopped during restart, killing new child PID {process.pid}")
            os.close(read_fd)
            self.process_manager.send_signal(process, signal.SIGKILL)
            await process.wait()
            return

        self._track(process, read_fd)

    def _emit_restarting(self, notice: ChildCrashedError) -> None:
        if self._emit(RESTARTING_EVENT, notice):
            logger.info(f"{notice}; restarting")
        else:
            # Nobody is listening; make sure an operator still sees it.
            print(str(notice), file=sys.stderr, flush=True)

    # --- Startup resolution ---

    def _on_startup_timeout(self, timeout: float) -> None:
        self._startup_timer = None
        timeout_ms = timeout * 1000
        self._fail_startup(StartupTimeoutError(
            f"Child did not report readiness within {timeout_ms:g} ms", timeout_ms=timeout_ms
        ))

    def _cancel_startup_timer(self) -> None:
        if self._startup_timer is not None:
            self._startup_timer.cancel()
            self._startup_timer = None

    def _fail_startup(self, error: Exception) -> bool:
        """
        Fail a pending start() with ``error``.

        A child that is still running is killed and released so it cannot
        outlive the failed start.

        Returns:
            False if start() had already completed
        """
        if self._startup is None or self._startup.done():
            return False

        self._cancel_startup_timer()
        if self._signal_relay is not None:
            self._signal_relay.detach()
        child, self._child = self._child, None
        if child is not None and child.returncode is None:
            logger.warning(f"Killing child PID {child.pid} after failed startup")
            self.process_manager.send_signal(child, signal.SIGKILL)
            self._abandoned_child = child

        self._set_state(SupervisorState.FAILED)
        self._closed.set()
        self._startup.set_exception(error)
        return True

    def _report_error(self, error: Exception) -> None:
        if self._fail_startup(error):
            return
        if not self._emit(ERROR_EVENT, error):
            handle_error(
                error=error,
                context="supervised child",
                severity=ErrorSeverity.ERROR,
                reraise=False,
                logger=logger
            )

    # --- Helpers ---

    def _set_state(self, state: SupervisorState) -> None:
        if state is not self._state:
            logger.debug(f"Supervisor state {self._state.value} -> {state.value}")
            self._state = state

    def _spawn_task(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._remember(task)
        return task

    def _remember(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            handle_error(
                error=error,
                context="supervisor background task",
                severity=ErrorSeverity.CRITICAL,
                reraise=False,
                logger=logger
            )
