"""
Signal handling for the orchestration module.

This module makes sure the supervised child is stopped before our own
process goes away, whether that happens through a signal, an uncaught
exception, or a normal interpreter exit.
"""

import asyncio
import atexit
import logging
import os
import signal
import sys
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Set

from ..validation import (
    EXIT_EVENT,
    FAULT_EVENT,
    ErrorSeverity,
    UsageError,
    handle_error,
    validate_cleanup_event,
)

if TYPE_CHECKING:
    from .supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)


class SignalRelay:
    """
    Installs one-shot termination hooks on behalf of a ProcessSupervisor.

    Each distinct event gets exactly one handler, however often it appears in
    the configured list. A handler removes itself the first time it fires, so
    a signal re-delivered to ourselves after cleanup reaches the default
    disposition instead of this relay.

    Supported events:
    - "exit": interpreter shutdown (atexit); the child is only signalled
    - "uncaught_exception": sys.excepthook; the child is signalled, then the
      exception goes to the previous hook unchanged
    - "SIG*": loop signal handlers; the child is stopped and awaited, then the
      signal is sent to ourselves again so our exit status reflects it
    """

    def __init__(self, target: "ProcessSupervisor", events: Iterable[str],
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        self.target = target
        self.events = list(events)
        self._loop = loop
        # event name -> function removing that event's hook
        self._removers: Dict[str, Callable[[], None]] = {}
        self._pending: Set[asyncio.Task] = set()

    @property
    def installed_events(self) -> List[str]:
        return list(self._removers)

    def install(self) -> None:
        """Install a hook for every distinct configured event."""
        loop = self._loop or asyncio.get_running_loop()
        for event in self.events:
            if event in self._removers:
                continue
            validate_cleanup_event(event)
            if event == EXIT_EVENT:
                self._removers[event] = self._install_exit_hook()
            elif event == FAULT_EVENT:
                self._removers[event] = self._install_fault_hook()
            else:
                self._removers[event] = self._install_signal_hook(loop, event)
        logger.debug(f"Cleanup hooks installed for: {', '.join(self._removers)}")

    def detach(self) -> None:
        """Remove every hook that is still installed. Safe to call repeatedly."""
        if not self._removers:
            return
        removers, self._removers = self._removers, {}
        for event, remove in removers.items():
            try:
                remove()
            except (ValueError, RuntimeError) as e:
                # Signal handlers can only be changed from the main thread.
                handle_error(
                    error=e,
                    context=f"removing {event} hook",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger
                )
        logger.debug("Cleanup hooks removed")

    def _fired(self, event: str) -> None:
        remove = self._removers.pop(event, None)
        if remove is not None:
            remove()

    def _install_exit_hook(self) -> Callable[[], None]:
        def on_exit() -> None:
            # Already running inside atexit, nothing left to unregister.
            self._removers.pop(EXIT_EVENT, None)
            if self.target.has_child:
                logger.info("Interpreter exiting, terminating child")
                self.target.stop_nowait()

        atexit.register(on_exit)
        return lambda: atexit.unregister(on_exit)

    def _install_fault_hook(self) -> Callable[[], None]:
        previous_hook = sys.excepthook

        def on_fault(exc_type, exc, tb) -> None:
            self._fired(FAULT_EVENT)
            if self.target.has_child:
                self.target.stop_nowait()
            previous_hook(exc_type, exc, tb)

        def remove() -> None:
            if sys.excepthook is on_fault:
                sys.excepthook = previous_hook

        sys.excepthook = on_fault
        return remove

    def _install_signal_hook(self, loop: asyncio.AbstractEventLoop, event: str) -> Callable[[], None]:
        signum = signal.Signals[event]
        loop.add_signal_handler(signum, self._on_signal, loop, event, signum)
        return lambda: loop.remove_signal_handler(signum)

    def _on_signal(self, loop: asyncio.AbstractEventLoop, event: str, signum: int) -> None:
        self._fired(event)
        logger.warning(f"Signal {event} received. Stopping child before exiting...")
        task = loop.create_task(self._stop_then_redeliver(signum))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _stop_then_redeliver(self, signum: int) -> None:
        if self.target.has_child:
            try:
                await self.target.stop()
            except UsageError:
                logger.debug("Child was already stopped")
        # remove_signal_handler() leaves Python's KeyboardInterrupt handler
        # on SIGINT, so reset to the OS default before re-delivering.
        signal.signal(signum, signal.SIG_DFL)
        os.kill(os.getpid(), signum)
