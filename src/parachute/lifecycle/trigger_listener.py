"""
Trigger listener: turns termination causes into shutdown requests.

Sources:
- OS signals (SIGTERM, SIGINT, SIGHUP by default)
- uncaught exceptions: loop callbacks, worker threads, the main task
- unhandled async errors: "Task exception was never retrieved"
- Logger.fatal() calls

Fatal errors are not handled inline. They are reported, then funnelled
into the same path as an externally delivered SIGTERM, so every trigger
reaches ShutdownCoordinator.request_shutdown() the same way.
"""

from __future__ import annotations

import asyncio
import signal
import threading
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from parachute.models.config import ShutdownConfig
from parachute.models.enums import ShutdownCause
from parachute.models.events import EventType, FatalErrorEvent, SignalEvent
from parachute.runtime.runtime_info import RuntimeInfo
from parachute.utils.logger import get_logger, LogCategory

if TYPE_CHECKING:
    from parachute.lifecycle.shutdown_coordinator import ShutdownCoordinator

log = get_logger().for_category(LogCategory.SIGNAL)

# Fatal channel → (event kind, shutdown cause)
FATAL_CHANNELS = {
    ShutdownCause.UNCAUGHT_EXCEPTION: EventType.UNCAUGHT_EXCEPTION,
    ShutdownCause.UNHANDLED_REJECTION: EventType.UNHANDLED_REJECTION,
    ShutdownCause.FATAL_LOG: EventType.FATAL_LOG,
}

LoopExceptionHandler = Callable[[asyncio.AbstractEventLoop, Dict[str, Any]], Any]


class TriggerListener:
    """
    Binds signal handlers and fatal error hooks for one coordinator.

    Created and bound by ShutdownCoordinator.prepare(). Handlers are left in
    place after the first trigger: the coordinator's one-shot guard makes
    repeated firings no-ops.
    """

    def __init__(self, coordinator: "ShutdownCoordinator", config: ShutdownConfig):
        self._coordinator = coordinator
        self._config = config
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._loop_signals: List[signal.Signals] = []
        self._fallback_signals: Dict[signal.Signals, Any] = {}
        self._exception_handler_installed = False
        self._previous_exception_handler: Optional[LoopExceptionHandler] = None
        self._previous_thread_hook: Optional[Callable] = None
        self._fatal_log_hooked = False

    @property
    def signals(self) -> List[signal.Signals]:
        """Signals currently bound."""
        return self._loop_signals + list(self._fallback_signals)

    @property
    def bound(self) -> bool:
        return self._loop is not None

    # -----------------------------
    # Binding
    # -----------------------------
    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        Install all handlers.

        Args:
            loop: Event loop that runs the application
        """
        if self._loop is not None:
            raise RuntimeError("TriggerListener already bound")
        self._loop = loop

        self._bind_signals(loop)

        if self._config.catch_uncaught_exceptions or self._config.catch_unhandled_rejections:
            self._previous_exception_handler = loop.get_exception_handler()
            loop.set_exception_handler(self._on_loop_exception)
            self._exception_handler_installed = True

        if self._config.catch_uncaught_exceptions:
            self._previous_thread_hook = threading.excepthook
            threading.excepthook = self._on_thread_exception

        if self._config.catch_fatal_logs:
            get_logger().add_fatal_listener(self._on_fatal_log)
            self._fatal_log_hooked = True

    def _bind_signals(self, loop: asyncio.AbstractEventLoop) -> None:
        for name in self._config.signals:
            if not RuntimeInfo.has_signal(name):
                log.debug(f"Signal {name} not available on this platform, skipped")

        for sig in self._config.signal_numbers:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
                self._loop_signals.append(sig)
            except NotImplementedError:
                # Windows event loops: plain handler, hop onto the loop
                self._fallback_signals[sig] = signal.signal(sig, self._on_raw_signal)

        log.debug(
            "Signal handlers installed",
            signals=", ".join(s.name for s in self.signals)
        )

    def unbind(self) -> None:
        """Restore every handler replaced by bind()."""
        if self._loop is None:
            return
        loop = self._loop

        for sig in self._loop_signals:
            if not loop.is_closed():
                loop.remove_signal_handler(sig)
        for sig, previous in self._fallback_signals.items():
            signal.signal(sig, previous)
        self._loop_signals.clear()
        self._fallback_signals.clear()

        if self._exception_handler_installed:
            loop.set_exception_handler(self._previous_exception_handler)
            self._exception_handler_installed = False

        if self._previous_thread_hook is not None:
            threading.excepthook = self._previous_thread_hook
            self._previous_thread_hook = None

        if self._fatal_log_hooked:
            get_logger().remove_fatal_listener(self._on_fatal_log)
            self._fatal_log_hooked = False

        self._loop = None

    def watch(self, task: asyncio.Future) -> None:
        """
        Treat an exception escaping task as uncaught.

        Used for the application's main task, whose failure would otherwise
        end the event loop without running any exit task.
        """
        task.add_done_callback(self._on_watched_task_done)

    # -----------------------------
    # Signal path
    # -----------------------------
    def _on_raw_signal(self, signum: int, frame) -> None:
        self._call_soon(self._on_signal, signal.Signals(signum))

    def _on_signal(self, sig: signal.Signals) -> None:
        self._dispatch(sig, ShutdownCause.SIGNAL)

    def _dispatch(
        self,
        sig: signal.Signals,
        cause: ShutdownCause,
        error: Optional[BaseException] = None
    ) -> None:
        """Single entry into the coordinator for every trigger."""
        self._coordinator.events.publish(SignalEvent(sig))
        log.info(f"Signal {sig.name} received → triggering shutdown")
        self._coordinator.request_shutdown(sig, cause=cause, error=error)

    # -----------------------------
    # Fatal error path
    # -----------------------------
    def _on_fatal(
        self,
        cause: ShutdownCause,
        error: Optional[BaseException],
        message: Optional[str] = None
    ) -> None:
        event_type = FATAL_CHANNELS[cause]
        self._coordinator.events.publish(FatalErrorEvent(event_type, error, message))

        if cause is not ShutdownCause.FATAL_LOG:
            # Fatal log lines are already written by Logger.fatal()
            details = [repr(error)] if error is not None else []
            log.error(message or f"Fatal error: {event_type.value}", details=details)
        log.info(f"Proceeding to graceful exit after {event_type.value}")

        # Same path as an external SIGTERM
        self._dispatch(signal.SIGTERM, cause, error)

    def _on_loop_exception(
        self,
        loop: asyncio.AbstractEventLoop,
        context: Dict[str, Any]
    ) -> None:
        error = context.get("exception")
        if error is None:
            # Plain asyncio warning, nothing fatal
            self._forward_loop_exception(loop, context)
            return

        if "future" in context or "task" in context:
            if not self._config.catch_unhandled_rejections:
                self._forward_loop_exception(loop, context)
                return
            self._on_fatal(ShutdownCause.UNHANDLED_REJECTION, error, context.get("message"))
        else:
            if not self._config.catch_uncaught_exceptions:
                self._forward_loop_exception(loop, context)
                return
            self._on_fatal(ShutdownCause.UNCAUGHT_EXCEPTION, error, context.get("message"))

    def _forward_loop_exception(
        self,
        loop: asyncio.AbstractEventLoop,
        context: Dict[str, Any]
    ) -> None:
        if self._previous_exception_handler is not None:
            self._previous_exception_handler(loop, context)
        else:
            loop.default_exception_handler(context)

    def _on_thread_exception(self, args) -> None:
        """threading.excepthook replacement."""
        if issubclass(args.exc_type, SystemExit):
            return
        thread_name = args.thread.name if args.thread else "?"
        scheduled = self._call_soon(
            self._on_fatal,
            ShutdownCause.UNCAUGHT_EXCEPTION,
            args.exc_value,
            f"Uncaught exception in thread {thread_name}"
        )
        if not scheduled and self._previous_thread_hook is not None:
            self._previous_thread_hook(args)

    def _on_watched_task_done(self, task: asyncio.Future) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            log.debug("Main task returned, waiting for a shutdown trigger")
            return
        if not self._config.catch_uncaught_exceptions:
            log.error("Main task failed", details=[repr(error)])
            return
        self._on_fatal(ShutdownCause.UNCAUGHT_EXCEPTION, error, "Uncaught exception in main task")

    def _on_fatal_log(self, message: str, error: Optional[BaseException]) -> None:
        # Logger.fatal() may be called from any thread
        self._call_soon(self._on_fatal, ShutdownCause.FATAL_LOG, error, message)

    def _call_soon(self, callback: Callable, *args) -> bool:
        """Schedule callback on the bound loop from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return False
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            # Loop closed between the check and the call
            return False
        return True
