"""
Shutdown coordinator that drives the graceful exit of the process.

On the first accepted trigger it starts a countdown and, in parallel, runs
every registered exit task one by one in FIFO order. Whichever finishes
first decides the exit status:

- all tasks done first   → 0 (signal) or 1 (fatal error / failed task)
- countdown fires first  → 1, in-flight task abandoned

The decision is handed to an exit handler as a ShutdownOutcome; the default
handler terminates the process.
"""

import asyncio
import inspect
import signal
from typing import Any, Callable, List, Optional, Tuple

from parachute.lifecycle.errors import FatalRuntimeError, TaskHandlerFailure
from parachute.lifecycle.process_exit import exit_process
from parachute.lifecycle.task_registry import TaskRegistry
from parachute.lifecycle.trigger_listener import TriggerListener
from parachute.models.config import ShutdownConfig
from parachute.models.enums import ExitReason, ShutdownCause, ShutdownState
from parachute.models.events import (
    Event,
    EventType,
    ExitEvent,
    ShutdownEvent,
    TaskErrorEvent,
    TaskStartEvent,
    TimeoutEvent,
)
from parachute.models.exit_task import ExitTask, ShutdownOutcome
from parachute.services.event_bus import EventBus
from parachute.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)

ExitHandler = Callable[[ShutdownOutcome], Any]


class ShutdownCoordinator:
    """
    Coordinates the graceful exit of the process.

    One instance per process: build it at startup, call prepare() to bind
    the trigger listener, register exit tasks while the application runs.

    Example:
        coordinator = ShutdownCoordinator(ShutdownConfig(timeout=10))
        coordinator.prepare()

        coordinator.register_task("close server", server.close)

        @coordinator.on_shutdown("flush metrics")
        async def flush():
            await metrics.flush()

        await coordinator.wait_for_shutdown()
    """

    def __init__(
        self,
        config: Optional[ShutdownConfig] = None,
        *,
        event_bus: Optional[EventBus] = None,
        registry: Optional[TaskRegistry] = None,
        exit_handler: Optional[ExitHandler] = exit_process
    ):
        """
        Initialize shutdown coordinator.

        Args:
            config: Shutdown options (timeout, signals, error channels)
            event_bus: Event notifier (a private one is created if omitted)
            registry: Exit task registry (a private one is created if omitted)
            exit_handler: Called once with the final outcome. Defaults to
                exit_process(); None keeps the process alive so callers can
                act on wait_for_shutdown() themselves.
        """
        self.config = config or ShutdownConfig()
        self.events = event_bus if event_bus is not None else EventBus()
        self.registry = registry if registry is not None else TaskRegistry()
        self._exit_handler = exit_handler

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._listener: Optional[TriggerListener] = None

        self._state = ShutdownState.IDLE
        self._cause: Optional[ShutdownCause] = None
        self._signal: Optional[signal.Signals] = None
        self._error: Optional[FatalRuntimeError] = None
        self._failures: List[TaskHandlerFailure] = []
        self._started_at = 0.0

        self._outcome: Optional[asyncio.Future] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._runner: Optional[asyncio.Task] = None

    # -----------------------------
    # State
    # -----------------------------
    @property
    def state(self) -> ShutdownState:
        return self._state

    @property
    def is_shutting_down(self) -> bool:
        """One-shot guard: True from the first accepted trigger on."""
        return self._state is not ShutdownState.IDLE

    @property
    def timeout(self) -> float:
        return self.config.timeout

    @property
    def cause(self) -> Optional[ShutdownCause]:
        return self._cause

    @property
    def listener(self) -> Optional[TriggerListener]:
        return self._listener

    # -----------------------------
    # Task registration
    # -----------------------------
    def register_task(self, title: str, handler: Callable[[], Any]) -> ExitTask:
        """
        Add a task to be run on process exit.

        Tasks run one by one in registration order. The handler may be a
        coroutine function or a plain function; plain functions run in the
        default executor so a blocking one cannot stall the countdown. An
        awaitable returned by a plain function is awaited on the loop.

        Raises:
            InvalidTaskError: Empty title, missing or non-callable handler
        """
        return self.registry.add(title, handler)

    def add_task(self, task: ExitTask) -> ExitTask:
        """Object form of register_task()."""
        return self.registry.register(task)

    def on_shutdown(self, title: Any = None):
        """
        Register a function as exit task (decorator).

        The task title defaults to the function name.

        Example:
            @coordinator.on_shutdown
            async def close_db():
                await db.close()

            @coordinator.on_shutdown("drain queue")
            def drain():
                queue.drain()
        """
        if callable(title):
            func = title
            self.register_task(func.__name__, func)
            return func

        def decorator(func: Callable[[], Any]):
            self.register_task(func.__name__ if title is None else title, func)
            return func

        return decorator

    def subscribe(
        self,
        event_type: Optional[EventType],
        handler: Callable[[Event], None],
        priority: int = 0
    ) -> None:
        """Observe lifecycle events (shortcut for events.subscribe())."""
        self.events.subscribe(event_type, handler, priority=priority)

    # -----------------------------
    # Trigger binding
    # -----------------------------
    def prepare(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Attach the graceful exit to signals and fatal error channels.

        Must be called once, from the main thread, with the loop that will
        run the application (defaults to the running loop).

        Raises:
            RuntimeError: Called twice, or no running loop
        """
        if self._listener is not None:
            raise RuntimeError("ShutdownCoordinator.prepare() already called")

        self._loop = loop or asyncio.get_running_loop()
        self._listener = TriggerListener(self, self.config)
        self._listener.bind(self._loop)

        log.info(
            "Graceful exit prepared",
            timeout=self.config.timeout,
            signals=", ".join(s.name for s in self._listener.signals) or "-"
        )

    activate = prepare

    def release(self) -> None:
        """
        Unbind the trigger listener and drop anything still scheduled.

        Only needed when the process outlives the coordinator (tests,
        embedding hosts using exit_handler=None).
        """
        if self._listener is not None:
            self._listener.unbind()
            self._listener = None
        if self._timer is not None:
            self._timer.cancel()
        if self._runner is not None and not self._runner.done():
            self._runner.cancel()

    # -----------------------------
    # Shutdown entry point
    # -----------------------------
    def request_shutdown(
        self,
        sig: signal.Signals = signal.SIGTERM,
        cause: ShutdownCause = ShutdownCause.SIGNAL,
        error: Optional[BaseException] = None
    ) -> bool:
        """
        Start the exit process.

        Every trigger (signal or fatal error) ends up here. Only the first
        call is accepted; later ones are ignored.

        Must run on the event loop thread.

        Args:
            sig: Signal that caused the shutdown (SIGTERM for fatal errors)
            cause: Trigger kind; fatal causes force exit status 1
            error: Fatal error value, if any

        Returns:
            True if shutdown started, False if one is already running
        """
        if self._state is not ShutdownState.IDLE:
            log.debug(f"Shutdown already in progress, {sig.name} ignored")
            return False

        loop = self._loop = self._loop or asyncio.get_running_loop()

        self._state = ShutdownState.SHUTTING_DOWN
        self._cause = cause
        self._signal = sig
        if cause.is_fatal:
            self._error = FatalRuntimeError(cause.name, error)

        tasks = self.registry.freeze()
        self._started_at = loop.time()
        self._ensure_outcome(loop)

        log.warn(
            f"Finishing application execution. Waiting {self.config.timeout:g} "
            f"seconds for graceful exit",
            cause=cause.name,
            signal=sig.name,
            tasks=len(tasks)
        )
        self.events.publish(ShutdownEvent(self.config.timeout))

        # Independent countdown; task completion does not cancel it
        self._timer = loop.call_later(self.config.timeout, self._on_timeout)
        self._runner = loop.create_task(self._run_tasks(tasks))
        return True

    async def wait_for_shutdown(self) -> ShutdownOutcome:
        """Wait until the shutdown race is decided and return its outcome."""
        outcome = self._ensure_outcome(asyncio.get_running_loop())
        return await asyncio.shield(outcome)

    # -----------------------------
    # Task path
    # -----------------------------
    async def _run_tasks(self, tasks: Tuple[ExitTask, ...]) -> None:
        """Run all exit tasks one by one in FIFO order."""
        for task in tasks:
            if self._state is not ShutdownState.SHUTTING_DOWN:
                return

            self.events.publish(TaskStartEvent(task.title))
            log.with_category(LogCategory.TASK).info(f'Running closing task "{task.title}"')

            try:
                await self._call_handler(task.handler)
            except asyncio.CancelledError:
                raise
            except BaseException as e:
                # SystemExit and KeyboardInterrupt from a handler count as failures too
                if self._state is not ShutdownState.SHUTTING_DOWN:
                    return
                failure = TaskHandlerFailure(task.title, e)
                self._failures.append(failure)
                log.with_category(LogCategory.TASK).error(failure.message)
                self.events.publish(TaskErrorEvent(task.title, e))
                # Continue with the remaining tasks

        if self._state is not ShutdownState.SHUTTING_DOWN:
            return

        if self._failures:
            self._settle(self._build_outcome(1, ExitReason.TASK_FAILURE))
        else:
            code = 1 if self._cause.is_fatal else 0
            self._settle(self._build_outcome(code, ExitReason.GRACEFUL))

    async def _call_handler(self, handler: Callable[[], Any]) -> None:
        if inspect.iscoroutinefunction(handler):
            await handler()
            return

        # Off the loop thread, so the countdown keeps running
        result = await self._loop.run_in_executor(None, handler)
        if inspect.isawaitable(result):
            await result

    # -----------------------------
    # Timer path
    # -----------------------------
    def _on_timeout(self) -> None:
        """Some task failed to finish in time."""
        if self._state is not ShutdownState.SHUTTING_DOWN:
            return

        self.events.publish(TimeoutEvent())
        # NOTE: Not POSIX compliant. A signal-caused exit should return
        # 128 + signal number.
        log.warn(
            "Unable to exit gracefully. Forcing the exit",
            timeout=self.config.timeout
        )
        self._settle(self._build_outcome(1, ExitReason.TIMEOUT))

    # -----------------------------
    # Outcome
    # -----------------------------
    def _ensure_outcome(self, loop: asyncio.AbstractEventLoop) -> asyncio.Future:
        if self._outcome is None:
            self._outcome = loop.create_future()
        return self._outcome

    def _build_outcome(self, exit_code: int, reason: ExitReason) -> ShutdownOutcome:
        error: Optional[BaseException] = self._error
        if error is None and self._failures:
            error = self._failures[0]

        return ShutdownOutcome(
            exit_code=exit_code,
            reason=reason,
            cause=self._cause,
            signal=self._signal,
            failed_tasks=tuple(f.title for f in self._failures),
            elapsed=self._loop.time() - self._started_at,
            error=error,
        )

    def _settle(self, outcome: ShutdownOutcome) -> None:
        """Record the winner of the race and hand it to the exit handler."""
        if self._state is ShutdownState.TERMINATED:
            return
        self._state = ShutdownState.TERMINATED

        if self._outcome is not None and not self._outcome.done():
            self._outcome.set_result(outcome)

        self.events.publish(ExitEvent(outcome))
        log.info("Shutdown sequence complete", details=[outcome.describe()])

        if self._exit_handler is not None:
            self._exit_handler(outcome)
