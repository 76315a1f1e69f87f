"""
Task Registry
-------------

Ordered list of exit tasks run by the shutdown coordinator.

- Tasks are validated when registered and never mutated afterwards
- Insertion order is execution order (FIFO); no dedup, no reordering
- The registry is frozen once shutdown starts
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, List, Tuple

from parachute.lifecycle.errors import InvalidTaskError, ShutdownInProgressError
from parachute.models.exit_task import ExitTask
from parachute.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.TASK)


class TaskRegistry:
    """
    Append-only registry of exit tasks.

    Example:
        registry = TaskRegistry()
        registry.add("close server", server.close)
        registry.register(ExitTask("flush queue", queue.flush))
    """

    def __init__(self) -> None:
        self._tasks: List[ExitTask] = []
        self._frozen = False

    @staticmethod
    def validate(task: ExitTask) -> None:
        """Raise InvalidTaskError if task cannot be run."""
        title = getattr(task, "title", None)
        if not title or not isinstance(title, str):
            raise InvalidTaskError("Exit task has no title")

        handler = getattr(task, "handler", None)
        if handler is None:
            raise InvalidTaskError(f"Exit task '{title}' has no handler", title)
        if not callable(handler):
            raise InvalidTaskError(f"Exit task '{title}' handler is not callable", title)

    def register(self, task: ExitTask) -> ExitTask:
        """
        Validate and append a task.

        Args:
            task: Task definition (title + handler)

        Returns:
            The registered task

        Raises:
            InvalidTaskError: Missing/empty title, missing or non-callable handler
            ShutdownInProgressError: Registry already frozen by a running shutdown
        """
        self.validate(task)
        if self._frozen:
            raise ShutdownInProgressError(task.title)

        self._tasks.append(task)
        log.debug(f"Registered exit task #{len(self._tasks)}: {task.title}")
        return task

    def add(self, title: str, handler: Callable[[], Any]) -> ExitTask:
        """Build and register a task in a single call."""
        return self.register(ExitTask(title=title, handler=handler))

    def freeze(self) -> Tuple[ExitTask, ...]:
        """Reject further registrations and return the tasks to run."""
        self._frozen = True
        return self.snapshot()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def snapshot(self) -> Tuple[ExitTask, ...]:
        """Return tasks in execution order."""
        return tuple(self._tasks)

    def titles(self) -> List[str]:
        return [t.title for t in self._tasks]

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[ExitTask]:
        return iter(self.snapshot())
