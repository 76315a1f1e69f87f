"""
Lifecycle events published by the shutdown coordinator.

Every trigger and every step of the shutdown sequence is published as an
event so that logging, metrics and tests can observe it without touching
control flow.
"""

from __future__ import annotations

import signal
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from parachute.models.exit_task import ShutdownOutcome


class EventType(Enum):
    """Event kinds. Values are the external (wire) names."""
    SIGNAL = "signal"
    SHUTDOWN = "shutdown"
    TASK_START = "taskStart"
    TIMEOUT = "timeout"
    UNCAUGHT_EXCEPTION = "uncaughtException"
    UNHANDLED_REJECTION = "unhandledRejection"
    FATAL_LOG = "fatalLog"
    TASK_ERROR = "taskError"
    EXIT = "exit"


FATAL_EVENT_TYPES = frozenset({
    EventType.UNCAUGHT_EXCEPTION,
    EventType.UNHANDLED_REJECTION,
    EventType.FATAL_LOG,
})


@dataclass
class Event:
    """
    Base event class

    All events inherit from this and must specify:
    - type: EventType (what kind of event)
    - data: dict (event-specific payload)
    - timestamp: float (when it happened)
    """
    type: EventType
    data: Dict[str, Any]
    timestamp: float

    @property
    def payload(self) -> Any:
        """Single value handed to external consumers (IPC, metrics)."""
        return self.data or None


@dataclass
class SignalEvent(Event):
    """OS signal received (or self-delivered after a fatal error)"""

    def __init__(self, sig: signal.Signals):
        super().__init__(
            type=EventType.SIGNAL,
            data={"signal": sig},
            timestamp=time.time()
        )

    @property
    def signal(self) -> signal.Signals:
        return self.data["signal"]

    @property
    def payload(self) -> str:
        return self.signal.name


@dataclass
class ShutdownEvent(Event):
    """Shutdown sequence started"""

    def __init__(self, timeout: float):
        super().__init__(
            type=EventType.SHUTDOWN,
            data={"timeout": timeout},
            timestamp=time.time()
        )

    @property
    def timeout(self) -> float:
        return self.data["timeout"]

    @property
    def payload(self) -> Dict[str, float]:
        return {"timeout": self.timeout}


@dataclass
class TaskStartEvent(Event):
    """Exit task about to run"""

    def __init__(self, title: str):
        super().__init__(
            type=EventType.TASK_START,
            data={"title": title},
            timestamp=time.time()
        )

    @property
    def title(self) -> str:
        return self.data["title"]

    @property
    def payload(self) -> str:
        return self.title


@dataclass
class TaskErrorEvent(Event):
    """Exit task handler raised"""

    def __init__(self, title: str, error: BaseException):
        super().__init__(
            type=EventType.TASK_ERROR,
            data={"title": title, "error": error},
            timestamp=time.time()
        )

    @property
    def title(self) -> str:
        return self.data["title"]

    @property
    def error(self) -> BaseException:
        return self.data["error"]


@dataclass
class TimeoutEvent(Event):
    """Countdown elapsed before the exit tasks finished"""

    def __init__(self):
        super().__init__(
            type=EventType.TIMEOUT,
            data={},
            timestamp=time.time()
        )


@dataclass
class FatalErrorEvent(Event):
    """Fatal runtime error caught by one of the error channels"""

    def __init__(
        self,
        event_type: EventType,
        error: Optional[BaseException],
        message: Optional[str] = None
    ):
        if event_type not in FATAL_EVENT_TYPES:
            raise ValueError(f"{event_type.name} is not a fatal error event")
        super().__init__(
            type=event_type,
            data={"error": error, "message": message},
            timestamp=time.time()
        )

    @property
    def error(self) -> Optional[BaseException]:
        return self.data["error"]

    @property
    def message(self) -> Optional[str]:
        return self.data["message"]

    @property
    def payload(self) -> Optional[BaseException]:
        return self.error


@dataclass
class ExitEvent(Event):
    """Shutdown race decided; process is about to exit"""

    def __init__(self, outcome: "ShutdownOutcome"):
        super().__init__(
            type=EventType.EXIT,
            data={"outcome": outcome},
            timestamp=time.time()
        )

    @property
    def outcome(self) -> "ShutdownOutcome":
        return self.data["outcome"]

    @property
    def payload(self) -> Dict[str, Any]:
        return {"code": self.outcome.exit_code, "reason": self.outcome.reason.name}
