from .enums import LogLevel, LogCategory, ShutdownState, ShutdownCause, ExitReason
from .events import (
    Event,
    EventType,
    SignalEvent,
    ShutdownEvent,
    TaskStartEvent,
    TaskErrorEvent,
    TimeoutEvent,
    FatalErrorEvent,
    ExitEvent,
)
from .exit_task import ExitTask, ShutdownOutcome

__all__ = [
    "LogLevel",
    "LogCategory",
    "ShutdownState",
    "ShutdownCause",
    "ExitReason",
    "Event",
    "EventType",
    "SignalEvent",
    "ShutdownEvent",
    "TaskStartEvent",
    "TaskErrorEvent",
    "TimeoutEvent",
    "FatalErrorEvent",
    "ExitEvent",
    "ExitTask",
    "ShutdownOutcome",
]
