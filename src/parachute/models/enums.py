"""
Enums shared across parachute
"""

from enum import Enum, auto


class LogLevel(Enum):
    """Log severity levels"""
    DEBUG = auto()
    INFO = auto()
    WARN = auto()
    ERROR = auto()
    FATAL = auto()


class LogCategory(Enum):
    """Log categories for grouping related events"""
    CONFIG = auto()      # Configuration loading, validation
    SYSTEM = auto()      # Startup, process exit
    SIGNAL = auto()      # OS signals and fatal error channels
    SHUTDOWN = auto()    # Shutdown sequence, countdown
    LIFECYCLE = auto()
    TASK = auto()        # Exit task registration and execution
    EVENT = auto()       # Event bus events and handling

    GENERAL = auto()    # Default general category


class ShutdownState(Enum):
    """Coordinator state machine"""
    IDLE = auto()
    SHUTTING_DOWN = auto()
    TERMINATED = auto()


class ShutdownCause(Enum):
    """What made the coordinator start shutting down"""
    SIGNAL = auto()
    UNCAUGHT_EXCEPTION = auto()
    UNHANDLED_REJECTION = auto()
    FATAL_LOG = auto()

    @property
    def is_fatal(self) -> bool:
        return self is not ShutdownCause.SIGNAL


class ExitReason(Enum):
    """How the shutdown race ended"""
    GRACEFUL = auto()       # every task completed before the countdown
    TASK_FAILURE = auto()   # every task ran, at least one of them failed
    TIMEOUT = auto()        # countdown elapsed first
