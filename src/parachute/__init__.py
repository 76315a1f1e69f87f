"""
parachute
---------

Graceful exit for asyncio processes: catch termination signals and fatal
errors, run registered exit tasks in order, and never hang past a timeout.
"""

from parachute.lifecycle import (
    ShutdownCoordinator,
    TaskRegistry,
    TriggerListener,
    exit_process,
    LifecycleError,
    InvalidTaskError,
    ShutdownInProgressError,
    TaskHandlerFailure,
    FatalRuntimeError,
    ConfigError,
)
from parachute.managers.config_manager import ConfigManager, load_config
from parachute.models.config import ShutdownConfig
from parachute.models.enums import ExitReason, ShutdownCause, ShutdownState
from parachute.models.events import EventType
from parachute.models.exit_task import ExitTask, ShutdownOutcome
from parachute.runner import run, serve
from parachute.services.event_bus import EventBus

__version__ = "1.0.0"

__all__ = [
    "ShutdownCoordinator",
    "TaskRegistry",
    "TriggerListener",
    "EventBus",
    "EventType",
    "ExitTask",
    "ShutdownOutcome",
    "ShutdownConfig",
    "ShutdownState",
    "ShutdownCause",
    "ExitReason",
    "ConfigManager",
    "load_config",
    "exit_process",
    "run",
    "serve",
    "LifecycleError",
    "InvalidTaskError",
    "ShutdownInProgressError",
    "TaskHandlerFailure",
    "FatalRuntimeError",
    "ConfigError",
]
