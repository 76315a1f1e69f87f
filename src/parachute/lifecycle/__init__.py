"""
Lifecycle subsystem
-------------------

Exports the public API for:
- graceful shutdown (coordinator + trigger listener)
- exit task registration
- lifecycle errors

External code should import from:
    from parachute.lifecycle import ShutdownCoordinator, TaskRegistry
"""

from .errors import (
    LifecycleError,
    InvalidTaskError,
    ShutdownInProgressError,
    TaskHandlerFailure,
    FatalRuntimeError,
    ConfigError,
)
from .task_registry import TaskRegistry
from .process_exit import exit_process
from .trigger_listener import TriggerListener
from .shutdown_coordinator import ShutdownCoordinator

__all__ = [
    "ShutdownCoordinator",
    "TriggerListener",
    "TaskRegistry",
    "exit_process",
    "LifecycleError",
    "InvalidTaskError",
    "ShutdownInProgressError",
    "TaskHandlerFailure",
    "FatalRuntimeError",
    "ConfigError",
]
