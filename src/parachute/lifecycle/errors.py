"""
Lifecycle error types.

Registration-time errors are raised to the caller. Fatal runtime errors are
never raised from here; they are wrapped in FatalRuntimeError only to be
carried on the shutdown outcome.
"""

from typing import Optional


class LifecycleError(Exception):
    """Base class for parachute errors"""
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidTaskError(LifecycleError):
    """Exit task is malformed (no title, no handler, handler not callable)"""
    def __init__(self, message: str, title: Optional[str] = None):
        super().__init__(
            code="INVALID_TASK",
            message=message,
            details={"title": title}
        )


class ShutdownInProgressError(LifecycleError):
    """Exit task registered after shutdown already started"""
    def __init__(self, title: str):
        super().__init__(
            code="SHUTDOWN_IN_PROGRESS",
            message=f"Cannot register exit task '{title}': shutdown already started",
            details={"title": title}
        )


class TaskHandlerFailure(LifecycleError):
    """Exit task handler raised while shutting down"""
    def __init__(self, title: str, error: BaseException):
        super().__init__(
            code="TASK_HANDLER_FAILED",
            message=f"Exit task '{title}' failed: {error!r}",
            details={"title": title, "error_type": type(error).__name__}
        )
        self.title = title
        self.__cause__ = error


class FatalRuntimeError(LifecycleError):
    """Fatal error that forced the process into shutdown"""
    def __init__(self, cause: str, error: Optional[BaseException]):
        super().__init__(
            code="FATAL_RUNTIME_ERROR",
            message=f"{cause}: {error!r}",
            details={"cause": cause}
        )
        self.cause = cause
        self.error = error
        self.__cause__ = error


class ConfigError(LifecycleError):
    """Shutdown configuration is invalid"""
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            code="INVALID_CONFIG",
            message=message,
            details={"field": field}
        )
