"""
Exit task and shutdown outcome models.
"""

from __future__ import annotations

import signal
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple

from parachute.models.enums import ExitReason, ShutdownCause


@dataclass(frozen=True)
class ExitTask:
    """Titled cleanup operation run during shutdown."""
    title: str
    handler: Callable[[], Any]


@dataclass(frozen=True)
class ShutdownOutcome:
    """
    Terminal result of a shutdown sequence.

    Handed to the exit handler, which turns it into a process exit status.
    """
    exit_code: int
    reason: ExitReason
    cause: ShutdownCause
    signal: Optional[signal.Signals] = None
    failed_tasks: Tuple[str, ...] = field(default_factory=tuple)
    elapsed: float = 0.0
    error: Optional[BaseException] = None

    @property
    def graceful(self) -> bool:
        return self.reason is ExitReason.GRACEFUL

    def describe(self) -> str:
        """Return human-readable summary for logs."""
        sig = self.signal.name if self.signal else "-"
        return (
            f"exit_code={self.exit_code}, reason={self.reason.name}, "
            f"cause={self.cause.name}, signal={sig}, elapsed={self.elapsed:.3f}s"
        )
