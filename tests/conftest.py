import asyncio
from typing import Any, List, Tuple

import pytest
import pytest_asyncio

from parachute.lifecycle.shutdown_coordinator import ShutdownCoordinator
from parachute.models.config import ShutdownConfig
from parachute.models.enums import LogLevel
from parachute.models.events import Event
from parachute.utils.logger import configure_logger

# After this timeout the coordinator should force the exit
DEFAULT_TIMEOUT = 0.2
# Duration of the exit task in graceful scenarios
DEFAULT_TASK_TIME = 0.05
# Acceptable difference between expected and measured durations
TIME_MARGIN = 0.05


@pytest.fixture(autouse=True)
def plain_logger():
    """No ANSI codes in captured output; debug lines help when a test fails."""
    configure_logger(min_level=LogLevel.DEBUG, use_colors=False)
    yield
    configure_logger()


class EventRecorder:
    """Collects every published event, in order."""

    def __init__(self) -> None:
        self.events: List[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [e.type.value for e in self.events]

    def pairs(self) -> List[Tuple[str, Any]]:
        return [(e.type.value, e.payload) for e in self.events]

    def of(self, kind: str) -> List[Event]:
        return [e for e in self.events if e.type.value == kind]


class ExitRecorder:
    """Stands in for the process-exit primitive."""

    def __init__(self) -> None:
        self.outcomes = []

    def __call__(self, outcome) -> None:
        self.outcomes.append(outcome)


@pytest.fixture
def exits() -> ExitRecorder:
    return ExitRecorder()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest_asyncio.fixture
async def coordinator(exits, recorder):
    coord = ShutdownCoordinator(
        ShutdownConfig(timeout=DEFAULT_TIMEOUT),
        exit_handler=exits
    )
    coord.events.subscribe_all(recorder)
    yield coord
    coord.release()
    # Let a cancelled, abandoned exit task unwind before the loop closes
    await asyncio.sleep(0)


def sleeper(duration: float, done: list = None):
    """Exit task handler that takes `duration` seconds."""
    async def close():
        await asyncio.sleep(duration)
        if done is not None:
            done.append(duration)
    return close
