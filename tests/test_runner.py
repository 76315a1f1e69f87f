"""
Top-level driver: serve()/run() around an application coroutine.
"""

import asyncio
import os
import signal
import sys

import pytest

from parachute.models.config import ShutdownConfig
from parachute.models.enums import ExitReason, LogLevel, ShutdownCause
from parachute.runner import run, serve
from parachute.utils.logger import get_logger


@pytest.mark.asyncio
async def test_serve_returns_outcome_after_request():
    closed = []

    async def main(coordinator):
        coordinator.register_task("close", lambda: closed.append(True))
        await asyncio.sleep(0.01)
        coordinator.request_shutdown(signal.SIGINT)

    outcome = await serve(main, ShutdownConfig(timeout=1), exit_handler=None)

    assert closed == [True]
    assert outcome.exit_code == 0
    assert outcome.signal is signal.SIGINT


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
@pytest.mark.asyncio
async def test_serve_until_sigterm():
    ran = []

    async def main(coordinator):
        @coordinator.on_shutdown
        async def close_server():
            await asyncio.sleep(0.01)
            ran.append("close_server")

        asyncio.get_running_loop().call_later(0.05, os.kill, os.getpid(), signal.SIGTERM)
        await asyncio.Event().wait()

    outcome = await serve(main, ShutdownConfig(timeout=1), exit_handler=None)

    assert ran == ["close_server"]
    assert outcome.exit_code == 0
    assert outcome.reason is ExitReason.GRACEFUL
    assert outcome.signal is signal.SIGTERM


@pytest.mark.asyncio
async def test_main_failure_is_uncaught_exception():
    ran = []

    async def main(coordinator):
        coordinator.register_task("close", lambda: ran.append("close"))
        raise ConnectionRefusedError("database down")

    outcome = await serve(main, ShutdownConfig(timeout=1), exit_handler=None)

    assert ran == ["close"]
    assert outcome.exit_code == 1
    assert outcome.cause is ShutdownCause.UNCAUGHT_EXCEPTION
    assert isinstance(outcome.error.error, ConnectionRefusedError)


@pytest.mark.asyncio
async def test_timeout_in_serve():
    async def main(coordinator):
        coordinator.register_task("hang", asyncio.Event().wait)
        coordinator.request_shutdown()

    outcome = await serve(main, ShutdownConfig(timeout=0.05), exit_handler=None)

    assert outcome.exit_code == 1
    assert outcome.reason is ExitReason.TIMEOUT


def test_run_applies_log_level_and_returns_outcome():
    async def main(coordinator):
        coordinator.request_shutdown()

    outcome = run(main, ShutdownConfig(timeout=1, log_level="ERROR"), exit_handler=None)

    assert outcome.exit_code == 0
    assert get_logger().min_level is LogLevel.ERROR
