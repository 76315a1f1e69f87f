"""
The demo service runs when imported as a module, not only as a script.
"""

import asyncio
import functools
import importlib.util
import os
import signal
import sys
from pathlib import Path

import pytest

from parachute.models.config import ShutdownConfig
from parachute.runner import serve

SAMPLE = Path(__file__).resolve().parents[1] / "samples" / "generic_service.py"


def load_sample():
    spec = importlib.util.spec_from_file_location("generic_service", SAMPLE)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
@pytest.mark.asyncio
async def test_generic_service_closes_on_sigterm():
    sample = load_sample()
    asyncio.get_running_loop().call_later(0.05, os.kill, os.getpid(), signal.SIGTERM)

    outcome = await serve(
        functools.partial(sample.main, close_time=0.01),
        ShutdownConfig(timeout=1),
        exit_handler=None
    )

    assert outcome.exit_code == 0
    assert outcome.graceful
