"""
Process termination primitive.

The coordinator never exits on its own; it hands its ShutdownOutcome to an
exit handler. This is the default one.
"""

import os
import sys

from parachute.models.exit_task import ShutdownOutcome
from parachute.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SYSTEM)


def exit_process(outcome: ShutdownOutcome) -> None:
    """
    Terminate the process immediately with the outcome's exit status.

    os._exit() is used rather than sys.exit(): a handler abandoned by the
    countdown may still be running, and nothing (pending tasks, executor
    threads, atexit hooks) may hold the process open after this point.
    """
    log.info(f"Exiting with status {outcome.exit_code}", details=[outcome.describe()])

    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass

    os._exit(outcome.exit_code)
