"""
Listening service simulation driven by the process tests.

Runs a parachute-managed event loop and takes orders from stdin, one per
line:

    addTask <seconds>            register an exit task that takes <seconds>
    addBlockingTask <seconds>    same, with a plain function that blocks
    addExitingTask <status>      register an exit task that calls sys.exit(<status>)
    provokeUncaughtException     raise inside a loop callback
    provokeUnhandledRejection    let a failed task be garbage collected
    provokeThreadException       raise inside a worker thread
    provokeFatalLog              log a FATAL line

Every lifecycle event is written to stdout as one JSON object per line;
log output goes to stderr.
"""

import argparse
import asyncio
import gc
import json
import sys
import threading
import time

from parachute import ShutdownConfig, run
from parachute.models.enums import LogCategory
from parachute.utils.logger import configure_logger, get_logger


def emit(message: dict) -> None:
    print(json.dumps(message, default=repr), flush=True)


def emit_event(event) -> None:
    emit({"event": event.type.value, "value": event.payload})


class FakeService:
    """Pretends to close a listener with pending work."""

    def __init__(self, duration: float):
        self.duration = duration

    async def close(self):
        await asyncio.sleep(self.duration)
        emit({"event": "taskDone", "value": self.duration})


async def failing():
    raise RuntimeError("Unhandled rejection example")


def handle_command(coordinator, words):
    loop = asyncio.get_running_loop()
    command, args = words[0], words[1:]

    if command == "addTask":
        service = FakeService(float(args[0]))
        coordinator.register_task("whatever", service.close)
        emit({"event": "taskAdded", "value": service.duration})

    elif command == "addBlockingTask":
        duration = float(args[0])

        def block():
            time.sleep(duration)
            emit({"event": "taskDone", "value": duration})
        coordinator.register_task("blocking", block)
        emit({"event": "taskAdded", "value": duration})

    elif command == "addExitingTask":
        status = int(args[0])
        coordinator.register_task("exiting", lambda: sys.exit(status))
        emit({"event": "taskAdded", "value": status})

    elif command == "provokeUncaughtException":
        def boom():
            raise RuntimeError("Uncaught exception example")
        loop.call_soon(boom)

    elif command == "provokeUnhandledRejection":
        # No reference kept: the failure is reported when the task is collected
        loop.create_task(failing())
        loop.call_later(0.01, gc.collect)

    elif command == "provokeThreadException":
        def crash():
            raise RuntimeError("Thread exception example")
        threading.Thread(target=crash, name="crashing-worker").start()

    elif command == "provokeFatalLog":
        get_logger().fatal(LogCategory.GENERAL, "Fatal log example")

    else:
        emit({"event": "unknownCommand", "value": command})


def read_commands(loop, coordinator):
    for line in sys.stdin:
        words = line.split()
        if words:
            loop.call_soon_threadsafe(handle_command, coordinator, words)


async def main(coordinator):
    coordinator.events.subscribe_all(emit_event)

    reader = threading.Thread(
        target=read_commands,
        args=(asyncio.get_running_loop(), coordinator),
        daemon=True
    )
    reader.start()

    emit({"event": "ready"})
    await asyncio.Event().wait()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="parachute fake service")
    parser.add_argument("--timeout", type=float, default=0.2)
    args = parser.parse_args()

    configure_logger(use_colors=False, stream=sys.stderr)
    run(main, ShutdownConfig(timeout=args.timeout, log_level="DEBUG"))
