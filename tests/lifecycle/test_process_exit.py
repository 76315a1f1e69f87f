"""
Black-box tests: spawn fake_service.py, trigger it, and examine how the
process exits (status code and time from trigger to exit).
"""

import json
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import pytest

pytestmark = [
    pytest.mark.process,
    pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals"),
]

SERVICE = Path(__file__).with_name("fake_service.py")
SRC = Path(__file__).resolve().parents[2] / "src"

# After this timeout the service should force the exit
DEFAULT_TIMEOUT = 0.2
# Duration of the graceful exit task
DEFAULT_TASK_TIME = 0.05
# Child processes are slower to react than in-process loops
TIME_MARGIN = 0.15


class Service:
    """Handle on a running fake_service.py process."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC), env.get("PYTHONPATH")]))
        env["PYTHONUNBUFFERED"] = "1"

        self.proc = subprocess.Popen(
            [sys.executable, str(SERVICE), "--timeout", str(timeout)],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            env=env,
            text=True,
            bufsize=1,
        )
        self.events = []
        self.wait_for("ready")

    def read_event(self) -> dict:
        line = self.proc.stdout.readline()
        if not line:
            raise AssertionError("fake service closed its output")
        event = json.loads(line)
        self.events.append(event)
        return event

    def wait_for(self, kind: str) -> dict:
        while True:
            event = self.read_event()
            if event["event"] == kind:
                return event

    def send(self, *words) -> None:
        self.proc.stdin.write(" ".join(str(w) for w in words) + "\n")
        self.proc.stdin.flush()

    def add_task(self, duration: float) -> None:
        self.send("addTask", duration)
        self.wait_for("taskAdded")

    def examine_exit(self, behaviour) -> tuple:
        """Run behaviour, return (exit code, seconds until the process exited)."""
        start = time.monotonic()
        behaviour()
        code = self.proc.wait(timeout=10)
        duration = time.monotonic() - start

        for line in self.proc.stdout:
            self.events.append(json.loads(line))
        return code, duration

    def kinds(self):
        return [e["event"] for e in self.events]

    def kill(self):
        if self.proc.poll() is None:
            self.proc.kill()
            self.proc.wait()
        for stream in (self.proc.stdin, self.proc.stdout):
            stream.close()


@pytest.fixture
def service():
    svc = Service()
    yield svc
    # Kill it if the test failed before it exited
    svc.kill()


def expect_duration_within(duration, expected, margin=TIME_MARGIN):
    assert expected - 0.02 <= duration <= expected + margin


@pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGHUP, signal.SIGINT])
def test_graceful_exit_on_signal(service, sig):
    service.add_task(DEFAULT_TASK_TIME)

    code, duration = service.examine_exit(lambda: service.proc.send_signal(sig))

    expect_duration_within(duration, DEFAULT_TASK_TIME)
    # Not POSIX compliant
    assert code == 0
    assert service.kinds()[-5:] == ["signal", "shutdown", "taskStart", "taskDone", "exit"]
    assert service.events[-5]["value"] == sig.name


@pytest.mark.parametrize("command, event", [
    ("provokeUncaughtException", "uncaughtException"),
    ("provokeUnhandledRejection", "unhandledRejection"),
    ("provokeThreadException", "uncaughtException"),
    ("provokeFatalLog", "fatalLog"),
])
def test_graceful_exit_on_fatal_error(service, command, event):
    service.add_task(DEFAULT_TASK_TIME)

    code, duration = service.examine_exit(lambda: service.send(command))

    expect_duration_within(duration, DEFAULT_TASK_TIME)
    assert code == 1
    kinds = service.kinds()
    assert kinds.index(event) < kinds.index("signal") < kinds.index("shutdown")
    assert "taskDone" in kinds
    assert "timeout" not in kinds


def test_forced_exit_after_timeout(service):
    service.add_task(DEFAULT_TIMEOUT * 2)

    code, duration = service.examine_exit(lambda: service.proc.send_signal(signal.SIGTERM))

    expect_duration_within(duration, DEFAULT_TIMEOUT)
    assert code == 1
    assert "timeout" in service.kinds()
    assert "taskDone" not in service.kinds()


def test_second_signal_does_not_restart_shutdown(service):
    service.add_task(DEFAULT_TASK_TIME * 2)

    def double_signal():
        service.proc.send_signal(signal.SIGTERM)
        time.sleep(0.02)
        service.proc.send_signal(signal.SIGINT)

    code, duration = service.examine_exit(double_signal)

    expect_duration_within(duration, DEFAULT_TASK_TIME * 2)
    assert code == 0
    assert service.kinds().count("shutdown") == 1
    assert service.kinds().count("taskStart") == 1


def test_no_tasks_exits_right_away(service):
    code, duration = service.examine_exit(lambda: service.proc.send_signal(signal.SIGTERM))

    expect_duration_within(duration, 0)
    assert code == 0


def test_blocking_task_forced_exit_after_timeout(service):
    service.send("addBlockingTask", DEFAULT_TIMEOUT * 2)
    service.wait_for("taskAdded")

    code, duration = service.examine_exit(lambda: service.proc.send_signal(signal.SIGTERM))

    expect_duration_within(duration, DEFAULT_TIMEOUT)
    assert code == 1
    assert "timeout" in service.kinds()
    assert "taskDone" not in service.kinds()


def test_task_calling_sys_exit_keeps_exit_contract(service):
    service.send("addExitingTask", 7)
    service.wait_for("taskAdded")
    service.add_task(DEFAULT_TASK_TIME)

    code, duration = service.examine_exit(lambda: service.proc.send_signal(signal.SIGTERM))

    expect_duration_within(duration, DEFAULT_TASK_TIME)
    assert code == 1
    kinds = service.kinds()
    assert kinds.index("taskError") < kinds.index("taskDone") < kinds.index("exit")
