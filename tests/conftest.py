import os

import pytest

from runfromyaml.errors import ExecutionError
from runfromyaml.sinks import Sink


class StubExecutor:
    """Records every call instead of touching processes or files."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def run(self, argv):
        argv = list(argv)
        self.calls.append(("run", argv))
        if self.fail_on is not None and self.fail_on(argv):
            raise ExecutionError(argv, output="boom", exit_code=1)

    def write(self, path, data, mode):
        self.calls.append(("write", path, data, mode))

    @property
    def argvs(self):
        return [c[1] for c in self.calls if c[0] == "run"]


class RecordingSink(Sink):
    def __init__(self, level="info", debug=False):
        super().__init__(level, debug)
        self.events = []
        self.closed = False

    def describe(self, op, text):
        self.events.append(("describe", op.index, text))

    def command(self, argv):
        self.events.append(("command", list(argv)))

    def output(self, argv, text):
        self.events.append(("output", list(argv), text))

    def created(self, path):
        self.events.append(("created", path))

    def warning(self, message, op=None):
        self.events.append(("warning", message))

    def error(self, err, op=None):
        self.events.append(("error", err.kind, op.index if op else None))

    def debug(self, message):
        if self.debug_enabled:
            self.events.append(("debug", message))

    def close(self):
        self.closed = True

    def of(self, kind):
        return [e for e in self.events if e[0] == kind]


@pytest.fixture(autouse=True)
def restore_environ():
    """Runs write os.environ; put it back after every test."""
    saved = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def stub():
    return StubExecutor()


@pytest.fixture
def sink():
    return RecordingSink()
