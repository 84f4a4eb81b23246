# executor.py
from __future__ import annotations

import os
import subprocess
from typing import Sequence

from .environment import Environment
from .errors import ConfigWriteError, ExecutionError
from .sinks import Sink


class SubprocessExecutor:
    """
    Runs argument vectors and writes config files for one run.

    Each call blocks until the child exits. There is no timeout: a hung
    ssh or docker invocation blocks the whole run.
    """

    def __init__(self, env: Environment, sink: Sink):
        self.env = env
        self.sink = sink

    def run(self, argv: Sequence[str]) -> None:
        argv = list(argv)
        if not argv:
            return
        child_env = self.env.subprocess_env()

        try:
            if self.sink.interactive:
                # live view: child shares our stdin/stdout/stderr
                proc = subprocess.run(argv, env=child_env)
                output = ""
            else:
                proc = subprocess.run(
                    argv,
                    env=child_env,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                )
                output = proc.stdout or ""
        except OSError as e:
            raise ExecutionError(argv, reason=f"failed to start: {e.strerror or e}") from e

        if proc.returncode != 0:
            raise ExecutionError(argv, output=output, exit_code=proc.returncode)

        if not self.sink.interactive:
            self.sink.output(argv, output)

    def write(self, path: str, data: bytes, mode: int) -> None:
        """Single attempt, no retry. The final mode is exact (umask does not apply)."""
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(path, mode)
        except OSError as e:
            raise ConfigWriteError(path, e.strerror or str(e)) from e
