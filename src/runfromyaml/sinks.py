# sinks.py
from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, TextIO

from .errors import ExecutionError, RunFromYAMLError
from .model import Operation, OutputType
from .ui.console import Console, get_console

# document level -> logging level
LEVELS: Dict[str, int] = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}


def log_file_path(directory: str | Path | None = None, when: Optional[datetime] = None) -> Path:
    """Dated log file used by the structured-file sink."""
    when = when or datetime.now()
    base = Path(directory) if directory is not None else Path(tempfile.gettempdir())
    return base / f"runfromyaml-{when:%Y%m%d}.log"


class JsonFormatter(logging.Formatter):
    """One JSON object per record: level, msg, optional time, then context fields."""

    def __init__(self, timestamps: bool = True):
        super().__init__()
        self.timestamps = timestamps

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
            "msg": record.getMessage(),
        }
        if self.timestamps:
            payload["time"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        payload.update(getattr(record, "fields", {}) or {})
        return json.dumps(payload, default=str, ensure_ascii=False)


class Sink:
    """
    Output destination for one run.

    Interactive sinks let subprocesses inherit the terminal; the other sinks
    get combined stdout/stderr handed to `output` after the process exits.
    """

    interactive = False

    def __init__(self, level: str = "info", debug: bool = False):
        self.level = level
        self.debug_enabled = debug

    def describe(self, op: Operation, text: str) -> None:
        raise NotImplementedError

    def command(self, argv: Sequence[str]) -> None:
        raise NotImplementedError

    def output(self, argv: Sequence[str], text: str) -> None:
        raise NotImplementedError

    def created(self, path: str) -> None:
        raise NotImplementedError

    def warning(self, message: str, op: Optional[Operation] = None) -> None:
        raise NotImplementedError

    def error(self, err: RunFromYAMLError, op: Optional[Operation] = None) -> None:
        raise NotImplementedError

    def debug(self, message: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# ---------------------------------------------------------------------
# Interactive
# ---------------------------------------------------------------------

class ConsoleSink(Sink):
    interactive = True

    def __init__(self, level: str = "info", debug: bool = False, console: Optional[Console] = None):
        super().__init__(level, debug)
        self.console = console or get_console()

    def describe(self, op: Operation, text: str) -> None:
        self.console.print_operation(text)

    def command(self, argv: Sequence[str]) -> None:
        self.console.print_command(" ".join(argv))

    def output(self, argv: Sequence[str], text: str) -> None:
        if text:
            self.console.print_output(text)

    def created(self, path: str) -> None:
        self.console.print_created(path)

    def warning(self, message: str, op: Optional[Operation] = None) -> None:
        self.console.print_warning(message)

    def error(self, err: RunFromYAMLError, op: Optional[Operation] = None) -> None:
        label = op.label if op is not None else err.kind
        exit_code = err.exit_code if isinstance(err, ExecutionError) else None
        self.console.print_failure(
            label,
            str(err),
            exit_code=exit_code,
            hint=err.details.get("hint"),
        )

    def debug(self, message: str) -> None:
        if self.debug_enabled:
            self.console.print_info(f"[DEBUG] {message}")


# ---------------------------------------------------------------------
# Structured (file / HTTP response)
# ---------------------------------------------------------------------

class StructuredSink(Sink):
    """Severity-tagged JSON records written through a logging handler."""

    def __init__(
        self,
        handler: logging.Handler,
        level: str = "info",
        debug: bool = False,
        timestamps: bool = True,
    ):
        super().__init__(level, debug)
        self._levelno = LEVELS.get(level, logging.INFO)
        handler.setFormatter(JsonFormatter(timestamps=timestamps))
        self._handler = handler
        # not registered with logging.getLogger: one private logger per run
        self._logger = logging.Logger("runfromyaml.sink")
        self._logger.propagate = False
        # warnings and errors are never filtered out
        threshold = logging.DEBUG if debug else min(self._levelno, logging.WARNING)
        self._logger.setLevel(threshold)
        self._logger.addHandler(handler)

    def _record(self, levelno: int, msg: str, **fields: Any) -> None:
        self._logger.log(levelno, msg, extra={"fields": fields})

    @staticmethod
    def _op_fields(op: Optional[Operation]) -> Dict[str, Any]:
        if op is None:
            return {}
        return {"operation": op.index, "type": op.type, "name": op.name}

    def describe(self, op: Operation, text: str) -> None:
        self._record(self._levelno, text, **self._op_fields(op))

    def command(self, argv: Sequence[str]) -> None:
        self._record(self._levelno, "command", argv=list(argv))

    def output(self, argv: Sequence[str], text: str) -> None:
        self._record(self._levelno, text, argv=list(argv))

    def created(self, path: str) -> None:
        self._record(self._levelno, f"create {path}", path=path)

    def warning(self, message: str, op: Optional[Operation] = None) -> None:
        self._record(logging.WARNING, message, **self._op_fields(op))

    def error(self, err: RunFromYAMLError, op: Optional[Operation] = None) -> None:
        fields = self._op_fields(op)
        fields.update(err.details)
        fields["kind"] = err.kind
        self._record(logging.ERROR, err.message, **fields)

    def debug(self, message: str) -> None:
        if self.debug_enabled:
            self._record(logging.DEBUG, message)

    def close(self) -> None:
        self._handler.flush()
        self._logger.removeHandler(self._handler)
        self._handler.close()


class FileSink(StructuredSink):
    """Appends records to a dated log file in the temp directory."""

    def __init__(self, level: str = "info", debug: bool = False, directory: str | Path | None = None):
        self.path = log_file_path(directory)
        try:
            handler: logging.Handler = logging.FileHandler(self.path, mode="a", encoding="utf-8")
        except OSError as e:
            get_console().print_warning(f"failed to log to {self.path} ({e}), using stderr")
            handler = logging.StreamHandler(sys.stderr)
        super().__init__(handler, level=level, debug=debug, timestamps=True)


class ResponseSink(StructuredSink):
    """Writes records to the response stream of the request that started the run."""

    def __init__(self, stream: TextIO, level: str = "info", debug: bool = False):
        self.stream = stream
        super().__init__(logging.StreamHandler(stream), level=level, debug=debug, timestamps=False)


def make_sink(
    output: OutputType,
    level: str = "info",
    *,
    debug: bool = False,
    stream: Optional[TextIO] = None,
    log_dir: str | Path | None = None,
    console: Optional[Console] = None,
) -> Sink:
    if output is OutputType.REST:
        if stream is not None:
            return ResponseSink(stream, level=level, debug=debug)
        # no request bound to this run
        (console or get_console()).print_warning("rest output without an HTTP response, using stdout")
        output = OutputType.STDOUT
    if output is OutputType.FILE:
        return FileSink(level=level, debug=debug, directory=log_dir)
    return ConsoleSink(level=level, debug=debug, console=console)
