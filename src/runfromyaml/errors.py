# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence


TOOL_HINTS = {
    "bash": "Install bash or fix PATH.",
    "sh": "Install a POSIX shell or fix PATH.",
    "docker": "Install Docker and ensure the daemon is running.",
    "ssh": "Install an OpenSSH client or fix PATH.",
}


@dataclass(eq=False)
class RunFromYAMLError(Exception):
    """
    Structured error with enough context for:
      - clean CLI output
      - structured sink records
      - debugging without re-running the document
    """
    kind: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


class DocumentError(RunFromYAMLError):
    """The input could not be turned into a workflow document."""

    def __init__(self, message: str, **details: Any):
        super().__init__(kind="document", message=message, details=details)


class ValidationError(RunFromYAMLError):
    """An operation breaks a document contract. Raised before anything runs."""

    def __init__(self, index: int, rule: str, op_type: Optional[str] = None):
        details: Dict[str, Any] = {"operation": index}
        if op_type is not None:
            details["type"] = op_type
        super().__init__(
            kind="validation",
            message=f"command block {index}: {rule}",
            details=details,
        )
        self.index = index
        self.rule = rule


class ExecutionError(RunFromYAMLError):
    """A subprocess could not be spawned or exited non-zero."""

    def __init__(
        self,
        argv: Sequence[str],
        output: str = "",
        exit_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"argv": " ".join(argv)}
        if exit_code is not None:
            details["exit_code"] = exit_code
        if output:
            details["output"] = output.rstrip("\n")
        if exit_code is None:
            hint = TOOL_HINTS.get(argv[0] if argv else "")
            if hint:
                details["hint"] = hint
        message = reason or (
            f"command exited with status {exit_code}" if exit_code is not None else "command failed"
        )
        super().__init__(kind="execution", message=message, details=details)
        self.argv = list(argv)
        self.output = output
        self.exit_code = exit_code


class ConfigWriteError(RunFromYAMLError):
    """Writing a `conf` destination failed."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            kind="config_write",
            message=f"could not write {path}: {reason}",
            details={"path": path},
        )
        self.path = path
        self.reason = reason
