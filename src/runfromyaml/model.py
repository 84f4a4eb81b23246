# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class OperationType(str, Enum):
    EXEC = "exec"
    SHELL = "shell"
    DOCKER = "docker"
    DOCKER_COMPOSE = "docker-compose"
    SSH = "ssh"
    CONF = "conf"


class OutputType(str, Enum):
    STDOUT = "stdout"
    FILE = "file"
    REST = "rest"


LOG_LEVELS = ("info", "warn", "error", "debug", "trace", "fatal", "panic")


@dataclass(frozen=True)
class LoggingConfig:
    """Where run output goes and at which severity it is recorded."""
    output: OutputType = OutputType.STDOUT
    level: str = "info"


@dataclass(frozen=True)
class EnvEntry:
    key: str
    value: str


@dataclass(frozen=True)
class Operation:
    """
    One entry of the `cmd` list.

    `fields` keeps the raw block (minus `type`) so builders can read their
    type-specific options: container/command for docker, user/host/port for
    ssh, confdata/confdest/confperm for conf, and so on.
    """
    index: int                     # 1-based position in the document
    type: Optional[str]            # raw string; validated against OperationType
    name: str = ""
    desc: str = ""
    expandenv: bool = False
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> OperationType:
        return OperationType(self.type)

    @property
    def values(self) -> Any:
        return self.fields.get("values")

    def option(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    @property
    def has_values(self) -> bool:
        raw = self.values
        if raw is None:
            return False
        if isinstance(raw, (list, tuple)):
            return len(raw) > 0
        return True

    @property
    def label(self) -> str:
        return self.name or f"#{self.index}"


@dataclass(frozen=True)
class WorkflowDocument:
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    env: Tuple[EnvEntry, ...] = ()
    operations: Tuple[Operation, ...] = ()


# ---------------------------------------------------------------------
# Build output
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Command:
    """A single subprocess invocation."""
    argv: Tuple[str, ...]

    def __str__(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True)
class ConfigFile:
    """A configuration file to materialize instead of a subprocess."""
    path: str
    content: str
    mode: int = 0o644


@dataclass
class BuildResult:
    actions: List[Any] = field(default_factory=list)   # Command | ConfigFile
    warning: Optional[str] = None
