"""
Workflow document parsing and validation.

A document is YAML with three top-level sections:

    logging:
      - level: info
      - output: stdout
    env:
      - key: GREETING
        value: hello
    cmd:
      - type: shell
        name: greet
        desc: say hello
        expandenv: true
        values:
          - echo $GREETING

Unknown top-level keys are ignored. Every operation is validated before
anything runs.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import DocumentError, ValidationError
from .model import (
    LOG_LEVELS,
    EnvEntry,
    LoggingConfig,
    Operation,
    OperationType,
    OutputType,
    WorkflowDocument,
)


def stringify(value: Any) -> str:
    """String form of a YAML scalar. Booleans render as true/false."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "on", "1")
    return bool(value)


def parse_port(value: Any) -> int:
    """Return a TCP port from an int or a numeric string. Raises ValueError."""
    if isinstance(value, bool):
        raise ValueError(f"invalid port {value!r}")
    port = int(value)
    if port < 1 or port > 65535:
        raise ValueError(f"invalid port {port} (must be between 1-65535)")
    return port


def parse_mode(value: Any) -> int:
    """
    Return a POSIX permission from an int (YAML already reads 0644 as octal)
    or from an octal string like "0644". Raises ValueError.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid permissions {value!r}")
    mode = int(value, 8) if isinstance(value, str) else int(value)
    if mode < 0 or mode > 0o777:
        raise ValueError(f"invalid permissions {oct(mode)} (must be between 0000-0777)")
    return mode


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------

def _parse_logging(raw: Any) -> LoggingConfig:
    if raw is None:
        return LoggingConfig()
    if not isinstance(raw, list):
        raise DocumentError("'logging' section must be a list")

    output: Optional[str] = None
    level: Optional[str] = None
    for entry in raw:
        if not isinstance(entry, dict):
            raise DocumentError("'logging' entries must be mappings", entry=entry)
        # last one wins
        if "output" in entry:
            output = stringify(entry["output"]).strip().lower()
        if "level" in entry:
            level = stringify(entry["level"]).strip().lower()

    try:
        output_type = OutputType(output) if output else OutputType.STDOUT
    except ValueError:
        raise DocumentError(
            f"invalid output type {output!r}",
            valid=", ".join(o.value for o in OutputType),
        )
    if level and level not in LOG_LEVELS:
        raise DocumentError(f"invalid log level {level!r}", valid=", ".join(LOG_LEVELS))

    return LoggingConfig(output=output_type, level=level or "info")


def _parse_env(raw: Any) -> Tuple[EnvEntry, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise DocumentError("'env' section must be a list")

    entries: List[EnvEntry] = []
    for i, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            raise DocumentError(f"env entry {i}: invalid format")
        key = item.get("key")
        if not isinstance(key, str) or not key:
            raise DocumentError(f"env entry {i}: missing or invalid 'key' field")
        entries.append(EnvEntry(key=key, value=stringify(item.get("value"))))
    return tuple(entries)


def _parse_operation(index: int, block: Any) -> Operation:
    if not isinstance(block, dict):
        raise DocumentError(f"command block {index}: invalid format", operation=index)

    fields: Dict[str, Any] = {str(k): v for k, v in block.items() if k != "type"}
    op_type = block.get("type")
    return Operation(
        index=index,
        type=op_type if isinstance(op_type, str) else None,
        name=stringify(block.get("name")),
        desc=stringify(block.get("desc")),
        expandenv=_as_bool(block.get("expandenv", False)),
        fields=fields,
    )


def parse_document(data: bytes | str) -> WorkflowDocument:
    """Parse raw document bytes. Raises DocumentError on malformed input."""
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise DocumentError("failed to parse YAML", reason=str(e)) from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise DocumentError("document must be a mapping")

    cmd = raw.get("cmd")
    if cmd is None:
        cmd = []
    if not isinstance(cmd, list):
        raise DocumentError("'cmd' section must be a list")

    return WorkflowDocument(
        logging=_parse_logging(raw.get("logging")),
        env=_parse_env(raw.get("env")),
        operations=tuple(_parse_operation(i, b) for i, b in enumerate(cmd, start=1)),
    )


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------

def _present(op: Operation, key: str) -> bool:
    value = op.option(key)
    return value is not None and stringify(value) != ""


def validate_operation(op: Operation) -> None:
    """Check one operation. Raises ValidationError naming the 1-based index."""
    if not op.type:
        raise ValidationError(op.index, "missing or invalid 'type' field")
    try:
        kind = OperationType(op.type)
    except ValueError:
        valid = ", ".join(t.value for t in OperationType)
        raise ValidationError(op.index, f"invalid command type '{op.type}' (valid types: {valid})", op.type)

    # Empty-values blocks are placeholders: type-specific requirements only
    # apply once there is something to run.
    if kind is OperationType.DOCKER and op.has_values:
        for key in ("container", "command"):
            if not _present(op, key):
                raise ValidationError(op.index, f"docker command with values requires '{key}' field", op.type)
        sub = stringify(op.option("command"))
        if sub not in ("run", "exec"):
            raise ValidationError(op.index, f"invalid docker command '{sub}' (valid commands: run, exec)", op.type)

    elif kind is OperationType.SSH and op.has_values:
        for key in ("user", "host"):
            if not _present(op, key):
                raise ValidationError(op.index, f"ssh command with values requires '{key}' field", op.type)
        if op.option("port") is not None:
            try:
                parse_port(op.option("port"))
            except (TypeError, ValueError) as e:
                raise ValidationError(op.index, str(e), op.type)

    elif kind is OperationType.CONF:
        has_data = _present(op, "confdata")
        has_dest = _present(op, "confdest")
        if has_dest and not has_data:
            raise ValidationError(op.index, "config command with 'confdest' requires 'confdata' field", op.type)
        if has_data and not has_dest:
            raise ValidationError(op.index, "config command with 'confdata' requires 'confdest' field", op.type)
        if op.option("confperm") is not None:
            try:
                parse_mode(op.option("confperm"))
            except (TypeError, ValueError) as e:
                raise ValidationError(op.index, str(e), op.type)


def validate_document(doc: WorkflowDocument) -> None:
    for op in doc.operations:
        validate_operation(op)


def load_document(data: bytes | str) -> WorkflowDocument:
    """Parse and validate in one step (fail fast)."""
    doc = parse_document(data)
    validate_document(doc)
    return doc


def collect_errors(data: bytes | str) -> List[str]:
    """All problems in a document as strings; empty when it is valid."""
    try:
        doc = parse_document(data)
    except DocumentError as e:
        return [str(e)]
    errors: List[str] = []
    for op in doc.operations:
        try:
            validate_operation(op)
        except ValidationError as e:
            errors.append(e.message)
    return errors
