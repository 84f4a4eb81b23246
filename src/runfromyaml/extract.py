# extract.py
from __future__ import annotations

from typing import Any, List

from .document import stringify
from .environment import Environment
from .model import Operation

LIST_FIELDS = ("values", "options", "dcoptions", "cmdoptions")


def extract(op: Operation, key: str, env: Environment) -> List[str]:
    """
    Normalize an operation field into an ordered list of strings.

      - absent / null  -> []
      - list           -> element-wise copy, non-strings coerced
      - scalar         -> one-element list

    With `expandenv` set, every element goes through $VAR expansion.
    Semicolons are left alone; splitting is up to each builder.
    """
    raw: Any = op.option(key)
    if raw is None:
        items: List[str] = []
    elif isinstance(raw, (list, tuple)):
        items = [stringify(v) for v in raw]
    else:
        items = [stringify(raw)]

    if op.expandenv:
        items = [env.expand(v) for v in items]
    return items


def extract_scalar(op: Operation, key: str, env: Environment, default: str = "") -> str:
    """Single string option (container, host, confdest, ...), expanded like values."""
    raw = op.option(key)
    value = default if raw is None else stringify(raw)
    if op.expandenv:
        value = env.expand(value)
    return value
