# config.py
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

import yaml

ENV_PREFIX = "RUNFROMYAML_"

_BOOL_OPTIONS = {"debug": "debug", "rest": "rest", "no-auth": "no_auth", "restout": "restout"}
_STR_OPTIONS = {"file": "file", "host": "host", "user": "user", "shell-type": "shell_type"}


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    file: str = "commands.yaml"
    host: str = "localhost"
    port: int = 8080
    user: str = "rest"
    password: Optional[str] = None
    no_auth: bool = False
    rest: bool = False
    restout: bool = False
    debug: bool = False
    shell_type: str = "bash"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Defaults overlaid with RUNFROMYAML_* variables (e.g. RUNFROMYAML_PORT)."""
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            default = f.default
            if isinstance(default, bool):
                values[f.name] = _env_bool(raw)
            elif isinstance(default, int):
                values[f.name] = int(raw)
            else:
                values[f.name] = raw
        return cls(**values)

    def load_yaml(self, data: bytes | str) -> "Settings":
        """
        Apply the document's `options:` list of {key, value} pairs.

        Unknown keys and values of the wrong type are ignored. Returns a new
        Settings; self is left untouched.
        """
        raw = yaml.safe_load(data)
        if not isinstance(raw, dict):
            return replace(self)
        options = raw.get("options") or []
        if not isinstance(options, list):
            return replace(self)

        changes: dict[str, Any] = {}
        for opt in options:
            if not isinstance(opt, dict):
                continue
            key, value = opt.get("key"), opt.get("value")
            if key in _BOOL_OPTIONS and isinstance(value, bool):
                changes[_BOOL_OPTIONS[key]] = value
            elif key in _STR_OPTIONS and isinstance(value, str):
                changes[_STR_OPTIONS[key]] = value
            elif key == "port" and isinstance(value, int) and not isinstance(value, bool):
                changes["port"] = value
        return replace(self, **changes)

    def override(self, **flags: Any) -> "Settings":
        """CLI flags win; None means "not given"."""
        return replace(self, **{k: v for k, v in flags.items() if v is not None})
