# environment.py
from __future__ import annotations

import os
import re
from typing import Dict, Iterable, List, Mapping, Optional

from jinja2 import Environment as TemplateEnvironment

from .model import EnvEntry

# ${NAME}, a one-character special name ($1, $$, $*, ...) or $NAME;
# any other "$" is left alone
_VAR_RE = re.compile(r"\$(?:\{([^}]*)\}|([*#$@!?\-0-9])|([A-Za-z_][A-Za-z0-9_]*))")

# only {{ }} is template syntax; block and comment tags can never match
_NO_TAG = "\x00"

# {{ .NAME }} -> {{ NAME }}
_DOT_FIELD_RE = re.compile(r"\{\{(-?)\s*\.([A-Za-z_][A-Za-z0-9_]*)")


class Environment:
    """
    Run-scoped environment manager.

    Seeded from the process environment, then extended in document order.
    Every `set` also writes `os.environ` and records a KEY=VALUE pair that is
    layered on top of each subprocess environment. Nothing is rolled back
    when the run ends.
    """

    def __init__(self, seed: Optional[Mapping[str, str]] = None):
        self._variables: Dict[str, str] = dict(os.environ if seed is None else seed)
        self._shell: List[str] = []

    def set(self, key: str, value: str) -> None:
        self._variables[key] = value
        self._shell.append(f"{key}={value}")
        os.environ[key] = value

    def apply(self, entries: Iterable[EnvEntry]) -> None:
        for entry in entries:
            self.set(entry.key, entry.value)

    def get(self, key: str, default: str = "") -> str:
        return self._variables.get(key, default)

    @property
    def variables(self) -> Dict[str, str]:
        return dict(self._variables)

    @property
    def shell(self) -> List[str]:
        return list(self._shell)

    def expand(self, text: str) -> str:
        """Substitute $VAR and ${VAR} from the current lookup map."""
        def _sub(m: re.Match) -> str:
            name = next(g for g in m.groups() if g is not None)
            return self._variables.get(name, "")

        return _VAR_RE.sub(_sub, text)

    def render_template(self, text: str) -> str:
        """
        Render a whole text as a Jinja2 template against the lookup map.

        Only used for `conf` content. `{{ KEY }}` and `{{ .KEY }}` both work.
        Raises jinja2.TemplateError on bad syntax.
        """
        source = _DOT_FIELD_RE.sub(r"{{\1 \2", text)
        env = TemplateEnvironment(
            block_start_string=_NO_TAG + "{%",
            block_end_string="%}" + _NO_TAG,
            comment_start_string=_NO_TAG + "{#",
            comment_end_string="#}" + _NO_TAG,
            line_statement_prefix=None,
            line_comment_prefix=None,
            keep_trailing_newline=True,
        )
        return env.from_string(source).render(self._variables)

    def subprocess_env(self) -> Dict[str, str]:
        """os.environ plus the declared pairs, later pairs shadowing earlier ones."""
        env = os.environ.copy()
        for pair in self._shell:
            key, _, value = pair.partition("=")
            env[key] = value
        return env
