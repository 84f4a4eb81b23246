# builders.py
from __future__ import annotations

from typing import Callable, Dict, List

from jinja2 import TemplateError

from .document import parse_mode, parse_port
from .environment import Environment
from .errors import ConfigWriteError
from .extract import extract, extract_scalar
from .model import BuildResult, Command, ConfigFile, Operation, OperationType

Builder = Callable[[Operation, List[str], Environment], BuildResult]

DEFAULT_SSH_PORT = 22
DEFAULT_CONF_MODE = 0o644


def split_fragments(values: List[str]) -> List[str]:
    """Join values with one space and split on ';'. Blank fragments are dropped."""
    joined = " ".join(values)
    return [frag.strip() for frag in joined.split(";") if frag.strip()]


def _skip(op: Operation, why: str = "empty values") -> BuildResult:
    return BuildResult(warning=f"{op.type} command with {why} - skipping execution")


# ---------------------------------------------------------------------
# Per-type builders
# ---------------------------------------------------------------------

def build_exec(op: Operation, values: List[str], env: Environment) -> BuildResult:
    if not values:
        return _skip(op)
    # plain whitespace split, no quoting
    actions = [Command(tuple(frag.split())) for frag in split_fragments(values)]
    return BuildResult(actions=actions)


def build_shell(op: Operation, values: List[str], env: Environment) -> BuildResult:
    if not values:
        return _skip(op)
    non_empty = [v for v in values if v.strip()]
    if not non_empty:
        return _skip(op, "only empty values")
    # semicolons are the shell's business here
    return BuildResult(actions=[Command(("bash", "-c", " ".join(non_empty)))])


def build_docker(op: Operation, values: List[str], env: Environment) -> BuildResult:
    if not values:
        return _skip(op, "empty values (docker commands require commands to execute)")

    sub = extract_scalar(op, "command", env)
    container = extract_scalar(op, "container", env)
    if sub == "run":
        base = ("docker", "run", "-it", "--rm", container, "sh", "-c")
    else:
        base = ("docker", "exec", container, "sh", "-c")

    return BuildResult(actions=[Command(base + (frag,)) for frag in split_fragments(values)])


def build_docker_compose(op: Operation, values: List[str], env: Environment) -> BuildResult:
    base: List[str] = ["docker", "compose"]
    for opt in extract(op, "dcoptions", env):
        base.extend(opt.split())

    sub = extract_scalar(op, "command", env)
    if sub:
        base.append(sub)

    for opt in extract(op, "cmdoptions", env):
        base.extend(opt.split())

    service = extract_scalar(op, "service", env)
    if service:
        base.append(service)

    # Compose sub-commands such as "up -d" stand on their own, so empty
    # values run the base command once instead of skipping.
    if not values:
        return BuildResult(actions=[Command(tuple(base))])

    actions = [Command(tuple(base + frag.split())) for frag in split_fragments(values)]
    return BuildResult(actions=actions)


def build_ssh(op: Operation, values: List[str], env: Environment) -> BuildResult:
    if not values:
        return _skip(op)

    raw_port = op.option("port")
    port = DEFAULT_SSH_PORT if raw_port is None else parse_port(raw_port)
    base = (
        "ssh",
        "-p", str(port),
        "-l", extract_scalar(op, "user", env),
        extract_scalar(op, "host", env),
        *extract(op, "options", env),
    )
    # each fragment is one remote command string
    return BuildResult(actions=[Command(base + (frag,)) for frag in split_fragments(values)])


def build_conf(op: Operation, values: List[str], env: Environment) -> BuildResult:
    raw_data = op.option("confdata")
    data = "" if raw_data is None else str(raw_data)
    dest = extract_scalar(op, "confdest", env)

    if not data or not dest:
        return BuildResult(warning="config command with empty data or destination - skipping")

    if op.expandenv:
        try:
            data = env.render_template(data)
        except TemplateError as e:
            raise ConfigWriteError(dest, f"template error: {e}") from e

    raw_mode = op.option("confperm")
    mode = DEFAULT_CONF_MODE if raw_mode is None else parse_mode(raw_mode)
    header = f"# {op.desc}\n" if op.desc else ""
    return BuildResult(actions=[ConfigFile(path=dest, content=header + data, mode=mode)])


BUILDERS: Dict[OperationType, Builder] = {
    OperationType.EXEC: build_exec,
    OperationType.SHELL: build_shell,
    OperationType.DOCKER: build_docker,
    OperationType.DOCKER_COMPOSE: build_docker_compose,
    OperationType.SSH: build_ssh,
    OperationType.CONF: build_conf,
}

_missing = set(OperationType) - set(BUILDERS)
if _missing:
    raise RuntimeError(f"no builder registered for: {sorted(t.value for t in _missing)}")


def build(op: Operation, env: Environment) -> BuildResult:
    """Extract + expand the operation's values and turn them into actions."""
    values = extract(op, "values", env)
    return BUILDERS[op.kind](op, values, env)
