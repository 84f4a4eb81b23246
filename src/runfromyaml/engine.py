# engine.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, TextIO, Tuple, Union

from .builders import build
from .document import load_document, validate_document
from .environment import Environment
from .errors import ConfigWriteError, ExecutionError, RunFromYAMLError
from .executor import SubprocessExecutor
from .model import Command, ConfigFile, Operation, OutputType, WorkflowDocument
from .sinks import Sink, make_sink


class Executor(Protocol):
    def run(self, argv: Sequence[str]) -> None: ...

    def write(self, path: str, data: bytes, mode: int) -> None: ...


Describe = Callable[[Operation], str]


@dataclass
class OperationResult:
    index: int
    type: str
    name: str
    status: str                                  # ok | skipped | failed
    error: Optional[RunFromYAMLError] = None

    @property
    def label(self) -> str:
        return self.name or f"#{self.index} ({self.type})"


@dataclass
class RunReport:
    results: List[OperationResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def failed(self) -> List[OperationResult]:
        return [r for r in self.results if r.status == "failed"]

    def summary(self) -> List[Tuple[str, str]]:
        return [(r.label, r.status) for r in self.results]


@dataclass
class RunContext:
    """Everything one run needs, passed explicitly through every stage."""
    document: WorkflowDocument
    env: Environment
    sink: Sink
    executor: Executor
    debug: bool = False
    describe: Optional[Describe] = None
    owns_sink: bool = False


def prepare(
    document: Union[bytes, str, WorkflowDocument],
    *,
    debug: bool = False,
    output: Union[OutputType, str, None] = None,
    stream: Optional[TextIO] = None,
    sink: Optional[Sink] = None,
    executor: Optional[Executor] = None,
    describe: Optional[Describe] = None,
    log_dir: Union[str, Path, None] = None,
) -> RunContext:
    """
    Parse & validate, set up the environment, then pick the sink.

    Raises DocumentError / ValidationError before anything has run.
    """
    if isinstance(document, WorkflowDocument):
        doc = document
        validate_document(doc)
    else:
        doc = load_document(document)

    env = Environment()
    env.apply(doc.env)

    owns_sink = sink is None
    if sink is None:
        out = OutputType(output) if output else doc.logging.output
        sink = make_sink(out, doc.logging.level, debug=debug, stream=stream, log_dir=log_dir)

    if executor is None:
        executor = SubprocessExecutor(env, sink)

    return RunContext(
        document=doc,
        env=env,
        sink=sink,
        executor=executor,
        debug=debug,
        describe=describe,
        owns_sink=owns_sink,
    )


def _description(ctx: RunContext, op: Operation) -> str:
    text = op.desc or op.name or f"{op.type} #{op.index}"
    if ctx.describe is None:
        return text
    try:
        return ctx.describe(op) or text
    except Exception as e:
        ctx.sink.warning(f"description augmentation failed: {e}", op)
        return text


def run_operation(ctx: RunContext, op: Operation) -> OperationResult:
    """Describe, build and execute one operation. Runtime failures are reported, not raised."""
    ctx.sink.describe(op, _description(ctx, op))
    ctx.sink.debug(f"operation {op.index}: type={op.type} fields={op.fields}")

    def result(status: str, error: Optional[RunFromYAMLError] = None) -> OperationResult:
        return OperationResult(index=op.index, type=str(op.type), name=op.name, status=status, error=error)

    try:
        built = build(op, ctx.env)
        if built.warning:
            ctx.sink.warning(built.warning, op)
        if not built.actions:
            return result("skipped")

        for action in built.actions:
            ctx.sink.debug(f"action: {action}")
            if isinstance(action, Command):
                ctx.sink.command(action.argv)
                ctx.executor.run(action.argv)
            elif isinstance(action, ConfigFile):
                ctx.executor.write(action.path, action.content.encode("utf-8"), action.mode)
                ctx.sink.created(action.path)
    except (ExecutionError, ConfigWriteError) as e:
        # abandon this operation, keep going with the next one
        ctx.sink.error(e, op)
        return result("failed", e)

    return result("ok")


def run(ctx: RunContext) -> RunReport:
    """Attempt every operation strictly in document order."""
    report = RunReport()
    try:
        for op in ctx.document.operations:
            report.results.append(run_operation(ctx, op))
    finally:
        if ctx.owns_sink:
            ctx.sink.close()
    return report


def execute(
    document: Union[bytes, str, WorkflowDocument],
    debug: bool = False,
    **kwargs,
) -> RunReport:
    """
    Engine entry point shared by every caller (CLI, HTTP, tool server).

    Args:
        document: raw YAML bytes/text, or an already parsed document
        debug: print parsed operations and built actions
        **kwargs: forwarded to `prepare` (output, stream, sink, executor,
                  describe, log_dir)

    Returns:
        RunReport with one result per operation

    Raises:
        DocumentError, ValidationError: nothing was run
    """
    return run(prepare(document, debug=debug, **kwargs))
