# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click
import yaml

from runfromyaml.config import Settings
from runfromyaml.document import collect_errors, load_document
from runfromyaml.engine import execute
from runfromyaml.errors import DocumentError, ValidationError
from runfromyaml.generator import explain_document, generate_document, to_yaml
from runfromyaml.model import OutputType, WorkflowDocument
from runfromyaml.recorder import commands_to_document, record_commands, write_document
from runfromyaml.ui.console import Console, set_console, get_console


def read_document(path: str) -> bytes:
    """
    Read a workflow file.

    Raises:
        SystemExit: If the file does not exist or cannot be read
    """
    console = get_console()
    doc_path = Path(path)
    if not doc_path.exists():
        console.print_error(
            "Workflow file not found",
            f"Could not find workflow file: {path}",
            suggestion="Create a commands.yaml or specify a different path:\n  runfromyaml run --file my_commands.yaml",
        )
        sys.exit(1)
    try:
        return doc_path.read_bytes()
    except OSError as e:
        console.print_error("Could not read workflow file", str(e))
        sys.exit(1)


def load_or_exit(data: bytes) -> WorkflowDocument:
    """Parse and validate, printing the problem and exiting 1 if the document is rejected."""
    try:
        return load_document(data)
    except (DocumentError, ValidationError) as e:
        get_console().print_error("Invalid workflow", e.message, details=[f"{k}={v}" for k, v in e.details.items()])
        sys.exit(1)


def _run_report(ctx, document: WorkflowDocument, workflow: str, output: str | None) -> None:
    """Execute and summarize one document. Exits non-zero on failure."""
    console = get_console()
    debug = ctx.obj.get("debug", False)

    console.print_run_started(workflow=workflow, operation_count=len(document.operations))

    try:
        report = execute(document, debug, output=output)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    console.print_results(report.summary())
    if not report.ok:
        sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (print parsed operations, built commands and stack traces)",
)
@click.pass_context
def cli(ctx, debug):
    """runfromyaml: run the commands of a YAML workflow document."""
    settings = Settings.from_env()
    debug = debug or settings.debug
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["settings"] = settings


@cli.command()
@click.option("--file", "file_", default=None, help="Workflow document (defaults to commands.yaml)")
@click.option(
    "--output",
    type=click.Choice([o.value for o in OutputType if o is not OutputType.REST]),
    default=None,
    help="Override the document's logging output",
)
@click.pass_context
def run(ctx, file_, output):
    """Run a workflow document."""
    settings: Settings = ctx.obj["settings"]
    path = file_ or settings.file
    data = read_document(path)
    document = load_or_exit(data)
    settings = settings.load_yaml(data)

    if settings.rest:
        from runfromyaml.restapi import serve

        serve(settings)
        return

    if settings.debug and not ctx.obj["debug"]:
        ctx.obj["debug"] = True
        get_console().debug = True

    _run_report(ctx, document, Path(path).name, output)


@cli.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.pass_context
def validate(ctx, file):
    """Parse and validate a workflow document without running it."""
    console = get_console()
    errors = collect_errors(read_document(file))
    if errors:
        console.print_error("Workflow validation failed", f"{len(errors)} problem(s) in {file}", details=errors)
        sys.exit(1)
    console.print_info(f"{file}: valid")


@cli.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.pass_context
def explain(ctx, file):
    """Describe what a workflow document would do."""
    console = get_console()
    try:
        raw = yaml.safe_load(read_document(file))
    except yaml.YAMLError as e:
        console.print_error("Invalid workflow", "failed to parse YAML", details=[str(e)])
        sys.exit(1)
    if not isinstance(raw, dict):
        console.print_error("Invalid workflow", "document must be a mapping")
        sys.exit(1)
    console.print_info(explain_document(raw))


@cli.command()
@click.option("--host", default=None, help="Bind address (default localhost)")
@click.option("--port", default=None, type=int, help="HTTP port (default 8080)")
@click.option("--user", default=None, help="Basic auth user name (default rest)")
@click.option("--no-auth", is_flag=True, default=False, help="Disable basic auth")
@click.option("--restout", is_flag=True, default=False, help="Send run output in the HTTP response")
@click.pass_context
def serve(ctx, host, port, user, no_auth, restout):
    """Accept workflow documents over HTTP."""
    from runfromyaml.restapi import serve as serve_http

    settings: Settings = ctx.obj["settings"]
    settings = settings.override(
        host=host,
        port=port,
        user=user,
        no_auth=no_auth or None,
        restout=restout or None,
        debug=ctx.obj["debug"] or None,
    )
    try:
        serve_http(settings)
    except KeyboardInterrupt:
        get_console().print_info("\nServer stopped by user")


@cli.command()
@click.pass_context
def mcp(ctx):
    """Serve the workflow tools as JSON-RPC over stdio."""
    from runfromyaml.tools import ToolServer, serve_stdio

    server = ToolServer(debug=ctx.obj["debug"])
    serve_stdio(click.get_text_stream("stdin"), click.get_text_stream("stdout"), server)


@cli.command()
@click.argument("description")
@click.option("--execute", "execute_", is_flag=True, default=False, help="Run the generated workflow")
@click.pass_context
def generate(ctx, description, execute_):
    """Generate a workflow document from a description."""
    content = to_yaml(generate_document(description))
    click.echo(content)
    if execute_:
        _run_report(ctx, load_or_exit(content.encode("utf-8")), "generated", None)


@cli.command()
@click.option("--out", default=None, help="Where to write the recorded document (defaults to commands.yaml)")
@click.option("--shell-type", default=None, help="Shell the recorded commands are meant for (default bash)")
@click.pass_context
def shell(ctx, out, shell_type):
    """Record commands interactively and save them as a workflow document."""
    console = get_console()
    settings: Settings = ctx.obj["settings"]
    settings = settings.override(file=out, shell_type=shell_type)

    try:
        commands = record_commands(click.get_text_stream("stdin"), click.get_text_stream("stdout"))
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)

    if not commands:
        console.print_info("No commands recorded")
        return

    path = write_document(commands_to_document(commands, settings.shell_type), settings.file)
    console.print_info(f"Recorded {len(commands)} command(s) to {path}")


if __name__ == "__main__":
    cli()
