"""Console output formatting utilities for runfromyaml."""

from __future__ import annotations

import sys
from typing import Optional

import click


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_run_started(self, workflow: str, operation_count: int) -> None:
        """Print run start information."""
        click.echo("\nRUN STARTED")
        click.echo(f"Workflow: {workflow}")
        click.echo(f"Operations: {operation_count}")
        click.echo()

    def print_operation(self, description: str) -> None:
        """Print the description line that precedes each operation."""
        click.secho(f"==> {description}", fg="green")

    def print_command(self, command: str) -> None:
        click.secho(f"Command: {command}", fg="yellow")

    def print_created(self, path: str) -> None:
        click.secho(f"# create {path}", fg="green")

    def print_output(self, text: str) -> None:
        click.secho(text.rstrip("\n"), fg="bright_white")

    def print_warning(self, message: str) -> None:
        click.secho(f"# {message}", fg="yellow")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Operation label
            reason: Failure reason/error message
            exit_code: Optional exit code
            hint: Optional hint for user
        """
        click.secho(f"OPERATION FAILED: {name}", fg="red", err=True)
        if exit_code is not None:
            click.secho(f"Exit code: {exit_code}", fg="red", err=True)
        if hint:
            click.echo(f"Hint: {hint}", err=True)
        if self.debug:
            click.echo(f"Error details: {reason}", err=True)
        else:
            # first line only outside debug mode
            error_line = reason.split("\n")[0] if reason else "Unknown error"
            click.echo(f"Error: {error_line}", err=True)

    def print_results(self, results: list[tuple[str, str]]) -> None:
        """Print final results summary."""
        click.echo("\n" + "=" * 40)
        click.echo("RESULTS")
        click.echo("=" * 40)
        for label, status in results:
            status_display = status.upper() if status != "ok" else "SUCCESS"
            click.echo(f"  {label}: {status_display}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        click.secho(f"\nERROR: {title}", fg="red", err=True)
        click.echo(f"{message}", err=True)
        if details:
            for detail in details:
                click.echo(f"  {detail}", err=True)
        if suggestion:
            click.echo(f"\n{suggestion}", err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        else:
            click.echo(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        click.echo(message)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
