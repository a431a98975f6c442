"""Main CLI implementation using Typer."""

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from convoy.cli.commands import (
    decompose_document,
    reconcile_resources,
    show_status,
    validate_config,
)
from convoy.errors import ConvoyError
from convoy.utils.logging import setup_logging


# Create Typer app
app = typer.Typer(
    name="convoy",
    help="Convoy - declarative Docker containers, volumes, networks and compose stacks",
    add_completion=False,
)

# Console for rich output
console = Console()

DEFAULT_CONFIG_DIR = Path("./configs")


def _run_cli_command(handler: Callable[..., Any], config_dir: Path, **kwargs: Any) -> Any:
    """Helper to run an async CLI command with error handling."""
    try:
        return asyncio.run(handler(config_dir, **kwargs))
    except (ConvoyError, FileNotFoundError, ValueError, ValidationError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _parse_assignments(values: List[str]) -> Dict[str, str]:
    environment: Dict[str, str] = {}
    for value in values:
        if "=" not in value:
            console.print(f"[red]Error:[/red] Expected KEY=VALUE, got '{value}'")
            raise typer.Exit(1)
        key, _, item = value.partition("=")
        environment[key] = item
    return environment


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "WARNING", "--log-level", "-l", help="Log level for this invocation"
    ),
):
    """Configure logging for every command."""
    setup_logging(log_level, rich_output=True)


@app.command("reconcile")
def reconcile_command(
    config_dir: Path = typer.Option(
        DEFAULT_CONFIG_DIR, "--config-dir", "-c", help="Configuration directory"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide progress output"),
):
    """Drive every record toward its declared state once."""
    succeeded = _run_cli_command(reconcile_resources, config_dir, quiet=quiet)
    if not succeeded:
        raise typer.Exit(1)


@app.command("status")
def status_command(
    kind: Optional[str] = typer.Argument(
        None, help="Record kind to show (Container, Volume, Network, ComposeStack)"
    ),
    config_dir: Path = typer.Option(
        DEFAULT_CONFIG_DIR, "--config-dir", "-c", help="Configuration directory"
    ),
):
    """Observe records without changing anything."""
    _run_cli_command(show_status, config_dir, kind=kind)


@app.command("validate")
def validate_command(
    config_dir: Path = typer.Option(
        DEFAULT_CONFIG_DIR, "--config-dir", "-c", help="Configuration directory"
    ),
):
    """Validate configuration files."""
    if not _run_cli_command(validate_config, config_dir):
        raise typer.Exit(1)


@app.command("decompose")
def decompose_command(
    document: Path = typer.Argument(..., help="Compose document to decompose"),
    project: str = typer.Option(..., "--project", "-p", help="Project name"),
    env: List[str] = typer.Option(
        [], "--env", "-e", help="Interpolation variable as KEY=VALUE"
    ),
    working_dir: Optional[str] = typer.Option(
        None, "--working-dir", "-w", help="Base directory for relative host paths"
    ),
):
    """Show what a compose document turns into."""
    environment = _parse_assignments(env)
    try:
        decompose_document(document, project, environment, working_dir)
    except (ConvoyError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def main():
    """Main entry point for CLI."""
    app()
