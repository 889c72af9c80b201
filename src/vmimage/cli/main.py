"""Main CLI implementation using Typer."""

from pathlib import Path
from typing import Any, Callable, Optional

import typer
from rich.console import Console
from rich.markup import escape

from vmimage.cli.commands import build_image, supervise
from vmimage.errors import ImageBuildError


# Create Typer apps
app = typer.Typer(
    name="build-image",
    help="Build supervisor config, config files and a build recipe from a VM image descriptor",
    add_completion=False,
)

supervise_app = typer.Typer(
    name="vmimage-supervise",
    help="Run the reference supervisor over an emitted supervision table",
    add_completion=False,
)

# Console for rich output
console = Console(stderr=True)


def _run_cli_command(handler: Callable[..., Any], **kwargs: Any):
    """Helper to run a CLI command with error handling."""
    try:
        handler(**kwargs)
    except ImageBuildError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(e.exit_code) from e


@app.command()
def build_command(
    descriptor: Path = typer.Argument(..., help="Path to the image descriptor YAML"),
    output_dir: Path = typer.Argument(..., help="Directory receiving the build context"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", envvar="VMIMAGE_CONFIG", help="Builder configuration file"
    ),
):
    """Validate a descriptor and write its artifacts."""
    _run_cli_command(
        build_image,
        descriptor_path=descriptor,
        output_dir=output_dir,
        config_path=config,
    )


@supervise_app.command()
def supervise_command(
    table: Path = typer.Argument(..., help="Path to an emitted supervision.yaml"),
    log_level: str = typer.Option(
        "INFO", "--log-level", envvar="VMIMAGE_LOG_LEVEL", help="Logging level"
    ),
):
    """Start the supervised commands and stop them on SIGTERM/SIGINT."""
    _run_cli_command(supervise, table_path=table, log_level=log_level)


def main():
    """Main entry point for build-image."""
    app()


def supervise_main():
    """Main entry point for vmimage-supervise."""
    supervise_app()
