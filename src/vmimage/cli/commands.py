"""Command implementations for CLI."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from vmimage.builder.engine import BuildResult, ImageBuilder
from vmimage.builder.loader import load_config
from vmimage.emitters.supervision import SupervisionEmitter
from vmimage.supervisor.main import run_supervisor
from vmimage.utils.logging import setup_logging


logger = logging.getLogger(__name__)

console = Console()


def build_image(
    descriptor_path: Path,
    output_dir: Path,
    config_path: Optional[Path] = None,
    quiet: bool = False,
) -> BuildResult:
    """Build supervisor config, files and recipe from a descriptor."""
    config = load_config(config_path)
    setup_logging(config.log_level)

    builder = ImageBuilder(config)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        disable=quiet,
        transient=True,
    ) as progress:
        task = progress.add_task(f"Building {descriptor_path}...", total=None)
        result = builder.build(descriptor_path, output_dir)
        progress.update(task, completed=True)

    if not quiet:
        _print_result(builder, result)
    return result


def _print_result(builder: ImageBuilder, result: BuildResult):
    supervision = builder.registry.get_emitter("supervision")
    if isinstance(supervision, SupervisionEmitter) and result.descriptor.commands:
        table = Table(title="Supervision")
        table.add_column("Name", style="cyan")
        table.add_column("Mode", style="magenta")
        table.add_column("User")
        table.add_column("After", style="dim")
        for row in supervision.describe(result.descriptor):
            table.add_row(row["name"], row["mode"], row["user"], row["after"])
        console.print(table)
        console.print()

    table = Table(title="Artifacts")
    table.add_column("Path", style="cyan")
    table.add_column("Mode")
    table.add_column("Bytes", justify="right")
    for artifact in result.artifacts:
        table.add_row(
            artifact.path,
            f"{artifact.mode:04o}",
            str(len(artifact.content.encode("utf-8"))),
        )
    console.print(table)
    console.print(
        f"[green]✓[/green] Wrote {len(result.written)} files to {result.output_dir}"
    )


def supervise(table_path: Path, log_level: str = "INFO"):
    """Run the reference supervisor over an emitted supervision table."""
    setup_logging(log_level)
    asyncio.run(run_supervisor(table_path))
