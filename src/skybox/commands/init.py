"""skybox init — create the local skybox home and a starter config."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from skybox.core.config import save_config
from skybox.core.paths import Paths
from skybox.models.config import Config

console = Console()


def init(
    home: Annotated[
        Optional[Path],
        typer.Option("--home", help="skybox home directory (default: $SKYBOX_HOME or ~/.skybox)"),
    ] = None,
) -> None:
    """Initialize skybox on this machine.

    Creates the home directory layout and a default config.toml.
    """
    paths = Paths(home)
    paths.ensure_base_dirs()

    if paths.config_file.exists():
        console.print(f"[dim]{paths.config_file} already exists, skipping.[/dim]")
    else:
        save_config(Config(), paths.config_file)
        console.print(f"Created [bold]{paths.config_file}[/bold]")

    console.print(f"skybox home initialized at [bold]{paths.home}[/bold]")
    console.print()
    console.print("Next steps:")
    console.print("  1. Run [bold]skybox remote add <name> <host>[/bold] to add a remote")
    console.print("  2. Run [bold]skybox sync <project>[/bold] to start syncing a project")
