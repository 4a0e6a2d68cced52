"""skybox config — configuration utilities."""

from __future__ import annotations

import typer
from rich.console import Console

from skybox.commands._common import ConfigOption
from skybox.core.config import find_config_path, load_config

console = Console()


def validate(config: ConfigOption = None) -> None:
    """Validate the config file."""
    path = find_config_path(config)

    if path is None:
        console.print("[red]Config file not found.[/red]")
        raise typer.Exit(1)

    console.print(f"Validating [bold]{path}[/bold]...")

    try:
        cfg = load_config(path)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Validation failed:[/red] {e}")
        raise typer.Exit(1) from None

    console.print("[green]Config is valid.[/green]")
    console.print(f"  Sync mode: {cfg.skybox.sync_mode}")
    console.print(f"  Stale lock threshold: {cfg.skybox.lock_stale_after_hours:g}h")
    console.print(f"  Remotes: {len(cfg.remotes)}")
    for name, remote in sorted(cfg.remotes.items()):
        console.print(f"    - {name} ({remote.ssh_target}:{remote.path})")
    console.print(f"  Projects: {len(cfg.projects)}")
    for name, project in sorted(cfg.projects.items()):
        scope = ", ".join(project.sync_paths) or "whole tree"
        console.print(f"    - {name} on {project.remote} ({scope})")
