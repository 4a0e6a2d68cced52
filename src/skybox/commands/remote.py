"""skybox remote — manage remote hosts in the config."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from skybox.commands._common import ConfigOption
from skybox.core.config import load_config_or_exit, save_config
from skybox.models.config import Config, RemoteEntry

console = Console()


def remote_add(
    name: Annotated[str, typer.Argument(help="Name to refer to the remote by")],
    host: Annotated[str, typer.Argument(help="SSH host name or address")],
    user: Annotated[Optional[str], typer.Option("--user", "-u", help="SSH user")] = None,
    path: Annotated[str, typer.Option("--path", help="Projects directory on the remote")] = "~/code",
    key: Annotated[Optional[Path], typer.Option("--key", "-k", help="SSH private key")] = None,
    config: ConfigOption = None,
) -> None:
    """Add (or replace) a remote."""
    cfg, cfg_path = load_config_or_exit(config)

    try:
        cfg.remotes[name] = RemoteEntry(host=host, user=user, path=path, key=key)
        Config.model_validate(cfg.model_dump())
    except ValidationError as e:
        console.print(f"[red]Invalid remote:[/red] {e}")
        raise typer.Exit(1) from None

    save_config(cfg, cfg_path)
    console.print(f"[green]Remote '{name}' saved[/green] ({cfg.remotes[name].ssh_target}:{path})")


def remote_list(config: ConfigOption = None) -> None:
    """List configured remotes and how many projects each holds."""
    cfg, _ = load_config_or_exit(config)

    if not cfg.remotes:
        console.print("[dim]No remotes configured.[/dim]")
        return

    table = Table(title="Remotes")
    table.add_column("Name", style="bold")
    table.add_column("Target")
    table.add_column("Path")
    table.add_column("Projects")
    for name, entry in sorted(cfg.remotes.items()):
        table.add_row(name, entry.ssh_target, entry.path, str(len(cfg.projects_on_remote(name))))
    console.print(table)
