"""skybox owner — show who owns a project on its remote."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

from skybox.commands._common import (
    ConfigOption,
    RemoteOption,
    ownership_store_for,
    require_project_name,
    select_remote,
)
from skybox.core.config import load_config_or_exit
from skybox.core.identity import LocalIdentity

console = Console()


def owner(
    project: Annotated[str, typer.Argument(help="Project to inspect")],
    remote: RemoteOption = None,
    config: ConfigOption = None,
) -> None:
    """Show the recorded owner of a project and whether you may write to it."""
    require_project_name(project)
    cfg, _ = load_config_or_exit(config)
    _, entry = select_remote(cfg, remote, project)
    store = ownership_store_for(entry, LocalIdentity.current())

    status = store.get_ownership_status(entry.project_path(project))
    if not status.determined:
        console.print(f"[red]{status.error}[/red]")
        raise typer.Exit(1)

    if not status.has_owner:
        console.print(f"[dim]'{project}' has no recorded owner; anyone may write to it.[/dim]")
        return

    info = status.info
    you = " [green](you)[/green]" if status.is_owner else ""
    console.print(f"Owner: [bold]{info.owner}[/bold]{you}")
    console.print(f"  Machine: {info.machine}")
    console.print(f"  Created: {info.created}")
