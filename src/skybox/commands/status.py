"""skybox status — sync and lock status of registered projects."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from skybox.commands._common import ConfigOption, lock_store_for
from skybox.core.config import load_config_or_exit
from skybox.core.identity import LocalIdentity
from skybox.core.locks import LockStatus
from skybox.core.mutagen import MutagenAdapter
from skybox.core.sync_session import SyncSessionOrchestrator

console = Console()


def _lock_cell(status: LockStatus | None) -> str:
    if status is None:
        return "[red]unknown[/red]"
    if not status.locked:
        return "[dim]unlocked[/dim]"
    if status.owned_by_me:
        return "[yellow]you[/yellow]"
    return f"[red]{status.info.machine}[/red]"


def status(config: ConfigOption = None) -> None:
    """Show the sync session and lock state of every registered project."""
    cfg, _ = load_config_or_exit(config)

    if not cfg.projects:
        console.print("[dim]No projects registered yet. Run [bold]skybox sync <project>[/bold].[/dim]")
        raise typer.Exit(0)

    identity = LocalIdentity.current()
    orchestrator = SyncSessionOrchestrator(MutagenAdapter(sync_mode=cfg.skybox.sync_mode))

    # One lock listing per remote rather than one ssh call per project
    lock_statuses: dict[str, dict[str, LockStatus]] = {}
    for remote_name in sorted({p.remote for p in cfg.projects.values()}):
        entry = cfg.get_remote(remote_name)
        if entry is None:
            continue
        listing = lock_store_for(cfg, entry, identity).get_all_lock_statuses(
            cfg.projects_on_remote(remote_name)
        )
        if listing.success:
            lock_statuses[remote_name] = listing.statuses
        else:
            console.print(f"[yellow]Cannot determine locks on {remote_name}:[/yellow] {listing.error}")

    table = Table(title="Projects")
    table.add_column("Project", style="bold")
    table.add_column("Remote")
    table.add_column("Sync")
    table.add_column("Lock")

    for name, project in sorted(cfg.projects.items()):
        sync_status = orchestrator.project_status(name, project.sync_paths).status
        style = {"syncing": "green", "paused": "yellow", "error": "red"}.get(sync_status, "dim")
        lock_status = lock_statuses.get(project.remote, {}).get(name)
        table.add_row(
            name,
            project.remote,
            f"[{style}]{sync_status}[/{style}]",
            _lock_cell(lock_status),
        )

    console.print(table)
