"""skybox locks / lock / unlock — inspect and manage project locks."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from skybox.commands._common import (
    ConfigOption,
    RemoteOption,
    format_relative_time,
    lock_store_for,
    require_project_name,
    select_remote,
)
from skybox.core.config import load_config_or_exit
from skybox.core.identity import LocalIdentity
from skybox.core.locks import LockStatus, describe_holder, sort_lock_statuses

console = Console()


def _status_cell(status: LockStatus) -> str:
    if not status.locked:
        return "[dim]corrupt lock file[/dim]" if status.corrupt else "[dim]unlocked[/dim]"
    label = "locked (you)" if status.owned_by_me else f"locked ({status.info.machine})"
    style = "yellow" if status.owned_by_me else "red"
    cell = f"[{style}]{label}[/{style}]"
    if status.stale:
        cell += " [magenta]stale[/magenta]"
    return cell


def locks(
    remote: RemoteOption = None,
    config: ConfigOption = None,
) -> None:
    """Show lock status for every project on a remote."""
    cfg, _ = load_config_or_exit(config)
    remote_name, entry = select_remote(cfg, remote)
    store = lock_store_for(cfg, entry, LocalIdentity.current())

    with console.status(f"Checking locks on {remote_name}..."):
        listing = store.get_all_lock_statuses(cfg.projects_on_remote(remote_name))

    if not listing.success:
        console.print(f"[red]Cannot determine lock state:[/red] {listing.error}")
        raise typer.Exit(1)

    if not listing.statuses:
        console.print("No lock files found on remote.")
        console.print("[dim]Locks are created when someone runs 'skybox sync' or 'skybox lock'.[/dim]")
        return

    table = Table(title=f"Locks on {entry.ssh_target}")
    table.add_column("Project", style="bold")
    table.add_column("Status")
    table.add_column("User")
    table.add_column("Since")

    for project, status in sort_lock_statuses(listing.statuses):
        info = status.info
        table.add_row(
            project,
            _status_cell(status),
            info.user if info else "-",
            format_relative_time(info.acquired_at) if info else "-",
        )

    console.print(table)


def lock(
    project: Annotated[str, typer.Argument(help="Project to lock")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Take over a lock held by another machine"),
    ] = False,
    remote: RemoteOption = None,
    config: ConfigOption = None,
) -> None:
    """Take the lock on a project for this machine."""
    require_project_name(project)
    cfg, _ = load_config_or_exit(config)
    _, entry = select_remote(cfg, remote, project)
    store = lock_store_for(cfg, entry, LocalIdentity.current())

    if force:
        result = store.force_lock(project)
        if not result.success:
            console.print(f"[red]Failed to take over lock:[/red] {result.error}")
            raise typer.Exit(1)
        console.print(f"[yellow]Took over lock on '{project}'.[/yellow]")
        return

    acquired = store.acquire_lock(project)
    if not acquired.success:
        console.print(f"[red]Could not lock '{project}':[/red] {acquired.error}")
        if acquired.existing_lock is not None:
            since = format_relative_time(acquired.existing_lock.acquired_at)
            console.print(f"  Held by {describe_holder(acquired.existing_lock)} since {since}.")
            console.print(f"  Run [bold]skybox lock {project} --force[/bold] to take it over.")
        raise typer.Exit(1)
    console.print(f"[green]Locked '{project}'.[/green]")


def unlock(
    project: Annotated[str, typer.Argument(help="Project to unlock")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Remove the lock even if another machine holds it"),
    ] = False,
    remote: RemoteOption = None,
    config: ConfigOption = None,
) -> None:
    """Release this machine's lock on a project."""
    require_project_name(project)
    cfg, _ = load_config_or_exit(config)
    _, entry = select_remote(cfg, remote, project)
    store = lock_store_for(cfg, entry, LocalIdentity.current())

    if force:
        result = store.remove_lock(project)
        if not result.success:
            console.print(f"[red]Failed to remove lock:[/red] {result.error}")
            raise typer.Exit(1)
        console.print(f"[yellow]Removed lock on '{project}'.[/yellow]")
        return

    released = store.release_lock(project)
    if not released.success:
        console.print(f"[red]Failed to release lock:[/red] {released.error}")
        raise typer.Exit(1)
    if released.skipped:
        console.print(
            f"[yellow]Lock on '{project}' is held by another machine; left in place.[/yellow] "
            "Use --force to remove it."
        )
        return
    console.print(f"[green]Released lock on '{project}'.[/green]")
