"""Shared helpers for the command modules: options, remote selection, stores."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.markup import escape

from skybox.core.identity import LocalIdentity
from skybox.core.locks import LockStore
from skybox.core.ownership import OwnershipStore
from skybox.core.remote import remote_exec_for
from skybox.models.config import Config, RemoteEntry, validate_project_name
from skybox.utils.console import err_console

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to skybox config.toml"),
]

RemoteOption = Annotated[
    Optional[str],
    typer.Option("--remote", "-r", help="Remote name (defaults to the project's or the only one)"),
]


def require_project_name(project: str) -> str:
    """Exit with a message unless ``project`` is a valid project name."""
    try:
        return validate_project_name(project)
    except ValueError as e:
        err_console.print(f"[red]Invalid project name {escape(repr(project))}:[/red] {e}")
        raise typer.Exit(1) from None


def select_remote(cfg: Config, name: str | None, project: str | None = None) -> tuple[str, RemoteEntry]:
    """Pick the remote to talk to, exiting with a message if none fits.

    Order: explicit ``--remote``, the remote a project is registered on,
    then the single configured remote.
    """
    if name is not None:
        remote = cfg.get_remote(name)
        if remote is None:
            err_console.print(f"[red]Remote '{name}' not found in config.[/red]")
            raise typer.Exit(1)
        return name, remote

    if project is not None:
        found = cfg.get_project_remote(project)
        if found is not None:
            return found

    if len(cfg.remotes) == 1:
        return next(iter(cfg.remotes.items()))

    if not cfg.remotes:
        err_console.print("[red]No remotes configured.[/red] Run [bold]skybox remote add[/bold] first.")
    else:
        names = ", ".join(sorted(cfg.remotes))
        err_console.print(f"[red]Several remotes configured ({names}).[/red] Pick one with --remote.")
    raise typer.Exit(1)


def lock_store_for(cfg: Config, remote: RemoteEntry, identity: LocalIdentity) -> LockStore:
    return LockStore(
        remote.ssh_target,
        identity,
        run=remote_exec_for(remote.key),
        stale_after=timedelta(hours=cfg.skybox.lock_stale_after_hours),
    )


def ownership_store_for(remote: RemoteEntry, identity: LocalIdentity) -> OwnershipStore:
    return OwnershipStore(remote.ssh_target, identity, run=remote_exec_for(remote.key))


def format_relative_time(when: datetime | None, now: datetime | None = None) -> str:
    """``3 hours ago`` style rendering of a past timestamp."""
    if when is None:
        return "-"
    now = now or datetime.now(timezone.utc)
    minutes = max(0, int((now - when).total_seconds() // 60))
    hours, days = minutes // 60, minutes // (60 * 24)
    if days:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes:
        return f"{minutes} min{'s' if minutes > 1 else ''} ago"
    return "just now"
