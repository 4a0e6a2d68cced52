"""skybox pause / resume / down — control a project's sync sessions."""

from __future__ import annotations

from typing import Annotated, Optional

import typer
from rich.console import Console

from skybox.commands._common import (
    ConfigOption,
    RemoteOption,
    lock_store_for,
    require_project_name,
    select_remote,
)
from skybox.core.config import load_config_or_exit
from skybox.core.identity import LocalIdentity
from skybox.core.mutagen import MutagenAdapter
from skybox.core.sync_session import SyncSessionOrchestrator, project_session_names
from skybox.models.config import Config

console = Console()

PathsOption = Annotated[
    Optional[list[str]],
    typer.Option("--path", "-p", help="Sub-path sessions to target (defaults to the registered ones)"),
]


def _orchestrator(cfg: Config) -> SyncSessionOrchestrator:
    return SyncSessionOrchestrator(MutagenAdapter(sync_mode=cfg.skybox.sync_mode))


def _sync_paths(cfg: Config, project: str, paths: list[str] | None) -> list[str]:
    if paths:
        return list(paths)
    registered = cfg.projects.get(project)
    return list(registered.sync_paths) if registered else []


def pause(
    project: Annotated[str, typer.Argument(help="Project whose sessions to pause")],
    paths: PathsOption = None,
    config: ConfigOption = None,
) -> None:
    """Pause a project's sync sessions. The lock is left alone."""
    require_project_name(project)
    cfg, _ = load_config_or_exit(config)
    result = _orchestrator(cfg).pause_project(project, _sync_paths(cfg, project, paths))
    if not result.success:
        console.print(f"[red]Failed to pause '{project}':[/red] {result.error}")
        raise typer.Exit(1)
    console.print(f"[yellow]Paused sync for '{project}'.[/yellow]")


def resume(
    project: Annotated[str, typer.Argument(help="Project whose sessions to resume")],
    paths: PathsOption = None,
    config: ConfigOption = None,
) -> None:
    """Resume a project's paused sync sessions."""
    require_project_name(project)
    cfg, _ = load_config_or_exit(config)
    result = _orchestrator(cfg).resume_project(project, _sync_paths(cfg, project, paths))
    if not result.success:
        console.print(f"[red]Failed to resume '{project}':[/red] {result.error}")
        raise typer.Exit(1)
    console.print(f"[green]Resumed sync for '{project}'.[/green]")


def down(
    project: Annotated[str, typer.Argument(help="Project to stop working on")],
    terminate: Annotated[
        bool,
        typer.Option("--terminate", "-t", help="Terminate the sessions instead of pausing them"),
    ] = False,
    paths: PathsOption = None,
    remote: RemoteOption = None,
    config: ConfigOption = None,
) -> None:
    """Flush pending changes, stop the sync sessions and release the lock.

    The lock is kept if the sessions could not be stopped.
    """
    require_project_name(project)
    cfg, _ = load_config_or_exit(config)
    _, entry = select_remote(cfg, remote, project)
    sync_paths = _sync_paths(cfg, project, paths)
    orchestrator = _orchestrator(cfg)

    with console.status("Flushing pending changes...") as spinner:
        flushed = orchestrator.wait_for_sync(
            project,
            spinner.update,
            session_names=project_session_names(project, sync_paths),
        )
    if not flushed.success:
        console.print(f"[yellow]Warning:[/yellow] could not flush sync: {flushed.error}")

    if terminate:
        stopped = orchestrator.terminate_project(project, sync_paths)
    else:
        stopped = orchestrator.pause_project(project, sync_paths)
    if not stopped.success:
        console.print(f"[red]Failed to stop sync for '{project}':[/red] {stopped.error}")
        console.print("  The lock stays held while sessions may still be running.")
        raise typer.Exit(1)

    released = lock_store_for(cfg, entry, LocalIdentity.current()).release_lock(project)
    if not released.success:
        console.print(f"[red]Failed to release lock:[/red] {released.error}")
        raise typer.Exit(1)

    action = "Terminated" if terminate else "Paused"
    console.print(f"[green]{action} sync for '{project}'.[/green]")
    if released.skipped:
        console.print("[yellow]The lock is held by another machine; left in place.[/yellow]")
    else:
        console.print(f"Released lock on '{project}'.")
