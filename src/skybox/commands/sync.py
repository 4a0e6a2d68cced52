"""skybox sync — start mirroring a project and register it once in sync."""

from __future__ import annotations

from typing import Annotated, Optional

import typer
from rich.console import Console

from skybox.commands._common import (
    ConfigOption,
    RemoteOption,
    lock_store_for,
    ownership_store_for,
    require_project_name,
    select_remote,
)
from skybox.core.config import load_config_or_exit, save_config
from skybox.core.identity import LocalIdentity
from skybox.core.mutagen import MutagenAdapter
from skybox.core.paths import Paths
from skybox.core.project_sync import FinalizeProjectSyncOptions, finalize_project_sync
from skybox.core.remote import quote_remote_path, remote_exec_for
from skybox.core.sync_session import SyncSessionOrchestrator

console = Console()


def sync(
    project: Annotated[str, typer.Argument(help="Project to sync")],
    paths: Annotated[
        Optional[list[str]],
        typer.Option("--path", "-p", help="Only sync this sub-path (repeatable)"),
    ] = None,
    remote: RemoteOption = None,
    config: ConfigOption = None,
) -> None:
    """Lock a project, start its sync sessions and wait for the first full sync.

    The project is added to the config only after the sessions have
    converged. The lock stays held until [bold]skybox unlock[/bold].
    """
    require_project_name(project)
    cfg, cfg_path = load_config_or_exit(config)
    remote_name, entry = select_remote(cfg, remote, project)
    identity = LocalIdentity.current()
    remote_path = entry.project_path(project)

    registered = cfg.projects.get(project)
    sync_paths = list(paths or (registered.sync_paths if registered else []))
    ignores = list(registered.ignore) if registered and registered.ignore is not None else list(cfg.skybox.ignore)

    owners = ownership_store_for(entry, identity)
    auth = owners.check_write_authorization(remote_path)
    if not auth.authorized:
        console.print(f"[red]Not allowed to write to '{project}':[/red] {auth.error}")
        if auth.owner_info is not None:
            console.print(f"  Ask {auth.owner_info.owner} (on {auth.owner_info.machine}) to hand it over.")
        raise typer.Exit(1)

    locks = lock_store_for(cfg, entry, identity)
    acquired = locks.acquire_lock(project)
    if not acquired.success:
        console.print(f"[red]Could not lock '{project}':[/red] {acquired.error}")
        raise typer.Exit(1)

    local_path = Paths(projects_dir=cfg.skybox.projects_dir).project_dir(project)
    local_path.mkdir(parents=True, exist_ok=True)
    run = remote_exec_for(entry.key)
    mkdir = run(entry.ssh_target, f"mkdir -p {quote_remote_path(remote_path)}")
    if not mkdir.success:
        console.print(f"[red]Could not create {remote_path} on {remote_name}:[/red] {mkdir.error}")
        locks.release_lock(project)
        raise typer.Exit(1)

    orchestrator = SyncSessionOrchestrator(MutagenAdapter(sync_mode=cfg.skybox.sync_mode))

    with console.status("Starting sync...") as spinner:
        result = finalize_project_sync(
            FinalizeProjectSyncOptions(
                project=project,
                local_path=local_path,
                remote_host=entry.ssh_target,
                remote_path=remote_path,
                remote_name=remote_name,
                config=cfg,
                save=lambda c: save_config(c, cfg_path),
                ignores=ignores,
                sync_paths=sync_paths,
                on_progress=spinner.update,
            ),
            orchestrator,
        )

    if not result.success:
        if result.stage == "create":
            console.print(f"[red]Sync session could not be created:[/red] {result.error}")
            if result.session_names:
                # live sessions still write to the remote tree
                names = ", ".join(result.session_names)
                console.print(f"  Sessions {names} are still running; the lock stays held.")
                console.print("  Rerun [bold]skybox sync[/bold] or [bold]skybox down[/bold] to clean up.")
            else:
                locks.release_lock(project)
        else:
            console.print(f"[red]Sync session created but did not finish syncing:[/red] {result.error}")
            console.print("  The session keeps running; rerun [bold]skybox sync[/bold] to wait again.")
        raise typer.Exit(1)

    claimed = owners.set_ownership(remote_path)
    if not claimed.success:
        console.print(f"[yellow]Warning:[/yellow] could not record ownership: {claimed.error}")

    console.print(f"[green]'{project}' is in sync with {remote_name}.[/green]")
    console.print(f"  Local: {local_path}")
    console.print(f"  Remote: {entry.ssh_target}:{remote_path}")
    console.print(f"Run [bold]skybox unlock {project}[/bold] when you are done on this machine.")
