"""Finalize a push or clone: create sessions, wait for the first flush, register."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal

from skybox.core.mutagen import ProgressCallback
from skybox.core.sync_session import SyncSessionOptions, SyncSessionOrchestrator
from skybox.models.config import Config, ProjectConfig, validate_project_name

logger = logging.getLogger(__name__)

SyncFailureStage = Literal["create", "sync"]


@dataclass
class FinalizeProjectSyncOptions:
    project: str
    local_path: Path
    remote_host: str
    remote_path: str
    remote_name: str
    config: Config
    save: Callable[[Config], None]
    ignores: list[str] = field(default_factory=list)
    sync_paths: list[str] = field(default_factory=list)
    on_progress: ProgressCallback | None = None


@dataclass(frozen=True)
class FinalizeProjectSyncResult:
    """``stage`` names the step that failed: ``create`` means no session could
    be set up, ``sync`` means sessions exist but never converged.
    ``session_names`` lists the sessions left on the engine after a failure.
    """

    success: bool
    stage: SyncFailureStage | None = None
    error: str | None = None
    session_names: list[str] = field(default_factory=list)


def register_project(
    config: Config,
    project: str,
    remote_name: str,
    save: Callable[[Config], None],
    sync_paths: list[str] | None = None,
) -> None:
    """Record that ``project`` lives on ``remote_name`` and persist the config.

    Raises ``ValueError`` for a name the config could not load back.
    """
    validate_project_name(project)
    existing = config.projects.get(project)
    config.projects[project] = ProjectConfig(
        remote=remote_name,
        sync_paths=list(sync_paths or []),
        ignore=existing.ignore if existing else None,
    )
    save(config)
    logger.info("Registered project %s on remote %s", project, remote_name)


def finalize_project_sync(
    options: FinalizeProjectSyncOptions,
    orchestrator: SyncSessionOrchestrator,
) -> FinalizeProjectSyncResult:
    """Run create -> sync -> register, stopping at the first failed stage.

    The config is only touched when both stages succeed. Retrying after
    either failure is safe: sessions that already exist are reused and only
    waited on again.
    """
    try:
        validate_project_name(options.project)
    except ValueError as e:
        return FinalizeProjectSyncResult(success=False, stage="create", error=str(e))

    created = orchestrator.create_project_sync_session(
        SyncSessionOptions(
            project=options.project,
            local_path=options.local_path,
            remote_host=options.remote_host,
            remote_path=options.remote_path,
            ignores=options.ignores,
            sync_paths=options.sync_paths,
        )
    )
    if not created.success:
        return FinalizeProjectSyncResult(
            success=False,
            stage="create",
            error=created.error or "Failed to create sync session",
            session_names=list(created.session_names),
        )

    synced = orchestrator.wait_for_sync(
        options.project,
        options.on_progress,
        session_names=created.session_names,
    )
    if not synced.success:
        return FinalizeProjectSyncResult(
            success=False,
            stage="sync",
            error=synced.error or "Sync failed",
            session_names=list(created.session_names),
        )

    register_project(
        options.config,
        options.project,
        options.remote_name,
        options.save,
        sync_paths=options.sync_paths,
    )
    return FinalizeProjectSyncResult(success=True)
