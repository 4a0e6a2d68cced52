"""Project-level sync sessions: one whole-tree session or one per sub-path."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path

from skybox.core.mutagen import (
    EngineResult,
    MutagenAdapter,
    ProgressCallback,
    SyncStatus,
    remote_endpoint,
    selective_session_name,
    session_name,
)

logger = logging.getLogger(__name__)


@dataclass
class SyncSessionOptions:
    project: str
    local_path: Path
    remote_host: str
    remote_path: str
    ignores: list[str] = field(default_factory=list)
    sync_paths: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SessionResult:
    success: bool
    session_names: list[str] = field(default_factory=list)
    error: str | None = None


def project_session_names(project: str, sync_paths: list[str] | None = None) -> list[str]:
    """Session names a project uses, in creation order."""
    if sync_paths:
        return [selective_session_name(project, subpath) for subpath in sync_paths]
    return [session_name(project)]


class SyncSessionOrchestrator:
    """Creates and waits on the sync sessions belonging to one project.

    Every call blocks until the engine answers and reports failure as a
    result rather than raising.
    """

    def __init__(self, engine: MutagenAdapter) -> None:
        self.engine = engine

    def _ensure_session(
        self, name: str, local_path: Path, remote_spec: str, ignores: list[str]
    ) -> tuple[EngineResult, bool]:
        """Create ``name`` unless the engine already has it; resume it if paused.

        Also returns whether the session existed beforehand.
        """
        existing = self.engine.status(name)
        if existing.exists:
            logger.info("Reusing existing sync session %s", name)
            if existing.paused:
                return self.engine.resume(name), True
            return EngineResult(success=True), True
        return self.engine.create(name, local_path, remote_spec, ignores), False

    def create_project_sync_session(self, options: SyncSessionOptions) -> SessionResult:
        """Create the project's session(s), stopping at the first failure.

        Sessions that already exist are reused rather than created again, so
        rerunning after a failed wait only waits again. On failure
        ``session_names`` lists the sessions that exist so far.
        """
        if options.sync_paths:
            targets = [
                (
                    selective_session_name(options.project, subpath),
                    Path(options.local_path) / subpath,
                    posixpath.join(options.remote_path, subpath),
                )
                for subpath in options.sync_paths
            ]
        else:
            targets = [(session_name(options.project), Path(options.local_path), options.remote_path)]

        ready: list[str] = []
        for name, local_path, remote_path in targets:
            result, existed = self._ensure_session(
                name,
                local_path,
                remote_endpoint(options.remote_host, remote_path),
                options.ignores,
            )
            if not result.success:
                logger.error("Sync session %s failed: %s", name, result.error)
                if existed:
                    ready.append(name)
                return SessionResult(success=False, session_names=ready, error=result.error)
            ready.append(name)
        return SessionResult(success=True, session_names=ready)

    def wait_for_sync(
        self,
        project: str,
        on_progress: ProgressCallback | None = None,
        session_names: list[str] | None = None,
    ) -> EngineResult:
        """Wait until every session of the project has flushed."""
        names = session_names or [session_name(project)]
        if on_progress:
            on_progress("Waiting for sync to complete...")
        for name in names:
            result = self.engine.wait_until_flushed(name, on_progress)
            if not result.success:
                return result
        if on_progress:
            on_progress("Sync complete")
        return EngineResult(success=True)

    def _for_each(self, action: str, project: str, sync_paths: list[str] | None) -> EngineResult:
        errors = []
        for name in project_session_names(project, sync_paths):
            result = getattr(self.engine, action)(name)
            if not result.success:
                errors.append(f"{name}: {result.error}")
        if errors:
            return EngineResult(success=False, error="; ".join(errors))
        return EngineResult(success=True)

    def pause_project(self, project: str, sync_paths: list[str] | None = None) -> EngineResult:
        return self._for_each("pause", project, sync_paths)

    def resume_project(self, project: str, sync_paths: list[str] | None = None) -> EngineResult:
        return self._for_each("resume", project, sync_paths)

    def terminate_project(self, project: str, sync_paths: list[str] | None = None) -> EngineResult:
        """Terminate every session of the project, continuing past failures."""
        return self._for_each("terminate", project, sync_paths)

    def project_status(self, project: str, sync_paths: list[str] | None = None) -> SyncStatus:
        """Combined status: any error wins, then any missing session, then any paused one."""
        statuses = [self.engine.status(name) for name in project_session_names(project, sync_paths)]
        if any(s.status == "error" for s in statuses):
            return SyncStatus(exists=False, paused=False, status="error")
        if not all(s.exists for s in statuses):
            return SyncStatus(exists=False, paused=False, status="none")
        if any(s.paused for s in statuses):
            return SyncStatus(exists=True, paused=True, status="paused")
        return SyncStatus(exists=True, paused=False, status="syncing")
