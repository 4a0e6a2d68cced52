"""Mutagen sync session management: create, flush, pause, resume, terminate."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal

logger = logging.getLogger(__name__)

SESSION_PREFIX = "skybox"
MUTAGEN_BINARY_NAME = "mutagen"

ProgressCallback = Callable[[str], None]
SyncStatusValue = Literal["syncing", "paused", "none", "error"]


def sanitize_segment(value: str, fallback: str) -> str:
    """Lower-case, collapse runs of non-alphanumerics to ``-`` and trim."""
    sanitized = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return sanitized or fallback


def session_name(project: str) -> str:
    """Name of the whole-tree session for a project."""
    return f"{SESSION_PREFIX}-{sanitize_segment(project, 'project')}"


def selective_session_name(project: str, subpath: str) -> str:
    """Name of the session syncing one sub-path of a project.

    Sub-paths differing only in punctuation (``a/b`` and ``a-b``) map to
    the same name.
    """
    return f"{session_name(project)}-{sanitize_segment(subpath, 'path')}"


def remote_endpoint(remote_host: str, remote_path: str) -> str:
    return f"{remote_host}:{remote_path}"


@dataclass(frozen=True)
class EngineResult:
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class SyncStatus:
    exists: bool
    paused: bool
    status: SyncStatusValue


def _error_message(e: subprocess.CalledProcessError) -> str:
    stderr = (e.stderr or "").strip()
    if stderr:
        # mutagen prints "Error: <reason>" as the last line
        return stderr.splitlines()[-1].removeprefix("Error: ")
    return f"mutagen exited with status {e.returncode}"


class MutagenAdapter:
    """Drives the ``mutagen`` CLI.

    Sessions are owned by the Mutagen daemon; this class only starts,
    inspects and stops them by name.
    """

    def __init__(self, binary: Path | str | None = None, sync_mode: str = "two-way-resolved") -> None:
        self.binary = str(binary) if binary else (shutil.which(MUTAGEN_BINARY_NAME) or MUTAGEN_BINARY_NAME)
        self.sync_mode = sync_mode

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        logger.debug("mutagen %s", " ".join(args))
        return subprocess.run(
            [self.binary, *args],
            check=True,
            capture_output=True,
            text=True,
            errors="replace",
        )

    def _execute(self, args: list[str]) -> EngineResult:
        try:
            self._run(args)
        except subprocess.CalledProcessError as e:
            error = _error_message(e)
            logger.error("mutagen %s failed: %s", args[1] if len(args) > 1 else args[0], error)
            return EngineResult(success=False, error=error)
        except FileNotFoundError:
            logger.error("mutagen binary not found: %s", self.binary)
            return EngineResult(success=False, error=f"Mutagen not found at {self.binary}")
        return EngineResult(success=True)

    def create(self, name: str, local_path: Path | str, remote_spec: str, ignores: list[str]) -> EngineResult:
        """Create a two-way session ``name`` between a local path and ``host:path``."""
        args = [
            "sync",
            "create",
            str(local_path),
            remote_spec,
            "--name",
            name,
            "--sync-mode",
            self.sync_mode,
        ]
        for pattern in ignores:
            args += ["--ignore", pattern]
        logger.info("Creating sync session %s (%s <-> %s)", name, local_path, remote_spec)
        return self._execute(args)

    def wait_until_flushed(self, name: str, on_progress: ProgressCallback | None = None) -> EngineResult:
        """Block until the session reports both sides consistent.

        There is no timeout here; large trees can take minutes.
        """
        if on_progress:
            on_progress(f"Waiting for {name} to sync...")
        result = self._execute(["sync", "flush", name])
        if result.success and on_progress:
            on_progress(f"{name} in sync")
        return result

    def status(self, name: str) -> SyncStatus:
        try:
            result = self._run(["sync", "list", name])
        except subprocess.CalledProcessError as e:
            if "unable to locate" in (e.stderr or ""):
                return SyncStatus(exists=False, paused=False, status="none")
            return SyncStatus(exists=False, paused=False, status="error")
        except FileNotFoundError:
            return SyncStatus(exists=False, paused=False, status="error")

        if not result.stdout or "No synchronization sessions found" in result.stdout:
            return SyncStatus(exists=False, paused=False, status="none")
        paused = "[Paused]" in result.stdout
        return SyncStatus(exists=True, paused=paused, status="paused" if paused else "syncing")

    def pause(self, name: str) -> EngineResult:
        return self._execute(["sync", "pause", name])

    def resume(self, name: str) -> EngineResult:
        return self._execute(["sync", "resume", name])

    def terminate(self, name: str) -> EngineResult:
        return self._execute(["sync", "terminate", name])
