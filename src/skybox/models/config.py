"""Pydantic models for skybox configuration."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# Patterns every sync session ignores unless the config says otherwise.
DEFAULT_IGNORE = [
    ".git/index.lock",
    ".git/*.lock",
    ".git/hooks/*",
    "node_modules",
    "venv",
    ".venv",
    "__pycache__",
    "*.pyc",
    ".skybox-local",
    "dist",
    "build",
    ".next",
    "target",
    "vendor",
]

SyncMode = Literal["two-way-resolved", "two-way-safe", "one-way-replica"]

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,63}$")


def _validate_name(kind: str, value: str) -> str:
    if not _NAME_PATTERN.match(value):
        msg = (
            f"{kind} name must be 1-64 characters (letters, digits, '.', '_' or '-'), "
            "starting with a letter or digit"
        )
        raise ValueError(msg)
    return value


def validate_project_name(name: str) -> str:
    """Raise ``ValueError`` unless ``name`` can key the config, a lock file and a session."""
    return _validate_name("Project", name)


class RemoteEntry(BaseModel):
    """An SSH host holding the authoritative project trees."""

    host: str
    user: str | None = None
    path: str = "~/code"
    key: Path | None = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if ".." in Path(v).parts:
            msg = f"Remote path cannot contain '..': {v}"
            raise ValueError(msg)
        return v.rstrip("/") or "/"

    @property
    def ssh_target(self) -> str:
        """The ``user@host`` (or bare host) string handed to ssh."""
        return f"{self.user}@{self.host}" if self.user else self.host

    def project_path(self, project: str) -> str:
        return f"{self.path}/{project}"


class ProjectConfig(BaseModel):
    """A project registered after its first successful sync."""

    remote: str
    sync_paths: list[str] = Field(default_factory=list)
    ignore: list[str] | None = None

    @field_validator("sync_paths")
    @classmethod
    def validate_sync_paths(cls, v: list[str]) -> list[str]:
        """Reject sub-paths that would escape the project tree."""
        for subpath in v:
            normalized = Path(subpath).as_posix()
            if normalized.startswith("/") or ".." in Path(normalized).parts:
                raise ValueError(f"Invalid sync path: {subpath} (must be relative, without ..)")
        return v


class SkyboxSettings(BaseModel):
    log_level: str = Field(default="warning", pattern=r"^(debug|info|warning|error)$")
    sync_mode: SyncMode = "two-way-resolved"
    ignore: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE))
    lock_stale_after_hours: float = Field(default=24.0, gt=0)
    projects_dir: Path | None = None  # Local mirror root, defaults to ~/.skybox/Projects


class Config(BaseModel):
    skybox: SkyboxSettings = SkyboxSettings()
    remotes: dict[str, RemoteEntry] = {}
    projects: dict[str, ProjectConfig] = {}

    @field_validator("remotes")
    @classmethod
    def validate_remote_names(cls, v: dict[str, RemoteEntry]) -> dict[str, RemoteEntry]:
        for name in v:
            _validate_name("Remote", name)
        return v

    @field_validator("projects")
    @classmethod
    def validate_project_names(cls, v: dict[str, ProjectConfig]) -> dict[str, ProjectConfig]:
        for name in v:
            _validate_name("Project", name)
        return v

    def get_remote(self, name: str) -> RemoteEntry | None:
        """Get a remote by name."""
        return self.remotes.get(name)

    def get_project_remote(self, project: str) -> tuple[str, RemoteEntry] | None:
        """Resolve the (name, remote) pair a registered project belongs to."""
        project_cfg = self.projects.get(project)
        if project_cfg is None:
            return None
        remote = self.remotes.get(project_cfg.remote)
        if remote is None:
            return None
        return project_cfg.remote, remote

    def projects_on_remote(self, remote_name: str) -> list[str]:
        """Names of all registered projects that live on a remote."""
        return sorted(name for name, p in self.projects.items() if p.remote == remote_name)
