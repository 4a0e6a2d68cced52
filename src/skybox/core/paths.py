"""Path resolution for the local skybox layout."""

from __future__ import annotations

import os
from pathlib import Path

SKYBOX_HOME_ENV = "SKYBOX_HOME"
CONFIG_FILENAME = "config.toml"


def default_home() -> Path:
    """``$SKYBOX_HOME`` if set, otherwise ``~/.skybox``."""
    override = os.environ.get(SKYBOX_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".skybox"


class Paths:
    """Resolves all local paths for a skybox installation.

    Layout:
        <home>/
        ├── config.toml
        └── Projects/<project>/     # local mirror kept in sync by Mutagen
    """

    def __init__(self, home: Path | None = None, projects_dir: Path | None = None) -> None:
        self.home = Path(home if home is not None else default_home()).expanduser().resolve()
        self._projects_dir = projects_dir

    # --- Top-level ---

    @property
    def config_file(self) -> Path:
        return self.home / CONFIG_FILENAME

    @property
    def projects_dir(self) -> Path:
        if self._projects_dir is not None:
            return Path(self._projects_dir).expanduser().resolve()
        return self.home / "Projects"

    # --- Per-project ---

    def project_dir(self, project: str) -> Path:
        """The local mirror of a project."""
        return self.projects_dir / project

    # --- Directory creation ---

    def ensure_base_dirs(self) -> None:
        """Create base directory structure."""
        self.home.mkdir(parents=True, exist_ok=True)
        os.chmod(self.home, 0o700)
        self.projects_dir.mkdir(parents=True, exist_ok=True)
