"""Config loading, validation and saving for skybox."""

from __future__ import annotations

import os
import sys
import tomllib
from pathlib import Path

import tomli_w
from pydantic import ValidationError

from skybox.core.paths import Paths
from skybox.models.config import Config
from skybox.utils.console import apply_config_log_level


def find_config_path(explicit_path: Path | None = None) -> Path | None:
    """Find the config file, checking the explicit path, then the skybox home."""
    if explicit_path is not None:
        if explicit_path.is_file():
            return explicit_path.resolve()
        return None

    default = Paths().config_file
    if default.is_file():
        return default
    return None


def load_config(path: Path) -> Config:
    """Load and validate config from a TOML file.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValueError: If the TOML is invalid or fails validation.
    """
    if not path.is_file():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    text = path.read_text()

    try:
        raw = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ValueError(msg) from e

    try:
        config = Config.model_validate(raw)
    except ValidationError as e:
        msg = f"Config validation failed:\n{e}"
        raise ValueError(msg) from e

    if config.skybox.projects_dir is not None:
        pd = config.skybox.projects_dir.expanduser()
        if not pd.is_absolute():
            pd = path.resolve().parent / pd
        config.skybox.projects_dir = pd.resolve()

    return config


def save_config(config: Config, path: Path) -> None:
    """Write config as TOML, atomically and readable only by the owner.

    The file is written to a sibling temp file first and renamed into place,
    so a crash never leaves a truncated config behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    data = config.model_dump(mode="json", exclude_none=True)
    content = tomli_w.dumps(data)

    tmp_path = path.with_name(f"{path.name}.tmp.{os.getpid()}")
    fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def load_config_or_exit(path: Path | None = None) -> tuple[Config, Path]:
    """Load config, printing errors and exiting on failure.

    Returns the config together with the resolved file it came from, so
    callers that register projects can save back to the same file.
    """
    from rich.console import Console

    console = Console(stderr=True)

    resolved = find_config_path(path)
    if resolved is None:
        where = str(path) if path else str(Paths().config_file)
        console.print(f"[red]Config file not found.[/red] Looked at: {where}")
        console.print("Run [bold]skybox init[/bold] to create one.")
        sys.exit(1)

    try:
        cfg = load_config(resolved)
    except ValueError as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(1)

    apply_config_log_level(cfg.skybox.log_level)
    return cfg, resolved
