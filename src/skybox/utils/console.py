"""Shared stderr console and logging setup."""

from __future__ import annotations

import logging

from rich.console import Console

err_console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "warning") -> None:
    """Route library logs to stderr at the given level name."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        force=True,
    )


def apply_config_log_level(level: str) -> None:
    """Lower the root log level to the configured one; ``--verbose`` still wins."""
    wanted = getattr(logging, level.upper(), logging.WARNING)
    root = logging.getLogger()
    if wanted < root.level:
        root.setLevel(wanted)
