"""Remote command execution over the system ``ssh`` binary."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

SSH_CONNECT_TIMEOUT = 10


@dataclass(frozen=True)
class RemoteResult:
    """Outcome of one remote command. ``success`` means exit status 0."""

    success: bool
    stdout: str = ""
    error: str | None = None


# (host, command) -> RemoteResult. Stores take one of these so tests can
# substitute a fake without touching ssh.
RemoteExec = Callable[[str, str], RemoteResult]


def quote_remote_path(path: str) -> str:
    """Shell-quote a remote path while keeping a leading ``~/`` expandable."""
    if path == "~":
        return '"$HOME"'
    if path.startswith("~/"):
        return '"$HOME"/' + shlex.quote(path[2:])
    return shlex.quote(path)


def run_remote_command(
    host: str,
    command: str,
    *,
    identity_file: Path | None = None,
    timeout: float | None = None,
) -> RemoteResult:
    """Run a shell command on ``host`` and capture its stdout.

    Never raises for transport or command failures; those come back as
    ``RemoteResult(success=False, error=...)``.
    """
    cmd = ["ssh", "-o", "BatchMode=yes", "-o", f"ConnectTimeout={SSH_CONNECT_TIMEOUT}"]
    if identity_file is not None:
        cmd += ["-i", str(identity_file)]
    cmd += ["--", host, command]

    logger.debug("ssh %s: %s", host, command)

    try:
        result = subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
            # binary remote output surfaces as corrupt metadata downstream
            errors="replace",
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        error = (e.stderr or "").strip() or f"Remote command exited with status {e.returncode}"
        logger.debug("ssh %s failed (%d): %s", host, e.returncode, error)
        return RemoteResult(success=False, stdout=e.stdout or "", error=error)
    except subprocess.TimeoutExpired:
        logger.warning("ssh %s timed out after %ss", host, timeout)
        return RemoteResult(success=False, error=f"Timed out connecting to {host}")
    except FileNotFoundError:
        logger.error("ssh binary not found on PATH")
        return RemoteResult(success=False, error="ssh not found. Please install OpenSSH.")

    return RemoteResult(success=True, stdout=result.stdout)


def remote_exec_for(identity_file: Path | None = None) -> RemoteExec:
    """Bind an identity file into a :data:`RemoteExec` callable."""

    def run(host: str, command: str) -> RemoteResult:
        return run_remote_command(host, command, identity_file=identity_file)

    return run

