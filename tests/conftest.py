"""Shared test fixtures for skybox."""

from __future__ import annotations

import base64
import posixpath
import re
import shlex
from pathlib import Path

import pytest

from skybox.core.identity import LocalIdentity
from skybox.core.remote import RemoteResult
from skybox.models.config import Config, ProjectConfig, RemoteEntry, SkyboxSettings

_READ = re.compile(r"^if \[ -f (?P<path>.+?) \]; then cat (?P=path); fi$")
_WRITE = re.compile(
    r"^(?:mkdir -p (?P<dir>\S+) && )?(?P<excl>\(set -C; )?"
    r"echo (?P<payload>\S+) \| base64 -d > (?P<path>.+?)\)?$"
)
_REMOVE = re.compile(r"^rm -f (?P<path>.+)$")
_MKDIR = re.compile(r"^mkdir -p (?P<path>.+)$")
_LIST = re.compile(r"^d=(?P<dir>\S+); ")


class FakeRemote:
    """In-memory stand-in for ``run_remote_command``.

    Understands the handful of shell commands the lock and ownership stores
    send, keeping file contents in ``files`` keyed by ``~``-relative path.
    """

    def __init__(self) -> None:
        self.files: dict[str, str] = {}
        self.reachable = True
        self.commands: list[tuple[str, str]] = []

    @staticmethod
    def _path(token: str) -> str:
        path = shlex.split(token)[0]
        if path.startswith("$HOME"):
            path = "~" + path[len("$HOME"):]
        return path

    def __call__(self, host: str, command: str) -> RemoteResult:
        self.commands.append((host, command))
        if not self.reachable:
            return RemoteResult(success=False, error=f"ssh: connect to host {host} port 22: Connection refused")

        if m := _READ.match(command):
            return RemoteResult(success=True, stdout=self.files.get(self._path(m["path"]), ""))

        if m := _WRITE.match(command):
            path = self._path(m["path"])
            if m["excl"] and path in self.files:
                return RemoteResult(success=False, error=f"sh: cannot create {path}: File exists")
            self.files[path] = base64.b64decode(m["payload"]).decode("utf-8")
            return RemoteResult(success=True)

        if m := _REMOVE.match(command):
            self.files.pop(self._path(m["path"]), None)
            return RemoteResult(success=True)

        if m := _LIST.match(command):
            lock_dir = self._path(m["dir"])
            lines = [
                f"{posixpath.basename(path)}\t{content.replace(chr(10), '')}"
                for path, content in sorted(self.files.items())
                if posixpath.dirname(path) == lock_dir and path.endswith(".lock")
            ]
            return RemoteResult(success=True, stdout="\n".join(lines) + ("\n" if lines else ""))

        if _MKDIR.match(command):
            return RemoteResult(success=True)

        raise AssertionError(f"Unexpected remote command: {command}")

    def commands_for(self, needle: str) -> list[str]:
        return [cmd for _, cmd in self.commands if needle in cmd]


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def identity() -> LocalIdentity:
    """The local user running skybox in tests."""
    return LocalIdentity(user="bob", machine="desk", pid=4242)


@pytest.fixture
def other_identity() -> LocalIdentity:
    return LocalIdentity(user="alice", machine="laptop", pid=777)


@pytest.fixture
def sample_config() -> Config:
    """A config with one remote and one registered project."""
    return Config(
        skybox=SkyboxSettings(lock_stale_after_hours=12),
        remotes={"myserver": RemoteEntry(host="build.example.com", user="deploy", path="~/code")},
        projects={"existing": ProjectConfig(remote="myserver")},
    )


@pytest.fixture
def sample_config_toml(tmp_path: Path) -> str:
    """Sample config as TOML string."""
    return f"""\
[skybox]
log_level = "info"
sync_mode = "two-way-safe"
lock_stale_after_hours = 6
projects_dir = "{tmp_path / 'Projects'}"

[remotes.myserver]
host = "build.example.com"
user = "deploy"
path = "~/code"

[projects.backend]
remote = "myserver"
sync_paths = ["packages/api"]
"""
