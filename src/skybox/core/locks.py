"""Advisory project locks stored as files on the remote host.

One lock file per project lives at ``~/.skybox-locks/<project>.lock``. Lock
creation uses the remote shell's noclobber mode as an exclusive-create
primitive, but this is still advisory locking between cooperating skybox
clients: nothing stops another process from deleting or rewriting the file.
Locks never expire on their own; :func:`is_stale` only flags old locks so a
human can decide whether to force-clear them.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable

from skybox.core.identity import LocalIdentity, utc_now_iso
from skybox.core.metadata import (
    MetadataRead,
    ReadState,
    decode_metadata,
    read_metadata,
    write_metadata,
)
from skybox.core.remote import RemoteExec, quote_remote_path, run_remote_command
from skybox.models.metadata import LockInfo

logger = logging.getLogger(__name__)

DEFAULT_LOCKS_DIR = "~/.skybox-locks"
DEFAULT_STALE_AFTER = timedelta(hours=24)
LOCK_SUFFIX = ".lock"


def is_stale(lock: LockInfo, now: datetime, threshold: timedelta = DEFAULT_STALE_AFTER) -> bool:
    """Whether a lock is at least ``threshold`` old at ``now``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now - lock.acquired_at >= threshold


@dataclass(frozen=True)
class LockStatus:
    """Lock state of one project as seen from this machine.

    ``error`` is set when the state could not be determined (host
    unreachable); in that case ``locked`` is meaningless and callers must
    not proceed as if the project were free.
    """

    locked: bool
    owned_by_me: bool = False
    info: LockInfo | None = None
    stale: bool = False
    corrupt: bool = False
    error: str | None = None

    @property
    def determined(self) -> bool:
        return self.error is None

    @property
    def locked_by_other(self) -> bool:
        return self.determined and self.locked and not self.owned_by_me


@dataclass(frozen=True)
class LockResult:
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class AcquireResult:
    success: bool
    error: str | None = None
    existing_lock: LockInfo | None = None


@dataclass(frozen=True)
class ReleaseResult:
    success: bool
    error: str | None = None
    skipped: bool = False


@dataclass(frozen=True)
class LockListing:
    success: bool
    statuses: dict[str, LockStatus] = field(default_factory=dict)
    error: str | None = None


def sort_lock_statuses(statuses: dict[str, LockStatus]) -> list[tuple[str, LockStatus]]:
    """Order for display: locked by others, then locked by me, then unlocked."""

    def rank(item: tuple[str, LockStatus]) -> tuple[int, str]:
        name, status = item
        if status.locked and not status.owned_by_me:
            return 0, name
        if status.locked:
            return 1, name
        return 2, name

    return sorted(statuses.items(), key=rank)


def describe_holder(info: LockInfo) -> str:
    return f"{info.machine} ({info.user})"


class LockStore:
    """Reads and writes project lock files on one remote host."""

    def __init__(
        self,
        host: str,
        identity: LocalIdentity,
        *,
        run: RemoteExec = run_remote_command,
        locks_dir: str = DEFAULT_LOCKS_DIR,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
    ) -> None:
        self.host = host
        self.identity = identity
        self.run = run
        self.locks_dir = locks_dir.rstrip("/")
        self.stale_after = stale_after

    def lock_path(self, project: str) -> str:
        if "/" in project or project in ("", ".", ".."):
            msg = f"Invalid project name for lock file: {project!r}"
            raise ValueError(msg)
        return posixpath.join(self.locks_dir, f"{project}{LOCK_SUFFIX}")

    def new_lock_info(self) -> LockInfo:
        return LockInfo(
            machine=self.identity.machine,
            user=self.identity.user,
            timestamp=utc_now_iso(),
            pid=self.identity.pid,
        )

    # --- Primitive file operations ---

    def read_lock(self, project: str) -> MetadataRead[LockInfo]:
        """Read the lock file. Missing and corrupt files both carry no ``info``."""
        read = read_metadata(self.run, self.host, self.lock_path(project), LockInfo)
        if read.state is ReadState.CORRUPT:
            logger.warning("Ignoring unparseable lock file for %s on %s", project, self.host)
        return read

    def write_lock(self, project: str, info: LockInfo, *, exclusive: bool = True) -> LockResult:
        """Write ``info`` as the project's lock file.

        With ``exclusive`` the write fails if a lock file already exists.
        """
        result = write_metadata(
            self.run,
            self.host,
            self.lock_path(project),
            info,
            exclusive=exclusive,
            make_parent=True,
        )
        if not result.success:
            return LockResult(success=False, error=result.error or "Failed to write lock")
        return LockResult(success=True)

    def remove_lock(self, project: str) -> LockResult:
        """Delete the lock file. A missing file counts as success."""
        result = self.run(self.host, f"rm -f {quote_remote_path(self.lock_path(project))}")
        if not result.success:
            return LockResult(success=False, error=result.error or "Failed to remove lock")
        return LockResult(success=True)

    # --- Status ---

    def status_from_read(self, read: MetadataRead[LockInfo], now: datetime | None = None) -> LockStatus:
        if not read.determined:
            return LockStatus(locked=False, error=f"Could not determine lock state: {read.error}")
        if read.info is None:
            return LockStatus(locked=False, corrupt=read.state is ReadState.CORRUPT)
        now = now or datetime.now(timezone.utc)
        return LockStatus(
            locked=True,
            owned_by_me=read.info.machine == self.identity.machine,
            info=read.info,
            stale=is_stale(read.info, now, self.stale_after),
        )

    def get_lock_status(self, project: str) -> LockStatus:
        return self.status_from_read(self.read_lock(project))

    def get_all_lock_statuses(self, projects: Iterable[str] = ()) -> LockListing:
        """Classify every known project plus every project with a lock file.

        All lock files are fetched in a single round trip as
        ``<name>.lock<TAB><json>`` lines.
        """
        quoted_dir = quote_remote_path(self.locks_dir)
        command = (
            f"d={quoted_dir}; "
            'if [ -d "$d" ]; then for f in "$d"/*.lock; do '
            '[ -f "$f" ] || continue; '
            "printf '%s\\t%s\\n' \"$(basename \"$f\")\" \"$(tr -d '\\n' < \"$f\")\"; "
            "done; fi"
        )
        result = self.run(self.host, command)
        if not result.success:
            return LockListing(
                success=False,
                error=f"Could not determine lock state on {self.host}: {result.error or 'command failed'}",
            )

        now = datetime.now(timezone.utc)
        statuses = {name: LockStatus(locked=False) for name in projects}
        for line in result.stdout.splitlines():
            filename, sep, content = line.partition("\t")
            if not sep or not filename.endswith(LOCK_SUFFIX):
                continue
            project = filename[: -len(LOCK_SUFFIX)]
            statuses[project] = self.status_from_read(decode_metadata(content, LockInfo), now)
        return LockListing(success=True, statuses=statuses)

    # --- Acquire / release ---

    def acquire_lock(self, project: str) -> AcquireResult:
        """Take the project lock for this machine.

        Succeeds when no lock exists, the lock file is unparseable, or this
        machine already holds it (the timestamp is refreshed). Fails when
        another machine holds it or the lock state cannot be determined.
        """
        info = self.new_lock_info()
        if self.write_lock(project, info, exclusive=True).success:
            logger.info("Acquired lock for %s on %s", project, self.host)
            return AcquireResult(success=True)

        status = self.get_lock_status(project)
        if not status.determined:
            return AcquireResult(success=False, error=status.error)

        if status.locked and status.owned_by_me:
            refreshed = self.write_lock(project, info, exclusive=False)
            if not refreshed.success:
                return AcquireResult(success=False, error=refreshed.error or "Failed to update lock")
            logger.info("Refreshed own lock for %s on %s", project, self.host)
            return AcquireResult(success=True)

        if status.locked:
            return AcquireResult(
                success=False,
                error=f"Project is locked by {describe_holder(status.info)}",
                existing_lock=status.info,
            )

        if status.corrupt:
            replaced = self.write_lock(project, info, exclusive=False)
            if not replaced.success:
                return AcquireResult(success=False, error=replaced.error or "Failed to replace lock")
            logger.warning("Replaced unparseable lock file for %s on %s", project, self.host)
            return AcquireResult(success=True)

        # Lock vanished between the failed create and the read; try once more.
        if self.write_lock(project, info, exclusive=True).success:
            logger.info("Acquired lock for %s on %s after retry", project, self.host)
            return AcquireResult(success=True)
        return AcquireResult(
            success=False,
            error="Failed to acquire lock: concurrent access detected, try again",
        )

    def release_lock(self, project: str) -> ReleaseResult:
        """Remove the lock if it is ours or already gone; leave others' locks alone."""
        status = self.get_lock_status(project)
        if not status.determined:
            return ReleaseResult(success=False, error=status.error)
        if status.locked_by_other:
            logger.info(
                "Not releasing lock for %s held by %s", project, describe_holder(status.info)
            )
            return ReleaseResult(success=True, skipped=True)

        removed = self.remove_lock(project)
        if not removed.success:
            return ReleaseResult(success=False, error=removed.error)
        logger.info("Released lock for %s on %s", project, self.host)
        return ReleaseResult(success=True)

    def force_lock(self, project: str) -> LockResult:
        """Overwrite whatever lock exists with one for this machine."""
        result = self.write_lock(project, self.new_lock_info(), exclusive=False)
        if result.success:
            logger.warning("Forced lock for %s on %s", project, self.host)
        return result
