"""Project ownership files and write authorization.

The owner of a project is recorded in ``<project path>/.skybox-owner`` on
the remote the first time the project is pushed or cloned. Ownership is
compared by local OS account name only, not by the SSH user on the remote.
A project without an ownership file is writable by anyone, which keeps
projects created before ownership tracking usable.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass

from skybox.core.identity import LocalIdentity, utc_now_iso
from skybox.core.metadata import MetadataRead, ReadState, read_metadata, write_metadata
from skybox.core.remote import RemoteExec, run_remote_command
from skybox.models.metadata import OwnershipInfo

logger = logging.getLogger(__name__)

OWNERSHIP_FILE_NAME = ".skybox-owner"


@dataclass(frozen=True)
class OwnershipStatus:
    has_owner: bool
    is_owner: bool = False
    info: OwnershipInfo | None = None
    error: str | None = None

    @property
    def determined(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SetOwnershipResult:
    success: bool
    error: str | None = None
    owner_info: OwnershipInfo | None = None


@dataclass(frozen=True)
class AuthorizationResult:
    authorized: bool
    error: str | None = None
    owner_info: OwnershipInfo | None = None


def describe_owner(info: OwnershipInfo) -> str:
    return f"'{info.owner}' (created on {info.machine})"


def decide_write_authorization(status: OwnershipStatus) -> AuthorizationResult:
    """Allow when there is no owner or we are the owner; deny otherwise.

    An undetermined status is a denial: a project whose owner cannot be
    checked is not treated as unowned.
    """
    if not status.determined:
        return AuthorizationResult(authorized=False, error=status.error)
    if not status.has_owner or status.is_owner:
        return AuthorizationResult(authorized=True)
    return AuthorizationResult(
        authorized=False,
        error=f"Project owned by {describe_owner(status.info)}",
        owner_info=status.info,
    )


def _has_traversal(project_path: str) -> bool:
    return ".." in project_path.split("/")


class OwnershipStore:
    """Reads and writes ownership files on one remote host."""

    def __init__(
        self,
        host: str,
        identity: LocalIdentity,
        *,
        run: RemoteExec = run_remote_command,
    ) -> None:
        self.host = host
        self.identity = identity
        self.run = run

    @staticmethod
    def ownership_path(project_path: str) -> str:
        return posixpath.join(project_path.rstrip("/"), OWNERSHIP_FILE_NAME)

    def new_ownership_info(self) -> OwnershipInfo:
        return OwnershipInfo(
            owner=self.identity.user,
            created=utc_now_iso(),
            machine=self.identity.machine,
        )

    def is_owner(self, info: OwnershipInfo) -> bool:
        return info.owner == self.identity.user

    def read_ownership(self, project_path: str) -> MetadataRead[OwnershipInfo]:
        read = read_metadata(self.run, self.host, self.ownership_path(project_path), OwnershipInfo)
        if read.state is ReadState.CORRUPT:
            logger.warning("Ignoring unparseable ownership file in %s on %s", project_path, self.host)
        return read

    def get_ownership_status(self, project_path: str) -> OwnershipStatus:
        if _has_traversal(project_path):
            return OwnershipStatus(has_owner=False, error=f"Invalid project path: {project_path}")
        return self._status_from_read(self.read_ownership(project_path))

    def _status_from_read(self, read: MetadataRead[OwnershipInfo]) -> OwnershipStatus:
        if not read.determined:
            return OwnershipStatus(has_owner=False, error=f"Could not determine ownership: {read.error}")
        if read.info is None:
            return OwnershipStatus(has_owner=False)
        return OwnershipStatus(has_owner=True, is_owner=self.is_owner(read.info), info=read.info)

    def set_ownership(self, project_path: str) -> SetOwnershipResult:
        """Record the current identity as owner, unless someone already owns it.

        An existing file owned by the current identity counts as success. An
        unparseable file is replaced, the same way a corrupt lock is.
        """
        if _has_traversal(project_path):
            return SetOwnershipResult(
                success=False, error="Invalid project path: contains traversal sequences"
            )

        info = self.new_ownership_info()
        path = self.ownership_path(project_path)
        result = write_metadata(self.run, self.host, path, info, exclusive=True)
        if not result.success:
            read = self.read_ownership(project_path)
            if read.state is ReadState.CORRUPT:
                logger.warning("Replacing unparseable ownership file in %s on %s", project_path, self.host)
                result = write_metadata(self.run, self.host, path, info, exclusive=False)
            else:
                status = self._status_from_read(read)
                if status.has_owner and status.is_owner:
                    return SetOwnershipResult(success=True)
                if status.has_owner:
                    return SetOwnershipResult(
                        success=False,
                        error=f"Project already owned by {describe_owner(status.info)}",
                        owner_info=status.info,
                    )
                return SetOwnershipResult(
                    success=False, error=result.error or status.error or "Failed to set ownership"
                )

        if not result.success:
            return SetOwnershipResult(success=False, error=result.error or "Failed to set ownership")
        logger.info("Recorded %s as owner of %s on %s", info.owner, project_path, self.host)
        return SetOwnershipResult(success=True)

    def check_write_authorization(self, project_path: str) -> AuthorizationResult:
        return decide_write_authorization(self.get_ownership_status(project_path))
