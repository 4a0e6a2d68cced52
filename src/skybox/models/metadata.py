"""Pydantic models for the metadata files skybox keeps on the remote."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _RemoteMetadata(BaseModel):
    # Strict so a missing or mistyped field is treated as corruption
    model_config = ConfigDict(strict=True, frozen=True)


def _check_iso_timestamp(value: str) -> str:
    datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


class LockInfo(_RemoteMetadata):
    """Contents of ``~/.skybox-locks/<project>.lock``."""

    machine: str = Field(min_length=1)
    user: str
    timestamp: str
    pid: int

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: str) -> str:
        return _check_iso_timestamp(v)

    @property
    def acquired_at(self) -> datetime:
        """Lock timestamp as an aware datetime (naive values are taken as UTC)."""
        at = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        return at


class OwnershipInfo(_RemoteMetadata):
    """Contents of ``<project path>/.skybox-owner``."""

    owner: str = Field(min_length=1)
    created: str
    machine: str

    @field_validator("created")
    @classmethod
    def validate_created(cls, v: str) -> str:
        return _check_iso_timestamp(v)
