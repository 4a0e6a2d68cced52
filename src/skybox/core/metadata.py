"""Encoding and transport of the JSON metadata files stored on the remote.

Lock and ownership files share one wire format: UTF-8 JSON, shipped to the
remote base64-encoded and decoded there with ``base64 -d``, so usernames and
paths never need shell quoting inside the payload.
"""

from __future__ import annotations

import base64
import enum
import logging
import posixpath
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from skybox.core.remote import RemoteExec, RemoteResult, quote_remote_path

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ReadState(str, enum.Enum):
    ABSENT = "absent"
    CORRUPT = "corrupt"
    VALID = "valid"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class MetadataRead(Generic[M]):
    """Result of reading one metadata file.

    ``ABSENT`` and ``CORRUPT`` both leave ``info`` empty; callers that only
    care about usable metadata can check ``info``, callers that want to warn
    about corruption can check ``state``. ``UNREACHABLE`` means the remote
    could not be asked at all and must not be read as "absent".
    """

    state: ReadState
    info: M | None = None
    raw: str | None = None
    error: str | None = None

    @property
    def determined(self) -> bool:
        return self.state is not ReadState.UNREACHABLE


def encode_metadata(info: BaseModel) -> str:
    return base64.b64encode(info.model_dump_json().encode("utf-8")).decode("ascii")


def decode_metadata(raw: str | None, model: type[M]) -> MetadataRead[M]:
    """Validate raw file content against ``model``; never raises."""
    if raw is None or not raw.strip():
        return MetadataRead(ReadState.ABSENT)
    try:
        info = model.model_validate_json(raw.strip())
    except ValidationError as e:
        logger.debug("Unparseable %s content: %s", model.__name__, e)
        return MetadataRead(ReadState.CORRUPT, raw=raw)
    return MetadataRead(ReadState.VALID, info=info, raw=raw)


def read_command(path: str) -> str:
    """``cat`` that exits 0 with no output when the file is missing."""
    quoted = quote_remote_path(path)
    return f"if [ -f {quoted} ]; then cat {quoted}; fi"


def write_command(path: str, payload: str, *, exclusive: bool, make_parent: bool = False) -> str:
    """Decode ``payload`` into ``path`` on the remote.

    With ``exclusive`` the redirect runs under ``set -C`` (noclobber), so it
    fails when the file already exists.
    """
    quoted = quote_remote_path(path)
    redirect = f"echo {payload} | base64 -d > {quoted}"
    if exclusive:
        redirect = f"(set -C; {redirect})"
    if make_parent:
        parent = quote_remote_path(posixpath.dirname(path))
        return f"mkdir -p {parent} && {redirect}"
    return redirect


def read_metadata(run: RemoteExec, host: str, path: str, model: type[M]) -> MetadataRead[M]:
    result = run(host, read_command(path))
    if not result.success:
        return MetadataRead(ReadState.UNREACHABLE, error=result.error or f"Could not reach {host}")
    return decode_metadata(result.stdout, model)


def write_metadata(
    run: RemoteExec,
    host: str,
    path: str,
    info: BaseModel,
    *,
    exclusive: bool,
    make_parent: bool = False,
) -> RemoteResult:
    command = write_command(path, encode_metadata(info), exclusive=exclusive, make_parent=make_parent)
    return run(host, command)
