"""Local identity used to stamp lock and ownership files."""

from __future__ import annotations

import getpass
import os
import socket
from dataclasses import dataclass
from datetime import datetime, timezone


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class LocalIdentity:
    """Who and where this process is.

    Resolved once at process start and passed to the lock and ownership
    stores. Ownership compares ``user`` only, so two people sharing a local
    account name on different machines are indistinguishable.
    """

    user: str
    machine: str
    pid: int

    @classmethod
    def current(cls) -> LocalIdentity:
        return cls(user=getpass.getuser(), machine=socket.gethostname(), pid=os.getpid())
