"""Error taxonomy for clock analysis and conflict resolution.

None of these are fatal to a run. Extraction and patching record them
as skipped items in the run report, and the resolution engine keeps
them as values on its state so the prompt loop can show them and ask
again.
"""

from __future__ import annotations

from pathlib import Path


class OrgCheckError(Exception):
    """Base class for all orgcheck errors."""

    kind = "error"

    def __init__(
        self,
        reason: str,
        file: Path | None = None,
        line: int | None = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.file = file
        self.line = line

    def location(self) -> str:
        """Return ``file:line``, ``file`` or an empty string."""
        if self.file is None:
            return ""
        if self.line is None:
            return str(self.file)
        return f"{self.file}:{self.line}"

    def __str__(self) -> str:
        where = self.location()
        return f"{where}: {self.reason}" if where else self.reason


class MalformedTimestamp(OrgCheckError):
    """A clock timestamp could not be read as a point in time."""

    kind = "malformed-timestamp"


class InvalidAction(OrgCheckError):
    """A resolution action does not fit the presented cluster."""

    kind = "invalid-action"


class UnsatisfiableResolution(OrgCheckError):
    """The chosen action leaves clocks overlapping."""

    kind = "unsatisfiable-resolution"


class ConcurrentModification(OrgCheckError):
    """A file changed on disk after its clocks were extracted."""

    kind = "concurrent-modification"


class OrphanClock(OrgCheckError):
    """A clock line appears before any task headline."""

    kind = "orphan-clock"


class IOFailure(OrgCheckError):
    """A file could not be read or written."""

    kind = "io-failure"


__all__ = [
    "OrgCheckError",
    "MalformedTimestamp",
    "InvalidAction",
    "UnsatisfiableResolution",
    "ConcurrentModification",
    "IOFailure",
    "OrphanClock",
]
