"""Clock entities and org timestamp handling."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from orgcheck.core.errors import MalformedTimestamp

TIMESTAMP_RE = re.compile(
    r'^([\[<])\s*(\d{4})-(\d{2})-(\d{2})'   # [2022-12-12
    r'(?:\s+[^\s\d\]>]+)?'                  # day name, possibly localized
    r'\s+(\d{1,2}):(\d{2})\s*([\]>])$'      # 10:45]
)
# Written explicitly so output does not depend on the locale.
DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
CLOSING = {"[": "]", "<": ">"}


def parse_timestamp(text: str) -> tuple[datetime, str]:
    """Parse ``[YYYY-MM-DD Dow HH:MM]`` or ``<...>``.

    Returns:
        The timestamp and its opening bracket

    Raises:
        MalformedTimestamp: If the text is not a valid point in time
    """
    match = TIMESTAMP_RE.match(text.strip())
    if not match or CLOSING[match.group(1)] != match.group(7):
        raise MalformedTimestamp(f"cannot parse timestamp {text!r}")
    bracket = match.group(1)
    year, month, day, hour, minute = (int(g) for g in match.group(2, 3, 4, 5, 6))
    try:
        return datetime(year, month, day, hour, minute), bracket
    except ValueError as e:
        raise MalformedTimestamp(f"invalid timestamp {text!r}: {e}") from e


def format_timestamp(value: datetime, bracket: str = "[") -> str:
    return (
        f"{bracket}{value:%Y-%m-%d} {DAY_NAMES[value.weekday()]} "
        f"{value:%H:%M}{CLOSING[bracket]}"
    )


def format_duration(delta: timedelta) -> str:
    """Format as ``H:MM``, with a leading ``-`` when negative."""
    total = int(delta.total_seconds() / 60)
    sign = "-" if total < 0 else ""
    hours, minutes = divmod(abs(total), 60)
    return f"{sign}{hours}:{minutes:02d}"


def parse_duration(text: str) -> timedelta | None:
    """Parse a stated ``[-]H:MM`` duration; None if unreadable."""
    match = re.fullmatch(r'\s*(-?)(\d+):(\d{2})\s*', text)
    if not match:
        return None
    sign, hours, minutes = match.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    return -delta if sign else delta


@dataclass(frozen=True)
class Clock:
    """One recorded interval of work on a task.

    ``id`` is unique within one extraction. Clocks created by a split
    carry the id of the clock they were cut from in ``origin_id`` and
    have no spans of their own.
    """

    id: int
    file_path: Path
    task_label: str
    task_line: int
    line: int
    start: datetime
    end: datetime | None = None
    stated_duration: str | None = None
    line_span: tuple[int, int] | None = None
    body_span: tuple[int, int] | None = None
    bracket: str = "["
    origin_id: int | None = None

    @property
    def is_running(self) -> bool:
        return self.end is None

    @property
    def duration(self) -> timedelta:
        """``end - start``; zero for a running clock."""
        if self.end is None:
            return timedelta(0)
        return self.end - self.start

    @property
    def scope(self) -> tuple[Path, int]:
        """File and task the clock belongs to."""
        return (self.file_path, self.task_line)

    def bounds(self, running_end: datetime | None = None) -> tuple[datetime, datetime]:
        """Normalized ``[lo, hi)``; a running clock ends at ``running_end``."""
        end = self.end if self.end is not None else (running_end or self.start)
        return min(self.start, end), max(self.start, end)

    def matches_duration(self) -> bool:
        """Does the stated duration equal ``end - start``?"""
        if self.is_running:
            return True
        if self.stated_duration is None:
            return False
        return parse_duration(self.stated_duration) == self.duration

    def body(self) -> str:
        """Render the timestamps and duration as org writes them."""
        text = format_timestamp(self.start, self.bracket)
        if self.end is not None:
            text += (
                f"--{format_timestamp(self.end, self.bracket)}"
                f" => {format_duration(self.duration):>5}"
            )
        return text

    def location(self) -> str:
        return f"{self.file_path}:{self.line}"

    def __str__(self) -> str:
        return self.body()
