"""Group clocks into maximal clusters of overlapping intervals."""

from __future__ import annotations

import bisect
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal

from orgcheck.clocks.model import Clock

RunningClockEnd = Literal["next_clock", "now"]


@dataclass(frozen=True)
class Interval:
    """A clock normalized to the half-open range ``[lo, hi)``."""

    clock: Clock
    lo: datetime
    hi: datetime

    @property
    def sort_key(self) -> tuple:
        """Start time, then file, then extraction order."""
        return (self.lo, str(self.clock.file_path), self.clock.id)

    @property
    def is_empty(self) -> bool:
        return self.lo >= self.hi

    def overlaps(self, other: Interval) -> bool:
        return self.lo < other.hi and other.lo < self.hi

    def overlap(self, other: Interval) -> timedelta:
        """Length of the shared part; zero when disjoint."""
        shared = min(self.hi, other.hi) - max(self.lo, other.lo)
        return max(shared, timedelta(0))


@dataclass(frozen=True)
class ConflictCluster:
    """Clocks whose intervals overlap, directly or through each other."""

    id: int
    intervals: tuple[Interval, ...]

    @property
    def clocks(self) -> tuple[Clock, ...]:
        return tuple(interval.clock for interval in self.intervals)

    @property
    def lo(self) -> datetime:
        return min(interval.lo for interval in self.intervals)

    @property
    def hi(self) -> datetime:
        return max(interval.hi for interval in self.intervals)

    @property
    def files(self) -> list:
        return sorted({clock.file_path for clock in self.clocks}, key=str)

    @property
    def key(self) -> frozenset:
        """Identifies the cluster across rescans.

        Line numbers are left out: patching another cluster higher up in
        the same file moves them.
        """
        return frozenset(
            (str(c.file_path), c.task_label, c.start, c.end) for c in self.clocks
        )

    def interval_for(self, clock_id: int) -> Interval | None:
        for interval in self.intervals:
            if interval.clock.id == clock_id:
                return interval
        return None

    def pairwise_overlaps(self) -> list[tuple[int, int, timedelta]]:
        """``(i, j, amount)`` for each overlapping pair of positions."""
        pairs = []
        for i, a in enumerate(self.intervals):
            for j in range(i + 1, len(self.intervals)):
                amount = a.overlap(self.intervals[j])
                if amount > timedelta(0):
                    pairs.append((i, j, amount))
        return pairs


def running_ends(
    clocks: list[Clock],
    now: datetime,
    policy: RunningClockEnd = "next_clock",
) -> dict[int, datetime]:
    """Where each running clock ends for overlap purposes, by clock id.

    With ``next_clock`` a running clock ends where the next clock of
    the same file and task starts; without one, and always with
    ``now``, it ends at ``now``. It never ends before it starts.
    """
    starts: dict[tuple, list[datetime]] = defaultdict(list)
    if policy == "next_clock":
        for clock in clocks:
            starts[clock.scope].append(clock.start)
        for scope_starts in starts.values():
            scope_starts.sort()

    ends = {}
    for clock in clocks:
        if not clock.is_running:
            continue
        end = now
        scope_starts = starts.get(clock.scope)
        if scope_starts:
            i = bisect.bisect_right(scope_starts, clock.start)
            if i < len(scope_starts):
                end = scope_starts[i]
        ends[clock.id] = max(end, clock.start)
    return ends


def resolve_intervals(
    clocks: list[Clock],
    now: datetime | None = None,
    policy: RunningClockEnd = "next_clock",
) -> list[Interval]:
    """Normalize clocks to intervals; a reversed clock is flipped."""
    now = now or datetime.now()
    ends = running_ends(clocks, now, policy)
    intervals = []
    for clock in clocks:
        lo, hi = clock.bounds(ends.get(clock.id))
        intervals.append(Interval(clock=clock, lo=lo, hi=hi))
    return intervals


def sweep(intervals: list[Interval]) -> list[list[Interval]]:
    """Partition intervals into maximal overlapping groups.

    Empty intervals cannot overlap anything and are left out. Groups
    come back ordered by start, members by ``Interval.sort_key``.
    """
    groups: list[list[Interval]] = []
    hi_max = None
    for interval in sorted(intervals, key=lambda iv: iv.sort_key):
        if interval.is_empty:
            continue
        if hi_max is not None and interval.lo < hi_max:
            groups[-1].append(interval)
            hi_max = max(hi_max, interval.hi)
        else:
            groups.append([interval])
            hi_max = interval.hi
    return groups


def find_clusters(
    clocks: list[Clock],
    now: datetime | None = None,
    policy: RunningClockEnd = "next_clock",
) -> list[ConflictCluster]:
    """Return every group of two or more overlapping clocks."""
    return clusters_of(resolve_intervals(clocks, now, policy))


def clusters_of(intervals: list[Interval]) -> list[ConflictCluster]:
    """Number the overlapping groups of already resolved intervals."""
    conflicts = [group for group in sweep(intervals) if len(group) > 1]
    return [
        ConflictCluster(id=number, intervals=tuple(group))
        for number, group in enumerate(conflicts, start=1)
    ]
