"""Stateless checks on individual clocks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from orgcheck.clocks.model import Clock, format_duration
from orgcheck.core.config import ChecksConfig, KnownLongDuration


@dataclass(frozen=True)
class Problem:
    """A soundness problem found on one clock."""

    kind: str
    clock: Clock
    detail: str

    def render(self) -> str:
        return f"[{self.clock.location()}] {self.kind} {self.detail}"


def is_known_long(clock: Clock, known: list[KnownLongDuration]) -> bool:
    duration = format_duration(clock.duration)
    return any(
        str(clock.file_path).endswith(entry.file)
        and clock.task_label == entry.title
        and entry.duration == duration
        for entry in known
    )


def check_clock(clock: Clock, checks: ChecksConfig) -> list[Problem]:
    """Run every enabled single-clock check on ``clock``."""
    problems = []
    title = repr(clock.task_label)
    duration = format_duration(clock.duration)

    if checks.duration_mismatch and not clock.matches_duration():
        problems.append(Problem(
            "DURATION STRING DOES NOT MATCH:", clock,
            f"{title} ({clock.stated_duration or ''} vs {duration})",
        ))

    if (
        checks.long_duration
        and clock.duration > checks.long_duration_threshold
        and not is_known_long(clock, checks.known_long_durations)
    ):
        problems.append(Problem("LONG DURATION:", clock, f"{duration} in {title}"))

    if checks.running_clock and clock.is_running:
        problems.append(Problem("RUNNING CLOCK", clock, title))

    if checks.negative_duration and clock.duration < timedelta(0):
        problems.append(Problem("NEGATIVE DURATION", clock, f"{title}: {duration}"))

    if (
        checks.zero_clocks
        and not clock.is_running
        and clock.duration == timedelta(0)
    ):
        problems.append(Problem("ZERO DURATION", clock, f"{title}: {duration}"))

    return problems


def check_clocks(clocks: list[Clock], checks: ChecksConfig) -> list[Problem]:
    problems = []
    for clock in clocks:
        problems.extend(check_clock(clock, checks))
    return problems
