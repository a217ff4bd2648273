"""Tests for single-clock checks."""

from datetime import datetime, timedelta
from pathlib import Path

from orgcheck.clocks.checks import check_clock, check_clocks
from orgcheck.clocks.model import Clock
from orgcheck.core.config import ChecksConfig, KnownLongDuration

START = datetime(2024, 3, 4, 9, 0)


def clock(minutes=None, stated="auto", title="Task"):
    end = None if minutes is None else START + timedelta(minutes=minutes)
    if stated == "auto" and end is not None:
        total = abs(minutes)
        stated = f"{'-' if minutes < 0 else ''}{total // 60}:{total % 60:02d}"
    elif stated == "auto":
        stated = None
    return Clock(
        id=0,
        file_path=Path("/home/me/org/work.org"),
        task_label=title,
        task_line=1,
        line=2,
        start=START,
        end=end,
        stated_duration=stated,
    )


def kinds(problems):
    return [p.kind for p in problems]


def test_clean_clock_has_no_problems():
    assert check_clock(clock(30), ChecksConfig()) == []


def test_duration_mismatch():
    problems = check_clock(clock(30, stated="0:20"), ChecksConfig())

    assert kinds(problems) == ["DURATION STRING DOES NOT MATCH:"]
    assert problems[0].render() == (
        "[/home/me/org/work.org:2] DURATION STRING DOES NOT MATCH: "
        "'Task' (0:20 vs 0:30)"
    )


def test_long_duration_and_allowlist():
    checks = ChecksConfig(long_duration_limit="10:00")
    assert kinds(check_clock(clock(11 * 60), checks)) == ["LONG DURATION:"]
    assert check_clock(clock(10 * 60), checks) == []

    checks = ChecksConfig(known_long_durations=[
        KnownLongDuration(file="work.org", duration="11:00", title="Task"),
    ])
    assert check_clock(clock(11 * 60), checks) == []


def test_running_negative_and_zero():
    assert kinds(check_clock(clock(None), ChecksConfig())) == ["RUNNING CLOCK"]
    assert kinds(check_clock(clock(-30), ChecksConfig())) == ["NEGATIVE DURATION"]
    assert kinds(check_clock(clock(0), ChecksConfig())) == ["ZERO DURATION"]


def test_disabled_checks_are_silent():
    checks = ChecksConfig(
        duration_mismatch=False,
        running_clock=False,
        zero_clocks=False,
    )
    assert check_clocks(
        [clock(30, stated="0:20"), clock(None), clock(0)], checks
    ) == []
