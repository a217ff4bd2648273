"""Tests for conflict report rendering."""

from datetime import datetime
from pathlib import Path

from orgcheck.clocks.model import Clock
from orgcheck.conflict.index import find_clusters
from orgcheck.conflict.report import render_cluster, render_clocks, render_clusters

NOW = datetime(2024, 3, 4, 18, 0)


def clock(clock_id, label, start, end=None, task_line=1):
    return Clock(
        id=clock_id,
        file_path=Path("work.org"),
        task_label=label,
        task_line=task_line,
        line=clock_id + 2,
        start=datetime(2024, 3, 4, *start),
        end=datetime(2024, 3, 4, *end) if end else None,
    )


def test_render_cluster():
    clusters = find_clusters([
        clock(0, "Meeting", (9, 0), (10, 0), task_line=1),
        clock(1, "Email", (9, 30), (11, 0), task_line=5),
    ], now=NOW)

    assert render_cluster(clusters[0]) == (
        "CLOCK CONFLICT #1: 2 clocks between 2024-03-04 Mon 09:00 and 2024-03-04 Mon 11:00\n"
        "  1) [2024-03-04 Mon 09:00]--[2024-03-04 Mon 10:00] =>  1:00  'Meeting'  work.org:2\n"
        "  2) [2024-03-04 Mon 09:30]--[2024-03-04 Mon 11:00] =>  1:30  'Email'  work.org:3\n"
        "  overlaps:\n"
        "    1 & 2: 0:30"
    )


def test_running_clock_shows_cutoff():
    clusters = find_clusters([
        clock(0, "Meeting", (9, 0), None, task_line=1),
        clock(1, "Email", (9, 30), (11, 0), task_line=5),
    ], now=NOW)

    text = render_cluster(clusters[0])

    assert "[2024-03-04 Mon 09:00]--(running, counted until 2024-03-04 Mon 18:00)" in text


def test_rendering_is_deterministic():
    clocks = [
        clock(0, "A", (9, 0), (10, 0), task_line=1),
        clock(1, "B", (9, 30), (11, 0), task_line=5),
        clock(2, "C", (13, 0), (14, 0), task_line=9),
        clock(3, "D", (13, 30), (13, 45), task_line=12),
    ]

    first = render_clusters(find_clusters(clocks, now=NOW))
    second = render_clusters(find_clusters(list(reversed(clocks)), now=NOW))

    assert first == second
    assert first.index("#1") < first.index("#2")


def test_render_clocks_empty():
    assert render_clocks([], "Resulting clocks:") == "Resulting clocks:\n  (no clocks)"
