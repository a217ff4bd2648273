"""Tests for interval normalization and conflict clustering."""

import random
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path

from orgcheck.clocks.model import Clock
from orgcheck.conflict.index import find_clusters, resolve_intervals, sweep

DAY = datetime(2024, 3, 4)
NOW = datetime(2024, 3, 4, 18, 0)


def at(hhmm: str) -> datetime:
    hour, minute = map(int, hhmm.split(":"))
    return DAY.replace(hour=hour, minute=minute)


def clock(clock_id, start, end=None, task_line=None, file="work.org"):
    return Clock(
        id=clock_id,
        file_path=Path(file),
        task_label=f"Task {clock_id}",
        task_line=clock_id * 10 + 1 if task_line is None else task_line,
        line=clock_id * 10 + 2,
        start=at(start),
        end=at(end) if end else None,
    )


def cluster_ids(clusters):
    return [[c.id for c in cluster.clocks] for cluster in clusters]


def test_two_overlapping_clocks_form_one_cluster():
    clusters = find_clusters(
        [clock(0, "09:00", "10:00"), clock(1, "09:30", "11:00")], now=NOW
    )

    assert cluster_ids(clusters) == [[0, 1]]
    assert clusters[0].id == 1
    assert (clusters[0].lo, clusters[0].hi) == (at("09:00"), at("11:00"))


def test_non_overlapping_clocks_report_nothing():
    clocks = [
        clock(0, "09:00", "10:00"),
        clock(1, "10:00", "11:00"),  # touching is not overlapping
        clock(2, "12:00", "13:00"),
    ]
    assert find_clusters(clocks, now=NOW) == []


def test_overlap_is_transitive():
    clocks = [
        clock(0, "09:00", "10:00"),
        clock(1, "09:30", "09:45"),
        clock(2, "09:40", "11:00"),
        clock(3, "10:30", "12:00"),
        clock(4, "13:00", "14:00"),
    ]

    assert cluster_ids(find_clusters(clocks, now=NOW)) == [[0, 1, 2, 3]]


def test_chain_without_direct_overlap_still_clusters():
    clocks = [
        clock(0, "09:00", "10:00"),
        clock(1, "09:50", "10:20"),
        clock(2, "10:10", "11:00"),
    ]

    clusters = find_clusters(clocks, now=NOW)

    assert cluster_ids(clusters) == [[0, 1, 2]]
    assert [(i, j) for i, j, _ in clusters[0].pairwise_overlaps()] == [(0, 1), (1, 2)]


def test_clustering_is_order_independent():
    clocks = [
        clock(0, "09:00", "10:00"),
        clock(1, "09:30", "09:45"),
        clock(2, "11:00", "12:00"),
        clock(3, "11:30", "13:00"),
        clock(4, "15:00", "16:00"),
    ]
    expected = cluster_ids(find_clusters(clocks, now=NOW))

    shuffled = clocks[:]
    random.Random(7).shuffle(shuffled)

    assert cluster_ids(find_clusters(shuffled, now=NOW)) == expected
    assert expected == [[0, 1], [2, 3]]


def test_zero_length_clocks_never_conflict():
    clocks = [clock(0, "09:00", "10:00"), clock(1, "09:30", "09:30")]
    assert find_clusters(clocks, now=NOW) == []


def test_reversed_clock_uses_normalized_range():
    clocks = [clock(0, "10:00", "09:00"), clock(1, "09:30", "09:40")]
    assert cluster_ids(find_clusters(clocks, now=NOW)) == [[0, 1]]


def test_members_ordered_by_start_then_file_then_id():
    clocks = [
        clock(0, "09:00", "10:00", file="b.org"),
        clock(1, "09:00", "10:00", file="a.org"),
        clock(2, "08:00", "09:30", file="b.org"),
    ]

    clusters = find_clusters(clocks, now=NOW)

    assert cluster_ids(clusters) == [[2, 1, 0]]
    assert [str(f) for f in clusters[0].files] == ["a.org", "b.org"]


def test_running_clock_ends_at_next_clock_of_same_task():
    clocks = [
        clock(0, "14:00", None, task_line=1),
        clock(1, "15:00", "16:00", task_line=1),
    ]

    intervals = resolve_intervals(clocks, now=NOW)

    assert intervals[0].hi == at("15:00")
    assert find_clusters(clocks, now=NOW) == []


def test_running_clock_without_successor_ends_now():
    clocks = [
        clock(0, "14:00", None, task_line=1),
        clock(1, "15:00", "16:00", task_line=2),
    ]

    assert resolve_intervals(clocks, now=NOW)[0].hi == NOW
    assert cluster_ids(find_clusters(clocks, now=NOW)) == [[0, 1]]


def test_now_policy_ignores_next_clock():
    clocks = [
        clock(0, "14:00", None, task_line=1),
        clock(1, "15:00", "16:00", task_line=1),
    ]

    clusters = find_clusters(clocks, now=NOW, policy="now")

    assert cluster_ids(clusters) == [[0, 1]]
    assert clusters[0].hi == NOW


def test_running_clock_started_after_now_is_empty():
    clocks = [clock(0, "19:00", None), clock(1, "18:30", "20:00")]
    assert find_clusters(clocks, now=NOW) == []


def test_pairwise_overlap_amounts():
    clusters = find_clusters(
        [clock(0, "09:00", "10:00"), clock(1, "09:30", "11:00")], now=NOW
    )
    assert clusters[0].pairwise_overlaps() == [(0, 1, timedelta(minutes=30))]


def test_sweep_skips_empty_intervals():
    intervals = resolve_intervals(
        [clock(0, "09:00", "09:00"), clock(1, "10:00", "11:00")], now=NOW
    )
    groups = sweep(intervals)
    assert [[iv.clock.id for iv in group] for group in groups] == [[1]]


def test_cluster_key_ignores_line_numbers():
    before = find_clusters(
        [clock(0, "09:00", "10:00"), clock(1, "09:30", "11:00")], now=NOW
    )
    # The same clocks after lines above them were removed.
    after = find_clusters(
        [
            replace(clock(0, "09:00", "10:00"), task_line=2, line=3),
            replace(clock(1, "09:30", "11:00"), task_line=5, line=6),
        ],
        now=NOW,
    )

    assert before[0].key == after[0].key
