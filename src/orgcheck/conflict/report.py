"""Render conflict clusters as plain text.

Rendering is pure: the same cluster always renders to the same text.
"""

from __future__ import annotations

from orgcheck.clocks.model import format_duration, format_timestamp
from orgcheck.conflict.index import ConflictCluster, Interval


def _when(value) -> str:
    # Timestamp without brackets.
    return format_timestamp(value)[1:-1]


def describe_interval(interval: Interval) -> str:
    """The clock as written, plus where a running clock is cut off."""
    clock = interval.clock
    text = clock.body()
    if clock.is_running:
        text += f"--(running, counted until {_when(interval.hi)})"
    return f"{text}  {clock.task_label!r}  {clock.location()}"


def render_cluster(cluster: ConflictCluster) -> str:
    """Describe one cluster: members with indices, then overlaps.

    Members keep the cluster's order (start time, file, extraction
    order). The 1-based indices are the ones the fix prompt accepts.
    """
    lines = [
        f"CLOCK CONFLICT #{cluster.id}: {len(cluster.intervals)} clocks "
        f"between {_when(cluster.lo)} and {_when(cluster.hi)}"
    ]
    for index, interval in enumerate(cluster.intervals, start=1):
        lines.append(f"  {index}) {describe_interval(interval)}")

    pairs = cluster.pairwise_overlaps()
    if pairs:
        lines.append("  overlaps:")
        for i, j, amount in pairs:
            lines.append(f"    {i + 1} & {j + 1}: {format_duration(amount)}")
    return "\n".join(lines)


def render_clusters(clusters: list[ConflictCluster]) -> str:
    return "\n\n".join(render_cluster(cluster) for cluster in clusters)


def render_clocks(intervals: list[Interval], title: str) -> str:
    """List proposed clocks, used when asking to confirm a resolution."""
    lines = [title]
    for interval in sorted(intervals, key=lambda iv: iv.sort_key):
        lines.append(f"  - {describe_interval(interval)}")
    if len(lines) == 1:
        lines.append("  (no clocks)")
    return "\n".join(lines)
