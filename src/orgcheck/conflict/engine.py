"""Resolution engine for clock conflicts.

The engine is a finite-state machine with an explicit state value and
a pure transition function:

    IDLE --Advance--> PRESENTING --Choose--> APPLYING --Apply--> CONFIRMING
      ^                   ^  |                   |                  |
      |                   |  Reset               | (invalid or      |
      |                   +--<-------------------+  still overlaps) |
      +-------------------------- Confirm(accepted) ----------------+

Confirm(rejected) returns to PRESENTING with the edits undone. Abort
is accepted in every phase. Advance on an empty queue ends in
FINISHED. KeepAll goes straight from APPLYING back to IDLE.

Recoverable errors (InvalidAction, UnsatisfiableResolution) are stored
on the state, not raised, so a caller can show them and prompt again.
An edit is checked against every clock of the scan, not only the
cluster: removing the clock that ends a running clock of the same task
lets the running clock reach further once the file is read again.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from orgcheck.clocks.model import Clock
from orgcheck.conflict.index import (
    ConflictCluster,
    Interval,
    RunningClockEnd,
    resolve_intervals,
    sweep,
)
from orgcheck.core.errors import (
    InvalidAction,
    OrgCheckError,
    UnsatisfiableResolution,
)

# ============================================================
# ACTIONS
# ============================================================


@dataclass(frozen=True)
class KeepAll:
    """Leave the cluster as it is."""


@dataclass(frozen=True)
class Drop:
    """Remove a clock entirely."""

    clock_id: int


@dataclass(frozen=True)
class Trim:
    """Move one or both boundaries of a clock inward.

    With neither bound given the engine picks them: the end moves to
    the first later start, or the start moves to the last earlier end.
    """

    clock_id: int
    new_start: datetime | None = None
    new_end: datetime | None = None


@dataclass(frozen=True)
class Split:
    """Cut a clock into non-overlapping pieces.

    Without ``new_ranges`` the overlapping clocks are cut out of it.
    """

    clock_id: int
    new_ranges: tuple[tuple[datetime, datetime], ...] | None = None


@dataclass(frozen=True)
class Merge:
    """Join clocks of the same task into one covering all of them."""

    clock_ids: tuple[int, ...]


Action = KeepAll | Drop | Trim | Split | Merge


# ============================================================
# EVENTS
# ============================================================


@dataclass(frozen=True)
class Load:
    """Replace the queue of clusters waiting to be presented.

    ``intervals`` holds every clock of the scan the clusters came from;
    edits are checked against them with the same ``now`` and ``policy``.
    """

    clusters: tuple[ConflictCluster, ...]
    first_free_id: int = 0
    intervals: tuple[Interval, ...] = ()
    now: datetime | None = None
    policy: RunningClockEnd = "next_clock"


@dataclass(frozen=True)
class Advance:
    """Present the next cluster."""


@dataclass(frozen=True)
class Choose:
    action: Action


@dataclass(frozen=True)
class Apply:
    """Evaluate the chosen action."""


@dataclass(frozen=True)
class Confirm:
    accepted: bool


@dataclass(frozen=True)
class Reset:
    """Undo the edits made to the presented cluster."""


@dataclass(frozen=True)
class Abort:
    pass


Event = Load | Advance | Choose | Apply | Confirm | Reset | Abort


# ============================================================
# STATE
# ============================================================


class Phase(str, Enum):
    IDLE = "idle"
    PRESENTING = "presenting"
    APPLYING = "applying"
    CONFIRMING = "confirming"
    FINISHED = "finished"
    ABORTED = "aborted"


@dataclass(frozen=True)
class Resolution:
    """The accepted outcome for one cluster."""

    cluster: ConflictCluster
    actions: tuple[Action, ...]
    resulting: tuple[Interval, ...]

    @property
    def cluster_id(self) -> int:
        return self.cluster.id

    @property
    def chosen_action(self) -> Action:
        return self.actions[-1]

    @property
    def resulting_clocks(self) -> tuple[Clock, ...]:
        return tuple(interval.clock for interval in self.resulting)

    @property
    def is_noop(self) -> bool:
        return all(isinstance(action, KeepAll) for action in self.actions)


@dataclass(frozen=True)
class EngineState:
    phase: Phase = Phase.IDLE
    queue: tuple[ConflictCluster, ...] = ()
    cluster: ConflictCluster | None = None
    working: tuple[Interval, ...] = ()
    actions: tuple[Action, ...] = ()
    pending: Action | None = None
    resolution: Resolution | None = None
    error: OrgCheckError | None = None
    next_id: int = 0
    context: tuple[Interval, ...] = ()
    now: datetime | None = None
    policy: RunningClockEnd = "next_clock"

    @property
    def members(self) -> tuple[Interval, ...]:
        """Working clocks in display order; prompt indices refer here."""
        return tuple(sorted(self.working, key=lambda iv: iv.sort_key))

    @property
    def view(self) -> ConflictCluster | None:
        """The presented cluster with the edits made so far."""
        if self.cluster is None:
            return None
        return ConflictCluster(id=self.cluster.id, intervals=self.members)

    @property
    def done(self) -> bool:
        return self.phase in (Phase.FINISHED, Phase.ABORTED)


def start(
    clusters: list[ConflictCluster],
    first_free_id: int = 0,
    intervals: list[Interval] = (),
    now: datetime | None = None,
    policy: RunningClockEnd = "next_clock",
) -> EngineState:
    return transition(
        EngineState(),
        Load(tuple(clusters), first_free_id, tuple(intervals), now, policy),
    )


def transition(state: EngineState, event: Event) -> EngineState:
    """Return the state after ``event``.

    Raises:
        ValueError: If ``event`` is not accepted in the current phase
    """
    if isinstance(event, Abort):
        return replace(state, phase=Phase.ABORTED, pending=None)

    phase = state.phase

    if phase is Phase.IDLE and isinstance(event, Load):
        return replace(
            state,
            queue=tuple(event.clusters),
            next_id=max(state.next_id, event.first_free_id, _first_free(event.clusters)),
            resolution=None,
            context=event.intervals,
            now=event.now,
            policy=event.policy,
        )

    if phase is Phase.IDLE and isinstance(event, Advance):
        if not state.queue:
            return replace(state, phase=Phase.FINISHED, cluster=None, resolution=None)
        cluster = state.queue[0]
        return replace(
            state,
            phase=Phase.PRESENTING,
            queue=state.queue[1:],
            cluster=cluster,
            working=cluster.intervals,
            actions=(),
            pending=None,
            resolution=None,
            error=None,
        )

    if phase is Phase.PRESENTING and isinstance(event, Choose):
        return replace(state, phase=Phase.APPLYING, pending=event.action, error=None)

    if phase is Phase.PRESENTING and isinstance(event, Reset):
        return replace(state, working=state.cluster.intervals, actions=(), error=None)

    if phase is Phase.APPLYING and isinstance(event, Apply):
        return _apply(state)

    if phase is Phase.CONFIRMING and isinstance(event, Confirm):
        if event.accepted:
            return replace(state, phase=Phase.IDLE, cluster=None, working=(), actions=())
        return replace(
            state,
            phase=Phase.PRESENTING,
            working=state.cluster.intervals,
            actions=(),
            resolution=None,
        )

    raise ValueError(
        f"{type(event).__name__} is not accepted while {phase.value}"
    )


def _first_free(clusters) -> int:
    ids = [clock.id for cluster in clusters for clock in cluster.clocks]
    return max(ids) + 1 if ids else 0


def _overlaps_after(state: EngineState, working) -> list[list[Interval]]:
    """Overlapping groups the edited clocks leave behind.

    Without scan context only the working clocks are swept. Otherwise
    the running-clock ends are worked out again over the whole scan with
    the edits in place; a group counts when it holds an edited clock or
    a running clock whose end moved.
    """
    if not state.context:
        return [group for group in sweep(list(working)) if len(group) > 1]

    replaced = {clock.id for clock in state.cluster.clocks}
    clocks = [iv.clock for iv in state.context if iv.clock.id not in replaced]
    clocks.extend(iv.clock for iv in working)
    intervals = resolve_intervals(clocks, state.now, state.policy)

    before = {iv.clock.id: iv.hi for iv in state.context}
    touched = {iv.clock.id for iv in working}
    touched.update(
        iv.clock.id for iv in intervals
        if iv.clock.is_running and before.get(iv.clock.id) != iv.hi
    )
    return [
        group for group in sweep(intervals)
        if len(group) > 1 and any(iv.clock.id in touched for iv in group)
    ]


def _apply(state: EngineState) -> EngineState:
    action = state.pending
    cluster = state.cluster

    if isinstance(action, KeepAll):
        resolution = Resolution(cluster, (action,), cluster.intervals)
        return replace(
            state,
            phase=Phase.IDLE,
            cluster=None,
            working=(),
            actions=(),
            pending=None,
            resolution=resolution,
        )

    try:
        working, next_id = apply_action(state.working, action, state.next_id)
    except InvalidAction as e:
        return replace(state, phase=Phase.PRESENTING, pending=None, error=e)

    actions = state.actions + (action,)
    residual = _overlaps_after(state, working)
    if residual:
        names = ", ".join(
            " & ".join(repr(iv.clock.task_label) for iv in group)
            for group in residual
        )
        error = UnsatisfiableResolution(f"clocks still overlap: {names}")
        return replace(
            state,
            phase=Phase.PRESENTING,
            working=working,
            actions=actions,
            pending=None,
            next_id=next_id,
            error=error,
        )

    return replace(
        state,
        phase=Phase.CONFIRMING,
        working=working,
        actions=actions,
        pending=None,
        next_id=next_id,
        resolution=Resolution(cluster, actions, tuple(sorted(working, key=lambda iv: iv.sort_key))),
    )


# ============================================================
# ACTION SEMANTICS
# ============================================================


def apply_action(
    working: tuple[Interval, ...],
    action: Action,
    next_id: int,
) -> tuple[tuple[Interval, ...], int]:
    """Apply ``action`` to the working clocks of a cluster.

    Returns:
        The new working clocks and the next unused clock id

    Raises:
        InvalidAction: If the action does not fit these clocks
    """
    if isinstance(action, Drop):
        target = _find(working, action.clock_id)
        return tuple(iv for iv in working if iv is not target), next_id

    if isinstance(action, Trim):
        target = _find(working, action.clock_id)
        return _replace_one(working, target, [_trim(working, target, action)]), next_id

    if isinstance(action, Split):
        target = _find(working, action.clock_id)
        pieces, next_id = _split(working, target, action, next_id)
        return _replace_one(working, target, pieces), next_id

    if isinstance(action, Merge):
        return _merge(working, action), next_id

    raise InvalidAction(f"unknown action {action!r}")


def _find(working, clock_id: int) -> Interval:
    for interval in working:
        if interval.clock.id == clock_id:
            return interval
    raise InvalidAction(f"clock {clock_id} is not part of this conflict")


def _replace_one(working, target, replacements) -> tuple[Interval, ...]:
    result = []
    for interval in working:
        if interval is target:
            result.extend(replacements)
        else:
            result.append(interval)
    return tuple(result)


def _others_overlapping(working, target) -> list[Interval]:
    return [
        iv for iv in working
        if iv is not target and not iv.is_empty and iv.overlaps(target)
    ]


def _trim(working, target: Interval, action: Trim) -> Interval:
    lo, hi = action.new_start, action.new_end
    if lo is None and hi is None:
        lo, hi = _auto_trim(working, target)
    lo = target.lo if lo is None else lo
    hi = target.hi if hi is None else hi

    if lo < target.lo or hi > target.hi:
        raise InvalidAction(
            "a trim can only move boundaries inward "
            f"(clock spans {target.lo:%Y-%m-%d %H:%M} to {target.hi:%Y-%m-%d %H:%M})"
        )
    if lo >= hi:
        raise InvalidAction("trim would leave an empty clock, drop it instead")

    clock = target.clock
    if clock.is_running and action.new_end is None and hi == target.hi:
        new_clock = replace(clock, start=lo)
    else:
        new_clock = replace(clock, start=lo, end=hi)
    return Interval(clock=new_clock, lo=lo, hi=hi)


def _auto_trim(working, target: Interval) -> tuple[datetime, datetime]:
    others = _others_overlapping(working, target)
    if not others:
        raise InvalidAction(f"{target.clock.task_label!r} overlaps nothing")

    earlier = [iv for iv in others if iv.lo <= target.lo]
    later = [iv for iv in others if iv.lo > target.lo]
    lo = max(iv.hi for iv in earlier) if earlier else target.lo
    hi = min(iv.lo for iv in later) if later else target.hi
    if lo >= hi:
        raise InvalidAction(
            f"no trim of {target.clock.task_label!r} removes the overlap, "
            "split or drop it instead"
        )
    return lo, hi


def _split(working, target: Interval, action: Split, next_id: int):
    clock = target.clock
    if clock.is_running:
        raise InvalidAction("a running clock cannot be split, trim its end first")

    if action.new_ranges is None:
        ranges = _uncovered(target, _others_overlapping(working, target))
    else:
        ranges = sorted(action.new_ranges)
        for lo, hi in ranges:
            if lo >= hi or lo < target.lo or hi > target.hi:
                raise InvalidAction("split ranges must lie inside the clock")
        for (_, hi), (lo, _) in zip(ranges, ranges[1:]):
            if lo < hi:
                raise InvalidAction("split ranges must not overlap")

    if len(ranges) < 2:
        raise InvalidAction(
            f"{clock.task_label!r} has nothing to split around, trim it instead"
        )

    pieces = []
    for n, (lo, hi) in enumerate(ranges):
        if n == 0:
            piece = replace(clock, start=lo, end=hi)
        else:
            piece = replace(
                clock,
                id=next_id,
                start=lo,
                end=hi,
                stated_duration=None,
                line_span=None,
                body_span=None,
                origin_id=clock.origin_id if clock.origin_id is not None else clock.id,
            )
            next_id += 1
        pieces.append(Interval(clock=piece, lo=lo, hi=hi))
    return pieces, next_id


def _uncovered(target: Interval, others: list[Interval]) -> list[tuple[datetime, datetime]]:
    """Parts of ``target`` not covered by any of ``others``."""
    ranges = []
    cursor = target.lo
    for iv in sorted(others, key=lambda iv: iv.lo):
        if iv.lo > cursor:
            ranges.append((cursor, min(iv.lo, target.hi)))
        cursor = max(cursor, iv.hi)
        if cursor >= target.hi:
            break
    if cursor < target.hi:
        ranges.append((cursor, target.hi))
    return ranges


def _merge(working, action: Merge) -> tuple[Interval, ...]:
    ids = list(dict.fromkeys(action.clock_ids))
    if len(ids) < 2:
        raise InvalidAction("merge needs at least two clocks")
    targets = [_find(working, clock_id) for clock_id in ids]

    scopes = {iv.clock.scope for iv in targets}
    if len(scopes) > 1:
        raise InvalidAction("only clocks of the same task in the same file can be merged")

    keep = min(targets, key=lambda iv: iv.clock.id)
    lo = min(iv.lo for iv in targets)
    hi = max(iv.hi for iv in targets)
    running = any(iv.clock.is_running for iv in targets)
    merged_clock = replace(keep.clock, start=lo, end=None if running else hi)
    merged = Interval(clock=merged_clock, lo=lo, hi=hi)

    dropped = {id(iv) for iv in targets if iv is not keep}
    return tuple(
        merged if iv is keep else iv
        for iv in working
        if id(iv) not in dropped
    )
