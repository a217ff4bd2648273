"""Read fix-prompt commands into engine events.

Clocks are referred to by their 1-based index in the presented
cluster. Times are ``HH:MM`` (on the day of the boundary being moved),
``YYYY-MM-DD HH:MM``, or ``-`` to leave a boundary alone.
"""

from __future__ import annotations

import re
from datetime import datetime

from orgcheck.conflict.engine import (
    Abort,
    Choose,
    Drop,
    EngineState,
    Event,
    KeepAll,
    Merge,
    Reset,
    Split,
    Trim,
)
from orgcheck.conflict.index import Interval
from orgcheck.core.errors import InvalidAction

TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})$')
DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
RANGE_RE = re.compile(r'^(\d{1,2}:\d{2})-(\d{1,2}:\d{2})$')

HELP = """\
  k              keep all clocks as they are
  d N            drop clock N
  t N [S] [E]    trim clock N to start S and end E (default: up to its neighbours)
  s N [A-B ...]  split clock N into ranges (default: around the other clocks)
  m N M ...      merge clocks of the same task
  r              undo the changes made to this conflict
  q              stop resolving, leave the remaining conflicts
  ?              show this help
Times are HH:MM, YYYY-MM-DD HH:MM, or - to keep a boundary."""


def _at(day: datetime, text: str) -> datetime:
    match = TIME_RE.match(text)
    if not match:
        raise InvalidAction(f"expected HH:MM, got {text!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidAction(f"no such time of day: {text!r}")
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def take_time(tokens: list[str], day: datetime) -> datetime | None:
    """Consume one time from ``tokens``; None for ``-``.

    Raises:
        InvalidAction: If the tokens do not start with a time
    """
    token = tokens.pop(0)
    if token == "-":
        return None
    if DATE_RE.match(token):
        if not tokens:
            raise InvalidAction(f"missing time after {token}")
        try:
            day = datetime.strptime(token, "%Y-%m-%d")
        except ValueError as e:
            raise InvalidAction(f"no such date: {token!r}") from e
        token = tokens.pop(0)
    return _at(day, token)


def _member(state: EngineState, token: str) -> Interval:
    members = state.members
    if not token.isdigit() or not 1 <= int(token) <= len(members):
        raise InvalidAction(
            f"expected a clock number between 1 and {len(members)}, got {token!r}"
        )
    return members[int(token) - 1]


def _within(interval: Interval, text: str) -> datetime:
    """``HH:MM`` on the start day, or on the end day if that is earlier."""
    at = _at(interval.lo, text)
    if at < interval.lo:
        at = _at(interval.hi, text)
    return at


def _ranges(interval: Interval, tokens: list[str]):
    ranges = []
    for token in tokens:
        match = RANGE_RE.match(token)
        if not match:
            raise InvalidAction(f"expected a range like 09:00-09:30, got {token!r}")
        ranges.append((_within(interval, match.group(1)), _within(interval, match.group(2))))
    return tuple(ranges)


def parse_command(line: str, state: EngineState) -> Event | None:
    """Translate one prompt line into an event.

    Returns:
        The event, or None when the line only asks for help

    Raises:
        InvalidAction: If the line cannot be understood
    """
    tokens = line.split()
    if not tokens:
        raise InvalidAction("empty command, type ? for help")
    command, args = tokens[0].lower(), tokens[1:]

    if command in ("?", "h", "help"):
        return None
    if command in ("q", "quit"):
        return Abort()
    if command in ("r", "reset"):
        return Reset()
    if command in ("k", "keep"):
        return Choose(KeepAll())

    if command in ("d", "drop"):
        if len(args) != 1:
            raise InvalidAction("usage: d N")
        return Choose(Drop(_member(state, args[0]).clock.id))

    if command in ("t", "trim"):
        if not args:
            raise InvalidAction("usage: t N [START] [END]")
        target = _member(state, args.pop(0))
        new_start = take_time(args, target.lo) if args else None
        new_end = take_time(args, target.hi) if args else None
        if args:
            raise InvalidAction(f"unexpected {' '.join(args)!r}")
        return Choose(Trim(target.clock.id, new_start, new_end))

    if command in ("s", "split"):
        if not args:
            raise InvalidAction("usage: s N [A-B ...]")
        target = _member(state, args[0])
        ranges = _ranges(target, args[1:]) if len(args) > 1 else None
        return Choose(Split(target.clock.id, ranges))

    if command in ("m", "merge"):
        if len(args) < 2:
            raise InvalidAction("usage: m N M ...")
        return Choose(Merge(tuple(_member(state, a).clock.id for a in args)))

    raise InvalidAction(f"unknown command {command!r}, type ? for help")


def parse_confirmation(line: str) -> bool | None:
    """``y``/``yes`` or ``n``/``no``; None for anything else."""
    answer = line.strip().lower()
    if answer in ("y", "yes"):
        return True
    if answer in ("n", "no"):
        return False
    return None
