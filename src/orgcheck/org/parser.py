"""Parse org outline text into headlines and raw clock records."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from orgcheck.core.log import logger

HEADLINE_RE = re.compile(r'^(\*+)\s+(.+?)\s*$')
TAGS_RE = re.compile(r'^(.+?)\s+(:\S+:)$')
BLOCK_START_RE = re.compile(r'^\s*#\+begin_(\S+)', re.IGNORECASE)
BLOCK_END_RE = re.compile(r'^\s*#\+end_(\S+)', re.IGNORECASE)
CLOCK_RE = re.compile(
    r"""
    ^(?P<prefix>\s*clock:\s*)                       # CLOCK:
    (?P<start>[\[<][^\]>]*[\]>])                    # [2022-12-12 Mon 10:45]
    (?:\s*--\s*(?P<end>[\[<][^\]>]*[\]>]))?         # --[... end]
    (?:\s*=>\s*(?P<duration>-?\d+:\d{2}))?          # => 0:10
    """,
    re.IGNORECASE | re.VERBOSE,
)


@dataclass
class Headline:
    """A task headline."""

    line: int
    level: int
    title: str
    tags: str | None = None
    parent: int | None = None


@dataclass
class ClockRecord:
    """A clock line as written, before timestamps are interpreted.

    Spans are ``(start, end)`` offsets into the parsed text.
    ``line_span`` covers the whole line including its terminator;
    ``body_span`` covers the timestamps and the stated duration, which
    is the only part a trim rewrites.
    """

    task_label: str
    task_line: int
    line: int
    raw_start: str
    raw_end: str | None
    stated_duration: str | None
    line_span: tuple[int, int]
    body_span: tuple[int, int]


@dataclass
class OrgDocument:
    """Everything the clock checks need from one file."""

    headlines: list[Headline] = field(default_factory=list)
    clocks: list[ClockRecord] = field(default_factory=list)
    orphan_clock_lines: list[int] = field(default_factory=list)


def iter_lines(text: str) -> Iterator[tuple[int, int, str, int]]:
    """Yield ``(line_no, start, content, end)`` for every line.

    ``content`` excludes the ``\\n``; ``end`` includes it. Only ``\\n``
    separates lines so offsets match the text exactly.
    """
    offset = 0
    for line_no, content in enumerate(text.split("\n"), start=1):
        stop = offset + len(content)
        end = stop + 1 if stop < len(text) else stop
        if content or stop < len(text):
            yield line_no, offset, content, end
        offset = end


def parse_headline(line: str) -> Headline | None:
    match = HEADLINE_RE.match(line)
    if not match:
        return None
    stars, title = match.groups()
    tags = None
    tagged = TAGS_RE.match(title)
    if tagged:
        title, tags = tagged.groups()
    return Headline(line=0, level=len(stars), title=title, tags=tags)


def parse(text: str) -> OrgDocument:
    """Parse outline text.

    Lines inside ``#+begin_X`` ... ``#+end_X`` blocks are ignored.
    A clock belongs to the closest headline above it.
    """
    doc = OrgDocument()
    parents: list[int] = []
    block_kind: str | None = None

    for line_no, start, content, end in iter_lines(text):
        if block_kind is not None:
            match = BLOCK_END_RE.match(content)
            if match and match.group(1).lower() == block_kind:
                block_kind = None
            continue

        match = BLOCK_START_RE.match(content)
        if match:
            block_kind = match.group(1).lower()
            continue

        headline = parse_headline(content)
        if headline is not None:
            headline.line = line_no
            while parents and doc.headlines[parents[-1]].level >= headline.level:
                parents.pop()
            if parents:
                headline.parent = parents[-1]
            parents.append(len(doc.headlines))
            doc.headlines.append(headline)
            continue

        match = CLOCK_RE.match(content)
        if not match:
            continue

        if not parents:
            logger.warn("Clock outside of any headline", line=line_no)
            doc.orphan_clock_lines.append(line_no)
            continue

        task = doc.headlines[parents[-1]]
        previous = doc.clocks[-1] if doc.clocks else None
        if (
            previous is not None
            and previous.task_line == task.line
            and previous.line != line_no - 1
        ):
            logger.warn(
                "Clock is not adjacent to the previous clock of its task",
                line=line_no,
                previous_line=previous.line,
            )

        doc.clocks.append(ClockRecord(
            task_label=task.title,
            task_line=task.line,
            line=line_no,
            raw_start=match.group("start"),
            raw_end=match.group("end"),
            stated_duration=match.group("duration"),
            line_span=(start, end),
            body_span=(start + match.start("start"), start + match.end()),
        ))

    return doc
