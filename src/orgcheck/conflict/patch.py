"""Write accepted resolutions back into outline files.

Edits are computed against the text read at extraction time and
applied from the highest offset down, so earlier offsets stay valid.
Only the edited spans change; every other byte is kept as it was.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path

from orgcheck.clocks.model import Clock
from orgcheck.conflict.engine import Resolution
from orgcheck.core.errors import ConcurrentModification, IOFailure
from orgcheck.core.log import logger
from orgcheck.core.result import RunReport
from orgcheck.org.discovery import SourceFile, checksum_bytes


@dataclass(frozen=True)
class Edit:
    """Replace ``text[start:end]`` with ``replacement``."""

    start: int
    end: int
    replacement: str


def _line_ending(text: str, line_span: tuple[int, int]) -> str:
    line = text[line_span[0]:line_span[1]]
    return "\r\n" if line.endswith("\r\n") or line.endswith("\r") else "\n"


def plan_edits(
    original: tuple[Clock, ...],
    resulting: tuple[Clock, ...],
    sources: dict[Path, SourceFile],
) -> dict[Path, list[Edit]]:
    """Compute the edits turning ``original`` clocks into ``resulting``.

    A removed clock loses its whole line. A clock with new bounds gets
    its timestamps and duration rewritten in place. Clocks cut off by a
    split are inserted above the line they came from, latest first,
    with the same indentation.

    Raises:
        ValueError: If a new clock has no original line to sit next to
    """
    before = {clock.id: clock for clock in original}
    after = {clock.id: clock for clock in resulting}

    inserted: dict[int, list[Clock]] = defaultdict(list)
    for clock in resulting:
        if clock.id in before:
            continue
        if clock.origin_id not in before:
            raise ValueError(f"clock {clock.id} has no original line")
        inserted[clock.origin_id].append(clock)

    edits: dict[Path, list[Edit]] = defaultdict(list)
    for clock in original:
        text = sources[clock.file_path].text
        line_start, line_end = clock.line_span
        new = after.get(clock.id)

        pieces = sorted(inserted.get(clock.id, []), key=lambda c: c.start, reverse=True)
        if pieces:
            prefix = text[line_start:clock.body_span[0]]
            newline = _line_ending(text, clock.line_span)
            block = "".join(f"{prefix}{piece.body()}{newline}" for piece in pieces)
        else:
            block = ""

        if new is None:
            edits[clock.file_path].append(Edit(line_start, line_end, block))
            continue

        if block:
            edits[clock.file_path].append(Edit(line_start, line_start, block))
        if (new.start, new.end) != (clock.start, clock.end):
            body_start, body_end = clock.body_span
            edits[clock.file_path].append(Edit(body_start, body_end, new.body()))

    return dict(edits)


def apply_edits(text: str, edits: list[Edit]) -> str:
    """Apply non-overlapping edits to ``text``.

    Raises:
        ValueError: If two edits overlap
    """
    ordered = sorted(edits, key=lambda e: (e.start, e.end))
    for previous, current in zip(ordered, ordered[1:]):
        if current.start < previous.end:
            raise ValueError(
                f"overlapping edits at offsets {previous.start} and {current.start}"
            )

    for edit in reversed(ordered):
        text = text[:edit.start] + edit.replacement + text[edit.end:]
    return text


def patch_file(path: Path, edits: list[Edit], expected_checksum: str) -> str:
    """Apply ``edits`` to the file if it still has the expected content.

    Returns:
        The new file content

    Raises:
        ConcurrentModification: If the file changed since it was read
        IOFailure: If the file cannot be read or written
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise IOFailure(f"cannot read file: {e.strerror or e}", file=path) from e

    if checksum_bytes(data) != expected_checksum:
        raise ConcurrentModification(
            "file changed on disk since it was read, not patched", file=path
        )

    text = apply_edits(data.decode("utf-8"), edits)
    try:
        with open(path, "wb") as f:
            f.write(text.encode("utf-8"))
            f.flush()
    except OSError as e:
        raise IOFailure(f"cannot write file: {e.strerror or e}", file=path) from e
    return text


def apply_resolution(
    resolution: Resolution,
    sources: dict[Path, SourceFile],
    report: RunReport,
) -> list[Path]:
    """Patch every file touched by ``resolution``.

    Files are patched independently: a failure on one is recorded in
    ``report`` and the others are still written.

    Returns:
        The files that were written
    """
    planned = plan_edits(
        resolution.cluster.clocks, resolution.resulting_clocks, sources
    )

    written = []
    for path in sorted(planned, key=str):
        edits = planned[path]
        if not edits:
            continue
        try:
            patch_file(path, edits, sources[path].checksum)
        except (ConcurrentModification, IOFailure) as e:
            logger.warn(
                "File not patched",
                file=str(path),
                kind=e.kind,
                reason=e.reason,
            )
            report.skip(e)
            continue
        logger.info(
            "Patched file",
            file=str(path),
            cluster=resolution.cluster_id,
            edits=len(edits),
        )
        written.append(path)

    if written:
        report.resolutions_applied += 1
    return written
