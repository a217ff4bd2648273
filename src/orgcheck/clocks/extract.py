"""Turn parsed clock records into Clock entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from orgcheck.clocks.model import Clock, parse_timestamp
from orgcheck.core.errors import MalformedTimestamp, OrphanClock
from orgcheck.core.log import logger
from orgcheck.core.result import RunReport
from orgcheck.org.discovery import SourceFile, read_sources
from orgcheck.org.parser import ClockRecord, parse


@dataclass
class Extraction:
    """Clocks of one scan plus the file contents they point into."""

    clocks: list[Clock] = field(default_factory=list)
    sources: dict[Path, SourceFile] = field(default_factory=dict)


def clock_from_record(record: ClockRecord, clock_id: int, path: Path) -> Clock:
    """Build a Clock from a raw record.

    Raises:
        MalformedTimestamp: If either timestamp cannot be read
    """
    try:
        start, bracket = parse_timestamp(record.raw_start)
        end = None
        if record.raw_end is not None:
            end, _ = parse_timestamp(record.raw_end)
    except MalformedTimestamp as e:
        e.file = path
        e.line = record.line
        raise

    return Clock(
        id=clock_id,
        file_path=path,
        task_label=record.task_label,
        task_line=record.task_line,
        line=record.line,
        start=start,
        end=end,
        stated_duration=record.stated_duration,
        line_span=record.line_span,
        body_span=record.body_span,
        bracket=bracket,
    )


def extract(sources: list[SourceFile], report: RunReport) -> Extraction:
    """Extract clocks from every source, in file then line order.

    Records that cannot be read are skipped and recorded in ``report``;
    they never stop the run.
    """
    extraction = Extraction()
    for source in sources:
        extraction.sources[source.path] = source
        doc = parse(source.text)

        for line in doc.orphan_clock_lines:
            report.skip(OrphanClock(
                "clock is not under any headline", file=source.path, line=line
            ))

        for record in doc.clocks:
            try:
                clock = clock_from_record(
                    record, len(extraction.clocks), source.path
                )
            except MalformedTimestamp as e:
                logger.warn(
                    "Skipping clock with malformed timestamp",
                    file=str(source.path),
                    line=record.line,
                    reason=e.reason,
                )
                report.skip(e)
                continue
            extraction.clocks.append(clock)

    logger.debug(
        "Extracted clocks",
        clocks=len(extraction.clocks),
        files=len(extraction.sources),
    )
    return extraction


def extract_files(paths: list[Path], report: RunReport) -> Extraction:
    """Read ``paths`` and extract their clocks."""
    return extract(read_sources(paths, report), report)
