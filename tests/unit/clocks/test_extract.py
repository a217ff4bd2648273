"""Tests for clock extraction."""

from datetime import datetime

from orgcheck.clocks.extract import extract, extract_files
from orgcheck.core.result import RunReport
from orgcheck.org.discovery import read_source

TEXT = """\
* Meeting
CLOCK: [2024-03-04 Mon 09:00]--[2024-03-04 Mon 10:00] =>  1:00
CLOCK: [2024-03-04 Mon 25:00]--[2024-03-04 Mon 26:00] =>  1:00
* Email
CLOCK: [2024-03-04 Mon 09:30]
"""


def test_extract_clocks(org_file):
    path = org_file(TEXT)
    report = RunReport()

    extraction = extract([read_source(path)], report)

    assert [(c.id, c.task_label, c.line) for c in extraction.clocks] == [
        (0, "Meeting", 2),
        (1, "Email", 5),
    ]
    meeting, email = extraction.clocks
    assert meeting.start == datetime(2024, 3, 4, 9, 0)
    assert meeting.end == datetime(2024, 3, 4, 10, 0)
    assert meeting.stated_duration == "1:00"
    assert email.is_running
    assert extraction.sources[path].text == TEXT


def test_malformed_record_is_skipped(org_file):
    path = org_file(TEXT)
    report = RunReport()

    extract([read_source(path)], report)

    assert len(report.skipped) == 1
    item = report.skipped[0]
    assert item.kind == "malformed-timestamp"
    assert (item.file, item.line) == (path, 3)


def test_orphan_clock_is_skipped(org_file):
    path = org_file("CLOCK: [2024-03-04 Mon 09:00]--[2024-03-04 Mon 10:00] =>  1:00\n")
    report = RunReport()

    extraction = extract([read_source(path)], report)

    assert extraction.clocks == []
    assert [item.kind for item in report.skipped] == ["orphan-clock"]


def test_ids_run_across_files(org_file):
    first = org_file(TEXT, "a.org")
    second = org_file("* Other\nCLOCK: [2024-03-05 Tue 09:00]--[2024-03-05 Tue 09:30] =>  0:30\n", "b.org")

    extraction = extract_files([first, second], RunReport())

    assert [(c.id, c.file_path) for c in extraction.clocks] == [
        (0, first),
        (1, first),
        (2, second),
    ]
