"""Tests for the outline parser."""

from orgcheck.org.parser import iter_lines, parse, parse_headline

SAMPLE = """\
#+TITLE: Work
* Project :work:
** Write report
   :LOGBOOK:
   CLOCK: [2024-03-04 Mon 09:00]--[2024-03-04 Mon 10:00] =>  1:00
   CLOCK: [2024-03-04 Mon 08:00]--[2024-03-04 Mon 08:30] =>  0:30
   :END:
#+begin_src org
* Not a headline
CLOCK: [2024-03-04 Mon 11:00]--[2024-03-04 Mon 12:00] =>  1:00
#+end_src
** Review
CLOCK: [2024-03-04 Mon 13:00]
"""


def test_iter_lines_offsets_cover_text():
    text = "a\nbb\r\nccc"
    lines = list(iter_lines(text))

    assert [(n, c) for n, _, c, _ in lines] == [(1, "a"), (2, "bb\r"), (3, "ccc")]
    assert "".join(text[start:end] for _, start, _, end in lines) == text


def test_iter_lines_trailing_newline():
    lines = list(iter_lines("a\n"))
    assert lines == [(1, 0, "a", 2)]


def test_parse_headline_with_tags():
    headline = parse_headline("** Write report   :work:urgent:")
    assert headline.level == 2
    assert headline.title == "Write report"
    assert headline.tags == ":work:urgent:"

    assert parse_headline("not a headline") is None
    assert parse_headline("*bold* text") is None


def test_headline_parents():
    doc = parse(SAMPLE)

    titles = [h.title for h in doc.headlines]
    assert titles == ["Project", "Write report", "Review"]
    assert doc.headlines[1].parent == 0
    assert doc.headlines[2].parent == 0


def test_clocks_belong_to_closest_headline():
    doc = parse(SAMPLE)

    assert [(c.task_label, c.line) for c in doc.clocks] == [
        ("Write report", 5),
        ("Write report", 6),
        ("Review", 13),
    ]
    assert doc.clocks[0].task_line == 3


def test_blocks_are_skipped():
    doc = parse(SAMPLE)
    assert all("11:00" not in c.raw_start for c in doc.clocks)
    assert "Not a headline" not in [h.title for h in doc.headlines]


def test_clock_record_fields():
    doc = parse(SAMPLE)
    closed, _, running = doc.clocks

    assert closed.raw_start == "[2024-03-04 Mon 09:00]"
    assert closed.raw_end == "[2024-03-04 Mon 10:00]"
    assert closed.stated_duration == "1:00"
    assert running.raw_end is None
    assert running.stated_duration is None


def test_spans_point_into_text():
    doc = parse(SAMPLE)
    clock = doc.clocks[0]

    line = SAMPLE[clock.line_span[0]:clock.line_span[1]]
    assert line == (
        "   CLOCK: [2024-03-04 Mon 09:00]--[2024-03-04 Mon 10:00] =>  1:00\n"
    )
    body = SAMPLE[clock.body_span[0]:clock.body_span[1]]
    assert body == "[2024-03-04 Mon 09:00]--[2024-03-04 Mon 10:00] =>  1:00"


def test_orphan_clock():
    doc = parse("CLOCK: [2024-03-04 Mon 09:00]--[2024-03-04 Mon 10:00] =>  1:00\n* Task\n")

    assert doc.clocks == []
    assert doc.orphan_clock_lines == [1]


def test_active_timestamps_and_lowercase_keyword():
    doc = parse("* Task\nclock: <2024-03-04 Mon 09:00>--<2024-03-04 Mon 09:10> => 0:10\n")

    assert doc.clocks[0].raw_start == "<2024-03-04 Mon 09:00>"
    assert doc.clocks[0].stated_duration == "0:10"
