# tests/focusfive_test/test_markdown.py
# Pytest for the Markdown codec: header search, sections, action limits, clamping, deterministic output, file I/O

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from focusfive.errors import EncodingFailure, ParseFailure
from focusfive.markdown import (
    format_header,
    goals_path,
    month_number,
    parse_markdown,
    parse_markdown_bytes,
    parse_markdown_with_warnings,
    read_goals_file,
    serialize_markdown,
    write_goals_file,
)
from focusfive.model import ActionStatus, DailyGoals, OutcomeType


SAMPLE = """\
# January 15, 2025 - Day 12

## Work (Goal: Ship v1)
- [x] Write tests
- [ ] Review PR
- [ ] Deploy

## Health (Goal: Run 5k)
- [x] Morning run
- [ ] Stretch
- [ ] Sleep by 10

## Family (Goal: Be present)
- [ ] Call mom
- [x] Dinner together
- [ ] Read to kids
"""


# ---------------------------- parsing ----------------------------

def test_parse_sample_day() -> None:
    g = parse_markdown(SAMPLE)
    assert g.date == date(2025, 1, 15)
    assert g.day_number == 12
    assert g.work.goal == "Ship v1"
    assert [a.text for a in g.work.actions] == ["Write tests", "Review PR", "Deploy"]
    assert [a.completed for a in g.work.actions] == [True, False, False]
    assert g.work.actions[0].status is ActionStatus.DONE
    assert g.health.goal == "Run 5k"
    assert g.family.actions[1].completed
    st = g.completion_stats()
    assert (st.completed, st.total, st.percentage) == (3, 9, 33)


def test_round_trip_is_stable() -> None:
    g = parse_markdown(SAMPLE)
    text = serialize_markdown(g)
    assert text == SAMPLE
    assert parse_markdown(text).markdown_view() == g.markdown_view()


def test_header_may_follow_free_text() -> None:
    text = "some notes\n\n# March 3, 2024\n\n## Work\n- [ ] a\n"
    g = parse_markdown(text)
    assert g.date == date(2024, 3, 3)
    assert g.day_number is None


def test_header_beyond_line_ten_is_not_found() -> None:
    text = "\n".join(["filler"] * 10) + "\n# January 1, 2025\n"
    with pytest.raises(ParseFailure, match="no valid date header"):
        parse_markdown(text)


@pytest.mark.parametrize("text", ["", "   \n\n"])
def test_empty_input_fails(text: str) -> None:
    with pytest.raises(ParseFailure, match="empty input"):
        parse_markdown(text)


def test_invalid_month_reports_line() -> None:
    with pytest.raises(ParseFailure) as ei:
        parse_markdown("# Smarch 5, 2025\n\n## Work\n- [ ] x\n")
    assert "invalid month" in ei.value.message
    assert ei.value.line == 1


def test_leap_day_depends_on_year() -> None:
    assert parse_markdown("# February 29, 2024\n").date == date(2024, 2, 29)
    with pytest.raises(ParseFailure, match="invalid date"):
        parse_markdown("# February 29, 2023\n")


@pytest.mark.parametrize(
    "name,month",
    [("Jan", 1), ("sept", None), ("Sep", 9), ("May", 5), ("dec", 12), ("DECEMBER", 12)],
)
def test_month_names_and_abbreviations(name: str, month) -> None:
    assert month_number(name) == month


def test_day_number_is_optional_and_positive() -> None:
    assert parse_markdown("# Jan 2, 2025 - Day 0\n").day_number is None
    assert parse_markdown("# Jan 2, 2025 - Day 7\n").day_number == 7


def test_missing_sections_get_three_empty_actions() -> None:
    g = parse_markdown("# January 15, 2025\n\n## Work\n- [ ] only one\n")
    assert len(g.work.actions) == 1
    assert len(g.health.actions) == 3
    assert all(a.text == "" for a in g.family.actions)


def test_fewer_than_three_actions_survive_round_trip() -> None:
    g = parse_markdown("# January 15, 2025\n\n## Work\n- [ ] a\n- [x] b\n")
    again = parse_markdown(serialize_markdown(g))
    assert [a.text for a in again.work.actions] == ["a", "b"]
    assert again.markdown_view() == g.markdown_view()


def test_sixth_action_is_discarded_with_warning() -> None:
    lines = ["# January 15, 2025", "", "## Work"] + [f"- [ ] task {i}" for i in range(1, 7)]
    g, warnings = parse_markdown_with_warnings("\n".join(lines) + "\n")
    assert [a.text for a in g.work.actions] == [f"task {i}" for i in range(1, 6)]
    assert len(warnings) == 1
    assert "already has 5 actions" in warnings[0]
    assert "task 6" in warnings[0]


def test_action_text_500_kept_501_clamped() -> None:
    ok = "a" * 500
    long = "b" * 501
    g, warnings = parse_markdown_with_warnings(
        f"# January 15, 2025\n\n## Work\n- [ ] {ok}\n- [ ] {long}\n"
    )
    assert g.work.actions[0].text == ok
    assert g.work.actions[1].text == "b" * 500
    assert len(warnings) == 1 and "truncated" in warnings[0]


def test_unicode_is_counted_in_codepoints() -> None:
    text = "é" * 500
    g = parse_markdown(f"# January 15, 2025\n\n## Health\n- [x] {text}\n")
    assert g.health.actions[0].text == text


def test_uppercase_x_and_free_text_are_tolerated() -> None:
    g = parse_markdown(
        "# January 15, 2025\n\nintro prose\n\n## Work\nSome notes here\n- [X] done\n* not an action\n"
    )
    assert g.work.actions[0].completed
    assert len(g.work.actions) == 1


def test_legacy_objective_lines_link_but_are_not_written() -> None:
    g = parse_markdown(
        "# January 15, 2025\n\n## Work\n- [ ] Draft plan\n  objective: obj-1\n  objectives: obj-2, obj-1\n"
    )
    a = g.work.actions[0]
    assert a.objective_ids == ["obj-1", "obj-2"]
    assert a.objective_id == "obj-1"
    assert "objective" not in serialize_markdown(g)


def test_bytes_must_be_utf8() -> None:
    with pytest.raises(EncodingFailure):
        parse_markdown_bytes(b"# January 15, 2025\n\n## Work\n- [ ] caf\xe9\n")
    g = parse_markdown_bytes("\ufeff# January 15, 2025\n".encode("utf-8"))
    assert g.date == date(2025, 1, 15)


# ---------------------------- serialization ----------------------------

def test_header_format() -> None:
    assert format_header(DailyGoals(date=date(2025, 1, 5), day_number=3)) == "# January 5, 2025 - Day 3"
    assert format_header(DailyGoals(date=date(2025, 12, 31))) == "# December 31, 2025"


def test_serializer_is_deterministic_and_newline_terminated() -> None:
    g = DailyGoals(date=date(2025, 2, 1))
    g.work.set_goal("Focus")
    g.work.actions[0].set_text("line one\nline two")
    out = serialize_markdown(g)
    assert out == serialize_markdown(g)
    assert out.endswith("\n") and not out.endswith("\n\n")
    assert "## Work (Goal: Focus)" in out
    assert "- [ ] line one line two" in out
    assert "- [ ]\n" in out


# ---------------------------- files ----------------------------

def test_goals_file_name_and_round_trip(tmp_path: Path) -> None:
    g = parse_markdown(SAMPLE)
    path = write_goals_file(g, tmp_path)
    assert path == goals_path(tmp_path, date(2025, 1, 15))
    assert path.name == "2025-01-15.md"
    assert read_goals_file(path).markdown_view() == g.markdown_view()


def test_read_error_carries_path_context(tmp_path: Path) -> None:
    p = tmp_path / "2025-01-15.md"
    p.write_text("no header here\n", encoding="utf-8")
    with pytest.raises(ParseFailure) as ei:
        read_goals_file(p)
    assert ei.value.context and "read goals" in ei.value.context[0]
    assert str(p) in str(ei.value)


def test_outcome_lookup_by_name() -> None:
    g = parse_markdown(SAMPLE)
    assert g.outcome("health") is g.health
    assert g.outcome(OutcomeType.FAMILY) is g.family


@pytest.mark.parametrize("goal", ["Ship (v1)", "Fix C:\\temp", "ends with \\", "a \\) b", "(x)(y)"])
def test_goal_with_parens_and_backslashes_round_trips(goal: str) -> None:
    g = DailyGoals(date=date(2025, 1, 15))
    assert g.work.set_goal(goal) == ""
    back, warnings = parse_markdown_with_warnings(serialize_markdown(g))
    assert back.work.goal == goal
    assert warnings == []


def test_goal_close_paren_is_escaped_on_disk() -> None:
    g = DailyGoals(date=date(2025, 1, 15))
    g.health.set_goal("Run (5k)")
    assert "## Health (Goal: Run (5k\\))" in serialize_markdown(g)


def test_unterminated_goal_is_reported() -> None:
    goals, warnings = parse_markdown_with_warnings("# January 15, 2025\n\n## Work (Goal: Ship v1\n- [ ] a\n")
    assert goals.work.goal is None
    assert any("line 3" in w and "unterminated goal" in w for w in warnings)
