# focusfive/markdown.py
# Markdown codec for a day's goals: header search, outcome sections, 1-5 checkbox actions, deterministic serializer

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .atomic import atomic_write_text, decode_utf8, read_text
from .errors import FocusError, ParseFailure
from .model import (
    MAX_ACTION_LENGTH,
    MAX_ACTIONS,
    Action,
    DailyGoals,
    Outcome,
    OutcomeType,
)
from .utils import clamp_text
from . import metrics

logger = logging.getLogger(__name__)

HEADER_SEARCH_LINES = 10

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_MONTHS: Dict[str, int] = {}
for _i, _name in enumerate(MONTH_NAMES, start=1):
    _MONTHS[_name.lower()] = _i
    if _name != "May":
        _MONTHS[_name[:3].lower()] = _i

# Bounded alternatives only; all quantifiers apply to disjoint classes
_HEADER_RE = re.compile(r"^#\s*(\w+)\s+(\d{1,2}),\s*(\d{4})")
_DAY_RE = re.compile(r"Day\s+(\d+)")
_GOAL_RE = re.compile(r"\(Goal:\s*((?:\\.|[^)\\])+)\)")
_GOAL_ESCAPE_RE = re.compile(r"\\([\\)])")
_ACTION_RE = re.compile(r"^- \[([ xX])\](.*)$")
_OBJECTIVE_RE = re.compile(r"^(?:objectives?):\s*(.*)$", re.IGNORECASE)


def month_number(name: str) -> Optional[int]:
    return _MONTHS.get((name or "").strip().lower())


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _find_header(lines: List[str]) -> Tuple[int, date, Optional[int]]:
    """Return (line index, date, day number) of the first valid header in the first 10 lines."""
    failure: Optional[ParseFailure] = None
    for idx, raw in enumerate(lines[:HEADER_SEARCH_LINES]):
        line = raw.strip()
        m = _HEADER_RE.match(line)
        if not m:
            continue
        month = month_number(m.group(1))
        if month is None:
            failure = failure or ParseFailure(f"invalid month name: {m.group(1)!r}", line=idx + 1)
            continue
        try:
            day = date(int(m.group(3)), month, int(m.group(2)))
        except ValueError as e:
            failure = failure or ParseFailure(
                f"invalid date: {m.group(1)} {m.group(2)}, {m.group(3)} ({e})", line=idx + 1
            )
            continue
        day_number = None
        dm = _DAY_RE.search(line)
        if dm and int(dm.group(1)) > 0:
            day_number = int(dm.group(1))
        return idx, day, day_number
    if failure is not None:
        raise failure
    raise ParseFailure(f"no valid date header found in first {HEADER_SEARCH_LINES} lines")


def _section_type(line: str) -> Optional[OutcomeType]:
    if not line.startswith("##"):
        return None
    rest = line[2:].strip().lower()
    for t in OutcomeType:
        if rest.startswith(t.key):
            return t
    return None


def parse_markdown_with_warnings(text: str) -> Tuple[DailyGoals, List[str]]:
    """
    Parse a day's Markdown. Returns (goals, warnings).

    Raises ParseFailure for empty input, a missing header, an unknown month or
    an impossible date. Surplus action lines and over-long text are warnings.
    """
    if not text or not text.strip():
        metrics.record_parse("markdown", False)
        raise ParseFailure("empty input")

    lines = text.splitlines()
    try:
        header_idx, day, day_number = _find_header(lines)
    except ParseFailure:
        metrics.record_parse("markdown", False)
        raise

    goals = DailyGoals(date=day, day_number=day_number)
    warnings: List[str] = []

    current: Optional[Outcome] = None
    action_index = 0
    last_action: Optional[Action] = None
    filled: Dict[OutcomeType, int] = {}

    for lineno, raw in enumerate(lines[header_idx + 1:], start=header_idx + 2):
        line = raw.strip()
        if not line:
            continue

        section = _section_type(line)
        if section is not None:
            current = goals.outcome(section)
            action_index = 0
            last_action = None
            filled.setdefault(section, 0)
            gm = _GOAL_RE.search(line)
            if gm:
                w = current.set_goal(_GOAL_ESCAPE_RE.sub(r"\1", gm.group(1).strip()))
                if w:
                    warnings.append(f"line {lineno}: {w}")
            elif "(Goal:" in line:
                msg = f"line {lineno}: unterminated goal in {line!r}"
                logger.warning(msg)
                warnings.append(msg)
            continue

        if current is None:
            continue

        am = _ACTION_RE.match(line)
        if am:
            value, w = clamp_text(am.group(2).strip(), MAX_ACTION_LENGTH, what="action text")
            if w:
                warnings.append(f"line {lineno}: {w}")
            action = Action.from_markdown(value, am.group(1) in ("x", "X"))
            if action_index < len(current.actions):
                current.actions[action_index] = action
            elif len(current.actions) < MAX_ACTIONS:
                current.actions.append(action)
            else:
                msg = (f"line {lineno}: {current.outcome_type.value} already has "
                       f"{MAX_ACTIONS} actions, discarding {value!r}")
                logger.warning(msg)
                warnings.append(msg)
                last_action = None
                action_index += 1
                continue
            action_index += 1
            filled[current.outcome_type] = action_index
            last_action = action
            continue

        om = _OBJECTIVE_RE.match(line)
        if om and last_action is not None and raw[:1].isspace():
            for oid in om.group(1).split(","):
                last_action.link_objective(oid.strip())
            continue
        # anything else is free text and ignored

    # a section that listed actions keeps exactly those; untouched sections keep their defaults
    for t, n in filled.items():
        if n:
            o = goals.outcome(t)
            del o.actions[min(n, MAX_ACTIONS):]

    metrics.record_parse("markdown", True, len(warnings))
    return goals, warnings


def parse_markdown(text: str) -> DailyGoals:
    goals, _ = parse_markdown_with_warnings(text)
    return goals


def parse_markdown_bytes(data: bytes, *, path: Optional[Union[str, Path]] = None) -> DailyGoals:
    return parse_markdown(decode_utf8(data, path=path))


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def _one_line(s: str) -> str:
    return " ".join(s.splitlines()).strip()


def escape_goal(s: str) -> str:
    return _one_line(s).replace("\\", "\\\\").replace(")", "\\)")


def format_header(goals: DailyGoals) -> str:
    d = goals.date
    header = f"# {MONTH_NAMES[d.month - 1]} {d.day}, {d.year}"
    if goals.day_number:
        header += f" - Day {goals.day_number}"
    return header


def serialize_markdown(goals: DailyGoals) -> str:
    out: List[str] = [format_header(goals), ""]
    for i, outcome in enumerate(goals.outcomes()):
        if i:
            out.append("")
        title = f"## {outcome.outcome_type.value}"
        if outcome.goal:
            title += f" (Goal: {escape_goal(outcome.goal)})"
        out.append(title)
        for action in outcome.actions:
            mark = "x" if action.completed else " "
            out.append(f"- [{mark}] {_one_line(action.text)}".rstrip())
    return "\n".join(out) + "\n"


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

def goals_path(goals_dir: Union[str, Path], day: date) -> Path:
    return Path(goals_dir) / f"{day.isoformat()}.md"


def read_goals_file(path: Union[str, Path]) -> DailyGoals:
    try:
        return parse_markdown(read_text(path))
    except FocusError as e:
        raise e.with_context("read goals", path)


def write_goals_file(goals: DailyGoals, goals_dir: Union[str, Path]) -> Path:
    path = goals_path(goals_dir, goals.date)
    try:
        return atomic_write_text(path, serialize_markdown(goals))
    except FocusError as e:
        raise e.with_context("write goals", path)


__all__ = [
    "MONTH_NAMES",
    "month_number",
    "parse_markdown",
    "parse_markdown_with_warnings",
    "parse_markdown_bytes",
    "serialize_markdown",
    "format_header",
    "escape_goal",
    "goals_path",
    "read_goals_file",
    "write_goals_file",
]
