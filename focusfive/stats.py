# focusfive/stats.py
# Streak walk over daily files, per-day completion stats, date-range history, indicator progress/trend

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .errors import FocusError
from .markdown import goals_path, read_goals_file
from .model import (
    CompletionStats,
    DailyGoals,
    IndicatorDef,
    IndicatorDirection,
    Observation,
)

logger = logging.getLogger(__name__)

MAX_STREAK_DAYS = 365
ATTENTION_BELOW_PERCENT = 50
TREND_WINDOW = 5
TREND_THRESHOLD = 0.05


# ------- per day -------

def _percent(done: int, total: int) -> int:
    return done * 100 // total if total > 0 else 0


def completion_stats(goals: DailyGoals) -> CompletionStats:
    by_outcome: List[Tuple[str, int, int]] = [
        (o.outcome_type.value, o.count_completed(), len(o.actions)) for o in goals.outcomes()
    ]
    completed = sum(d for _, d, _ in by_outcome)
    total = sum(t for _, _, t in by_outcome)

    best: Optional[str] = None
    best_pct = -1
    for name, done, tot in by_outcome:  # strict '>' keeps the earlier outcome on ties
        pct = _percent(done, tot)
        if pct > best_pct:
            best, best_pct = name, pct

    return CompletionStats(
        completed=completed,
        total=total,
        percentage=_percent(completed, total),
        by_outcome=by_outcome,
        streak_days=goals.day_number,
        best_outcome=best,
        needs_attention=[
            name for name, done, tot in by_outcome
            if tot > 0 and _percent(done, tot) < ATTENTION_BELOW_PERCENT
        ],
    )


def has_completed_action(goals: DailyGoals) -> bool:
    return any(a.completed and not a.is_empty for _, _, a in goals.iter_actions())


# ------- across days -------

def calculate_streak(goals_dir: Union[str, Path], today: date, *, max_days: int = MAX_STREAK_DAYS) -> int:
    """
    Consecutive days, ending today, whose file has at least one completed,
    non-empty action. Stops at the first missing, empty-handed or unreadable
    day; never looks back more than `max_days` days.
    """
    streak = 0
    day = today
    for _ in range(max(0, min(max_days, MAX_STREAK_DAYS))):
        path = goals_path(goals_dir, day)
        if not path.exists():
            break
        try:
            goals = read_goals_file(path)
        except FocusError as e:
            logger.info("streak stops at %s: %s", day, e)
            break
        if not has_completed_action(goals):
            break
        streak += 1
        day -= timedelta(days=1)
    return streak


def history_stats(goals_dir: Union[str, Path], start: date, end: date) -> List[Tuple[date, CompletionStats]]:
    """Stats for each readable day in [start, end]; missing or unparseable days are left out."""
    out: List[Tuple[date, CompletionStats]] = []
    day = start
    while day <= end:
        path = goals_path(goals_dir, day)
        if path.exists():
            try:
                out.append((day, completion_stats(read_goals_file(path))))
            except FocusError as e:
                logger.warning("skipping %s in history: %s", day, e)
        day += timedelta(days=1)
    return out


# ------- indicators -------

class Trend(str, Enum):
    UP = "Up"
    DOWN = "Down"
    STABLE = "Stable"

    @property
    def arrow(self) -> str:
        return {Trend.UP: "↗", Trend.DOWN: "↘", Trend.STABLE: "→"}[self]


@dataclass
class IndicatorProgress:
    indicator_id: str
    current: Optional[float] = None
    target: Optional[float] = None
    percent: Optional[int] = None       # 0..100, None without a target or a reading
    trend: Trend = Trend.STABLE
    history: List[float] = field(default_factory=list)


def trend_of(values: Sequence[float], *, window: int = TREND_WINDOW) -> Trend:
    """Compare the mean of the older and newer halves of the last `window` values (5% dead band)."""
    recent = list(values)[-window:]
    if len(recent) < 2:
        return Trend.STABLE
    mid = len(recent) // 2
    first = sum(recent[:mid]) / mid
    second = sum(recent[mid:]) / (len(recent) - mid)
    diff = second - first
    threshold = abs(first) * TREND_THRESHOLD
    if diff > threshold:
        return Trend.UP
    if diff < -threshold:
        return Trend.DOWN
    return Trend.STABLE


def progress_percent(current: float, target: float, direction: IndicatorDirection) -> Optional[int]:
    if target == 0:
        return None
    if direction is IndicatorDirection.LOWER_IS_BETTER:
        ratio = 1.0 if current <= 0 else target / current
    elif direction is IndicatorDirection.WITHIN_RANGE:
        ratio = 1.0 - abs(current - target) / abs(target)
    else:
        ratio = current / target
    return int(round(max(0.0, min(1.0, ratio)) * 100))


def indicator_progress(indicator: IndicatorDef, observations: Sequence[Observation]) -> IndicatorProgress:
    """Latest value, percent of target and trend from this indicator's observations (by date)."""
    mine = sorted(
        (o for o in observations if o.indicator_id == indicator.id),
        key=lambda o: (o.when, o.created),
    )
    history = [o.value for o in mine]
    current = history[-1] if history else None
    percent = None
    if current is not None and indicator.target is not None:
        percent = progress_percent(current, indicator.target, indicator.direction)
    return IndicatorProgress(
        indicator_id=indicator.id,
        current=current,
        target=indicator.target,
        percent=percent,
        trend=trend_of(history),
        history=history,
    )


__all__ = [
    "MAX_STREAK_DAYS",
    "completion_stats",
    "has_completed_action",
    "calculate_streak",
    "history_stats",
    "Trend",
    "IndicatorProgress",
    "trend_of",
    "progress_percent",
    "indicator_progress",
]
