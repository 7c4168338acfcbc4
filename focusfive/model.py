# focusfive/model.py
# Core dataclasses and enums (Action, Outcome, DailyGoals, vision, templates, objectives, indicators, observations, day-meta, reviews)

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .errors import InvariantViolation, NotFound
from .utils import clamp_text, new_id, today, utcnow

logger = logging.getLogger(__name__)

MAX_ACTION_LENGTH = 500
MAX_GOAL_LENGTH = 100
MAX_VISION_LENGTH = 1000
MAX_REFLECTION_LENGTH = 500

MIN_ACTIONS = 1
MAX_ACTIONS = 5
DEFAULT_ACTIONS = 3
MAX_TEMPLATE_ACTIONS = 5

META_VERSION = 1
DOCUMENT_VERSION = 1


# ---------------------------------------------------------------------------
# Enums (values are the on-disk names)
# ---------------------------------------------------------------------------

class OutcomeType(str, Enum):
    WORK = "Work"
    HEALTH = "Health"
    FAMILY = "Family"

    @classmethod
    def parse(cls, x: Union[str, "OutcomeType"]) -> "OutcomeType":
        if isinstance(x, OutcomeType):
            return x
        s = str(x or "").strip().lower()
        for t in cls:
            if t.value.lower() == s:
                return t
        raise InvariantViolation(f"unknown outcome: {x!r}")

    @property
    def key(self) -> str:
        return self.value.lower()


OUTCOME_ORDER: Tuple[OutcomeType, ...] = (OutcomeType.WORK, OutcomeType.HEALTH, OutcomeType.FAMILY)


class ActionStatus(str, Enum):
    PLANNED = "Planned"
    IN_PROGRESS = "InProgress"
    DONE = "Done"
    SKIPPED = "Skipped"
    BLOCKED = "Blocked"

    def next(self) -> "ActionStatus":
        return _STATUS_CYCLE[self]


_STATUS_CYCLE: Dict[ActionStatus, ActionStatus] = {
    ActionStatus.PLANNED: ActionStatus.IN_PROGRESS,
    ActionStatus.IN_PROGRESS: ActionStatus.DONE,
    ActionStatus.DONE: ActionStatus.SKIPPED,
    ActionStatus.SKIPPED: ActionStatus.BLOCKED,
    ActionStatus.BLOCKED: ActionStatus.PLANNED,
}


class ActionOrigin(str, Enum):
    MANUAL = "Manual"
    TEMPLATE = "Template"
    CARRY_OVER = "CarryOver"


class ObjectiveStatus(str, Enum):
    ACTIVE = "Active"
    PAUSED = "Paused"
    COMPLETED = "Completed"
    DROPPED = "Dropped"


class IndicatorKind(str, Enum):
    LEADING = "Leading"
    LAGGING = "Lagging"


class IndicatorDirection(str, Enum):
    HIGHER_IS_BETTER = "HigherIsBetter"
    LOWER_IS_BETTER = "LowerIsBetter"
    WITHIN_RANGE = "WithinRange"


class ObservationSource(str, Enum):
    MANUAL = "Manual"
    AUTOMATED = "Automated"
    IMPORT = "Import"


class ReviewPeriod(str, Enum):
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"


class RitualPhase(str, Enum):
    MORNING = "Morning"
    EVENING = "Evening"
    NEUTRAL = "Neutral"

    @classmethod
    def from_hour(cls, hour: int) -> "RitualPhase":
        """Morning for 05-11, Evening for 17-22, Neutral otherwise."""
        if not 0 <= int(hour) <= 23:
            raise InvariantViolation(f"hour out of range: {hour}")
        if 5 <= hour <= 11:
            return cls.MORNING
        if 17 <= hour <= 22:
            return cls.EVENING
        return cls.NEUTRAL

    def greeting(self) -> str:
        return {
            RitualPhase.MORNING: "Good morning! Set today's intentions.",
            RitualPhase.EVENING: "Good evening! Time to reflect on today.",
            RitualPhase.NEUTRAL: "Focus on what matters.",
        }[self]

    def wants_yesterday_context(self) -> bool:
        return self is RitualPhase.MORNING

    def wants_completion_stats(self) -> bool:
        return self is RitualPhase.EVENING


# ---------------------------------------------------------------------------
# Daily goals
# ---------------------------------------------------------------------------

@dataclass
class Action:
    id: str = field(default_factory=new_id)
    text: str = ""
    status: ActionStatus = ActionStatus.PLANNED
    completed: bool = False
    origin: ActionOrigin = ActionOrigin.MANUAL
    objective_id: Optional[str] = None          # legacy scalar; mirrors objective_ids[0]
    objective_ids: List[str] = field(default_factory=list)
    created: datetime = field(default_factory=utcnow)
    modified: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.status = ActionStatus(self.status)
        self.origin = ActionOrigin(self.origin)
        self.text, _ = clamp_text(self.text, MAX_ACTION_LENGTH, what="action text")
        # a completed flag without a matching status means Done
        if self.completed and self.status is not ActionStatus.DONE:
            self.status = ActionStatus.DONE
        self._derive_completion()
        self._merge_legacy_objective()

    # -------- constructors --------

    @classmethod
    def new(cls, text: str = "", origin: ActionOrigin = ActionOrigin.MANUAL) -> "Action":
        return cls(text=text, origin=origin)

    @classmethod
    def empty(cls) -> "Action":
        """A blank planned action, used to pre-fill new outcomes."""
        return cls()

    @classmethod
    def from_markdown(cls, text: str, completed: bool) -> "Action":
        return cls(text=text, completed=completed,
                   status=ActionStatus.DONE if completed else ActionStatus.PLANNED)

    # -------- mutators --------

    def touch(self) -> None:
        self.modified = utcnow()

    def set_text(self, text: str) -> str:
        """Set text (clamped to 500 codepoints). Returns a warning, "" if none."""
        self.text, warning = clamp_text(text, MAX_ACTION_LENGTH, what="action text")
        self.touch()
        return warning

    def set_status(self, status: Union[ActionStatus, str], *, touch: bool = True) -> None:
        self.status = ActionStatus(status)
        self._derive_completion()
        if touch:
            self.touch()

    def cycle_status(self) -> ActionStatus:
        self.set_status(self.status.next())
        return self.status

    def set_completed(self, flag: bool) -> None:
        self.set_status(ActionStatus.DONE if flag else ActionStatus.PLANNED)

    def toggle_completed(self) -> bool:
        self.set_completed(not self.completed)
        return self.completed

    def link_objective(self, objective_id: str, *, touch: bool = True) -> bool:
        if not objective_id or objective_id in self.objective_ids:
            return False
        self.objective_ids.append(objective_id)
        self.objective_id = self.objective_ids[0]
        if touch:
            self.touch()
        return True

    def unlink_objective(self, objective_id: str) -> bool:
        if objective_id not in self.objective_ids:
            return False
        self.objective_ids.remove(objective_id)
        self.objective_id = self.objective_ids[0] if self.objective_ids else None
        self.touch()
        return True

    def all_objective_ids(self) -> List[str]:
        return list(self.objective_ids)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    # -------- internals --------

    def _derive_completion(self) -> None:
        self.completed = self.status is ActionStatus.DONE
        if self.completed:
            if self.completed_at is None:
                self.completed_at = utcnow()
        else:
            self.completed_at = None

    def _merge_legacy_objective(self) -> None:
        ids: List[str] = []
        for oid in ([self.objective_id] if self.objective_id else []) + list(self.objective_ids):
            if oid and oid not in ids:
                ids.append(oid)
        self.objective_ids = ids
        self.objective_id = ids[0] if ids else None


def _default_actions() -> List[Action]:
    return [Action.empty() for _ in range(DEFAULT_ACTIONS)]


@dataclass
class Outcome:
    outcome_type: OutcomeType
    goal: Optional[str] = None
    actions: List[Action] = field(default_factory=_default_actions)
    reflection: Optional[str] = None

    def __post_init__(self) -> None:
        self.outcome_type = OutcomeType.parse(self.outcome_type)
        if not MIN_ACTIONS <= len(self.actions) <= MAX_ACTIONS:
            raise InvariantViolation(
                f"{self.outcome_type.value} must have {MIN_ACTIONS}-{MAX_ACTIONS} actions, got {len(self.actions)}"
            )
        if self.goal is not None:
            self.goal = clamp_text(self.goal, MAX_GOAL_LENGTH, what="goal")[0]
        if self.reflection is not None:
            self.reflection = clamp_text(self.reflection, MAX_REFLECTION_LENGTH, what="reflection")[0]

    def add_action(self, text: str = "") -> Action:
        if len(self.actions) >= MAX_ACTIONS:
            raise InvariantViolation(f"{self.outcome_type.value} already has {MAX_ACTIONS} actions")
        action = Action.new(text)
        self.actions.append(action)
        return action

    def remove_action(self, index: int) -> Action:
        if not 0 <= index < len(self.actions):
            raise InvariantViolation(f"{self.outcome_type.value} has no action at index {index}")
        if len(self.actions) <= MIN_ACTIONS:
            raise InvariantViolation(f"{self.outcome_type.value} must keep at least {MIN_ACTIONS} action")
        return self.actions.pop(index)

    def action(self, index: int) -> Action:
        if not 0 <= index < len(self.actions):
            raise InvariantViolation(f"{self.outcome_type.value} has no action at index {index}")
        return self.actions[index]

    def set_goal(self, text: Optional[str]) -> str:
        if not text or not text.strip():
            self.goal = None
            return ""
        self.goal, warning = clamp_text(text.strip(), MAX_GOAL_LENGTH, what="goal")
        return warning

    def set_reflection(self, text: Optional[str]) -> str:
        if not text or not text.strip():
            self.reflection = None
            return ""
        self.reflection, warning = clamp_text(text, MAX_REFLECTION_LENGTH, what="reflection")
        return warning

    def count_completed(self) -> int:
        return sum(1 for a in self.actions if a.completed)

    def completion_percentage(self) -> int:
        total = len(self.actions)
        return self.count_completed() * 100 // total if total else 0


@dataclass
class DailyGoals:
    date: date
    day_number: Optional[int] = None
    work: Outcome = field(default_factory=lambda: Outcome(OutcomeType.WORK))
    health: Outcome = field(default_factory=lambda: Outcome(OutcomeType.HEALTH))
    family: Outcome = field(default_factory=lambda: Outcome(OutcomeType.FAMILY))

    def __post_init__(self) -> None:
        if self.day_number is not None and int(self.day_number) < 1:
            raise InvariantViolation(f"day number must be positive, got {self.day_number}")

    def outcomes(self) -> List[Outcome]:
        return [self.work, self.health, self.family]

    def outcome(self, outcome_type: Union[OutcomeType, str]) -> Outcome:
        return getattr(self, OutcomeType.parse(outcome_type).key)

    def iter_actions(self) -> Iterator[Tuple[OutcomeType, int, Action]]:
        for o in self.outcomes():
            for i, a in enumerate(o.actions):
                yield o.outcome_type, i, a

    def completion_stats(self) -> "CompletionStats":
        from .stats import completion_stats
        return completion_stats(self)

    def markdown_view(self) -> tuple:
        """The fields that survive a Markdown round trip, as a comparable tuple."""
        return (
            self.date,
            self.day_number,
            tuple(
                (o.goal, tuple((a.text, a.completed) for a in o.actions))
                for o in self.outcomes()
            ),
        )


@dataclass
class CompletionStats:
    completed: int = 0
    total: int = 0
    percentage: int = 0
    by_outcome: List[Tuple[str, int, int]] = field(default_factory=list)
    streak_days: Optional[int] = None
    best_outcome: Optional[str] = None
    needs_attention: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Vision & templates
# ---------------------------------------------------------------------------

@dataclass
class FiveYearVision:
    work: str = ""
    health: str = ""
    family: str = ""
    created: date = field(default_factory=today)
    modified: date = field(default_factory=today)

    def get_vision(self, outcome_type: Union[OutcomeType, str]) -> str:
        return getattr(self, OutcomeType.parse(outcome_type).key)

    def set_vision(self, outcome_type: Union[OutcomeType, str], text: str) -> str:
        value, warning = clamp_text(text, MAX_VISION_LENGTH, what="vision")
        setattr(self, OutcomeType.parse(outcome_type).key, value)
        self.modified = today()
        return warning


@dataclass
class ActionTemplates:
    templates: Dict[str, List[str]] = field(default_factory=dict)
    created: date = field(default_factory=today)
    modified: date = field(default_factory=today)

    def add_template(self, name: str, actions: List[str]) -> List[str]:
        """Add or replace a template. Returns the clamp warnings (possibly empty)."""
        name = (name or "").strip()
        if not name:
            raise InvariantViolation("template name must not be empty")
        if not actions:
            raise InvariantViolation(f"template {name!r} needs at least one action")
        warnings: List[str] = []
        if len(actions) > MAX_TEMPLATE_ACTIONS:
            msg = f"template {name!r} truncated from {len(actions)} to {MAX_TEMPLATE_ACTIONS} actions"
            logger.warning(msg)
            warnings.append(msg)
        kept: List[str] = []
        for text in actions[:MAX_TEMPLATE_ACTIONS]:
            value, w = clamp_text(text, MAX_ACTION_LENGTH, what=f"template {name!r} action")
            kept.append(value)
            if w:
                warnings.append(w)
        self.templates[name] = kept
        self.modified = today()
        return warnings

    def remove_template(self, name: str) -> bool:
        removed = self.templates.pop(name, None) is not None
        if removed:
            self.modified = today()
        return removed

    def get_template(self, name: str) -> Optional[List[str]]:
        return self.templates.get(name)

    def template_names(self) -> List[str]:
        return sorted(self.templates)


# ---------------------------------------------------------------------------
# Objectives, indicators, observations
# ---------------------------------------------------------------------------

@dataclass
class Objective:
    id: str
    domain: OutcomeType
    title: str
    description: Optional[str] = None
    start: date = field(default_factory=today)
    end: Optional[date] = None
    status: ObjectiveStatus = ObjectiveStatus.ACTIVE
    indicators: List[str] = field(default_factory=list)
    created: datetime = field(default_factory=utcnow)
    modified: datetime = field(default_factory=utcnow)
    parent_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not (self.title or "").strip():
            raise InvariantViolation("objective title must not be empty")

    @classmethod
    def new(cls, domain: Union[OutcomeType, str], title: str) -> "Objective":
        return cls(id=new_id(), domain=OutcomeType.parse(domain), title=title.strip())

    def touch(self) -> None:
        self.modified = utcnow()


@dataclass(frozen=True)
class IndicatorUnit:
    kind: str                       # Count | Minutes | Dollars | Percent | Custom
    label: Optional[str] = None     # only for Custom

    KINDS = ("Count", "Minutes", "Dollars", "Percent", "Custom")

    def __post_init__(self) -> None:
        if self.kind not in self.KINDS:
            raise InvariantViolation(f"unknown indicator unit: {self.kind!r}")
        if self.kind == "Custom" and not (self.label or "").strip():
            raise InvariantViolation("custom unit needs a label")

    @classmethod
    def count(cls) -> "IndicatorUnit":
        return cls("Count")

    @classmethod
    def minutes(cls) -> "IndicatorUnit":
        return cls("Minutes")

    @classmethod
    def dollars(cls) -> "IndicatorUnit":
        return cls("Dollars")

    @classmethod
    def percent(cls) -> "IndicatorUnit":
        return cls("Percent")

    @classmethod
    def custom(cls, label: str) -> "IndicatorUnit":
        return cls("Custom", label)

    def display(self) -> str:
        return {"Count": "count", "Minutes": "min", "Dollars": "$", "Percent": "%"}.get(self.kind, self.label or "")


@dataclass
class IndicatorDef:
    id: str
    name: str
    kind: IndicatorKind
    unit: IndicatorUnit
    objective_id: Optional[str] = None
    target: Optional[float] = None
    direction: IndicatorDirection = IndicatorDirection.HIGHER_IS_BETTER
    active: bool = True
    created: datetime = field(default_factory=utcnow)
    modified: datetime = field(default_factory=utcnow)
    lineage_of: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if not (self.name or "").strip():
            raise InvariantViolation("indicator name must not be empty")

    @classmethod
    def new(cls, name: str, kind: Union[IndicatorKind, str], unit: IndicatorUnit) -> "IndicatorDef":
        return cls(id=new_id(), name=name.strip(), kind=IndicatorKind(kind), unit=unit)

    def successor(self, name: Optional[str] = None) -> "IndicatorDef":
        """Redefine this indicator: the new one points back here and this one is deactivated."""
        nxt = IndicatorDef(
            id=new_id(),
            name=(name or self.name).strip(),
            kind=self.kind,
            unit=self.unit,
            objective_id=self.objective_id,
            target=self.target,
            direction=self.direction,
            lineage_of=self.id,
        )
        self.active = False
        self.modified = utcnow()
        return nxt


@dataclass
class Observation:
    id: str
    indicator_id: str
    when: date
    value: float
    unit: IndicatorUnit
    source: ObservationSource = ObservationSource.MANUAL
    action_id: Optional[str] = None
    note: Optional[str] = None
    created: datetime = field(default_factory=utcnow)

    @classmethod
    def new(cls, indicator: IndicatorDef, value: float, *, when: Optional[date] = None,
            source: ObservationSource = ObservationSource.MANUAL,
            action_id: Optional[str] = None, note: Optional[str] = None) -> "Observation":
        return cls(id=new_id(), indicator_id=indicator.id, when=when or today(),
                   value=float(value), unit=indicator.unit, source=source,
                   action_id=action_id, note=note)


@dataclass
class ObjectivesData:
    version: int = DOCUMENT_VERSION
    objectives: List[Objective] = field(default_factory=list)

    def get(self, objective_id: Optional[str]) -> Optional[Objective]:
        if not objective_id:
            return None
        return next((o for o in self.objectives if o.id == objective_id), None)

    def add(self, objective: Objective) -> Objective:
        if self.get(objective.id) is not None:
            raise InvariantViolation(f"duplicate objective id {objective.id}")
        self.objectives.append(objective)
        return objective

    def remove(self, objective_id: str) -> bool:
        before = len(self.objectives)
        self.objectives = [o for o in self.objectives if o.id != objective_id]
        return len(self.objectives) != before

    def by_domain(self, domain: Union[OutcomeType, str]) -> List[Objective]:
        d = OutcomeType.parse(domain)
        return [o for o in self.objectives if o.domain is d]

    def active(self) -> List[Objective]:
        return [o for o in self.objectives if o.status is ObjectiveStatus.ACTIVE]


@dataclass
class IndicatorsData:
    version: int = DOCUMENT_VERSION
    indicators: List[IndicatorDef] = field(default_factory=list)

    def get(self, indicator_id: Optional[str]) -> Optional[IndicatorDef]:
        if not indicator_id:
            return None
        return next((i for i in self.indicators if i.id == indicator_id), None)

    def add(self, indicator: IndicatorDef) -> IndicatorDef:
        if self.get(indicator.id) is not None:
            raise InvariantViolation(f"duplicate indicator id {indicator.id}")
        self.indicators.append(indicator)
        return indicator

    def for_objective(self, objective_id: str) -> List[IndicatorDef]:
        return [i for i in self.indicators if i.objective_id == objective_id]

    def active(self) -> List[IndicatorDef]:
        return [i for i in self.indicators if i.active]


def link_indicator(objectives: ObjectivesData, indicators: IndicatorsData,
                   objective_id: str, indicator_id: str) -> None:
    """Attach an indicator to an objective on both sides."""
    obj = objectives.get(objective_id)
    ind = indicators.get(indicator_id)
    if obj is None or ind is None:
        missing = objective_id if obj is None else indicator_id
        raise NotFound(f"no such objective/indicator: {missing}")
    if indicator_id not in obj.indicators:
        obj.indicators.append(indicator_id)
        obj.touch()
    ind.objective_id = objective_id
    ind.modified = utcnow()


# ---------------------------------------------------------------------------
# Day sidecar
# ---------------------------------------------------------------------------

@dataclass
class ActionMeta:
    id: str
    status: ActionStatus = ActionStatus.PLANNED
    origin: ActionOrigin = ActionOrigin.MANUAL
    estimated_min: Optional[int] = None
    actual_min: Optional[int] = None
    priority: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    objective_id: Optional[str] = None          # legacy scalar; mirrors objective_ids[0]
    objective_ids: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.set_objectives(([self.objective_id] if self.objective_id else []) + list(self.objective_ids))

    @classmethod
    def for_action(cls, action: Action) -> "ActionMeta":
        return cls(
            id=action.id,
            status=ActionStatus.DONE if action.completed else ActionStatus.PLANNED,
            origin=action.origin,
            objective_ids=action.all_objective_ids(),
        )

    def set_objectives(self, ids: List[str]) -> None:
        out: List[str] = []
        for oid in ids:
            if oid and oid not in out:
                out.append(oid)
        self.objective_ids = out
        self.objective_id = out[0] if out else None


@dataclass
class DayMeta:
    version: int = META_VERSION
    work: List[ActionMeta] = field(default_factory=list)
    health: List[ActionMeta] = field(default_factory=list)
    family: List[ActionMeta] = field(default_factory=list)
    reflections: Dict[str, str] = field(default_factory=dict)   # outcome key -> evening reflection
    created: datetime = field(default_factory=utcnow)
    modified: datetime = field(default_factory=utcnow)

    def entries(self, outcome_type: Union[OutcomeType, str]) -> List[ActionMeta]:
        return getattr(self, OutcomeType.parse(outcome_type).key)

    def set_entries(self, outcome_type: Union[OutcomeType, str], items: List[ActionMeta]) -> None:
        setattr(self, OutcomeType.parse(outcome_type).key, items)

    def touch(self) -> None:
        self.modified = utcnow()


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

@dataclass
class Decision:
    summary: str
    objective_id: Optional[str] = None
    indicator_id: Optional[str] = None
    rationale: Optional[str] = None


@dataclass
class Review:
    id: str
    date: date
    period: ReviewPeriod = ReviewPeriod.WEEKLY
    notes: Optional[str] = None
    score_1_to_5: int = 3
    decisions: List[Decision] = field(default_factory=list)

    def __post_init__(self) -> None:
        s = int(self.score_1_to_5)
        if not 1 <= s <= 5:
            logger.warning("review score %s clamped to 1..5", s)
            s = max(1, min(5, s))
        self.score_1_to_5 = s

    @classmethod
    def new(cls, day: date, period: ReviewPeriod = ReviewPeriod.WEEKLY, score: int = 3,
            notes: Optional[str] = None) -> "Review":
        return cls(id=new_id(), date=day, period=period, score_1_to_5=score, notes=notes)


__all__ = [
    "MAX_ACTION_LENGTH",
    "MAX_GOAL_LENGTH",
    "MAX_VISION_LENGTH",
    "MAX_REFLECTION_LENGTH",
    "MIN_ACTIONS",
    "MAX_ACTIONS",
    "DEFAULT_ACTIONS",
    "MAX_TEMPLATE_ACTIONS",
    "META_VERSION",
    "DOCUMENT_VERSION",
    "OutcomeType",
    "OUTCOME_ORDER",
    "ActionStatus",
    "ActionOrigin",
    "ObjectiveStatus",
    "IndicatorKind",
    "IndicatorDirection",
    "ObservationSource",
    "ReviewPeriod",
    "RitualPhase",
    "Action",
    "Outcome",
    "DailyGoals",
    "CompletionStats",
    "FiveYearVision",
    "ActionTemplates",
    "Objective",
    "IndicatorUnit",
    "IndicatorDef",
    "Observation",
    "ObjectivesData",
    "IndicatorsData",
    "link_indicator",
    "ActionMeta",
    "DayMeta",
    "Decision",
    "Review",
]
