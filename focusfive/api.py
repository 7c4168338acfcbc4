# focusfive/api.py
# Public facade: load-or-create a day, mutate it through verbs that set dirty flags, save each dirty store independently

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Union

from .config import Config, load_config
from .errors import FocusError, IoFailure, NotFound, SaveReport
from .markdown import goals_path, read_goals_file, write_goals_file
from .model import (
    Action,
    ActionStatus,
    ActionTemplates,
    DailyGoals,
    DayMeta,
    FiveYearVision,
    IndicatorDef,
    IndicatorKind,
    IndicatorUnit,
    IndicatorsData,
    Objective,
    ObjectivesData,
    Observation,
    ObservationSource,
    OutcomeType,
    Review,
    RitualPhase,
    link_indicator as _link_indicator,
)
from .observations import OBSERVATIONS_FILE, append_observation, read_observations
from .reconcile import (
    SelectionMask,
    adopt_meta_ids,
    apply_template_to_day,
    carry_over as _carry_over,
    carry_over_candidates,
    hydrate_actions,
    meta_from_goals,
    reconcile,
    record_actions,
)
from .reconcile import add_action as _add_action, remove_action as _remove_action
from .stats import IndicatorProgress, calculate_streak, completion_stats, history_stats, indicator_progress
from .store import JsonDocumentStore
from .utils import today as _today
from . import metrics

logger = logging.getLogger(__name__)

OutcomeRef = Union[OutcomeType, str]

# Save order within one save point
STORES = ("goals", "day_meta", "vision", "templates", "objectives", "indicators")


class FocusAPI:
    """
    Facade over every store under one data root.

    Stateless apart from paths: open_day() returns a DaySession that owns the
    in-memory day plus the shared documents and their dirty flags.
    """

    def __init__(self, config: Optional[Config] = None, *,
                 goals_dir: Optional[Union[str, Path]] = None,
                 data_root: Optional[Union[str, Path]] = None) -> None:
        cfg = config or load_config()
        if goals_dir is not None:
            gd = Path(goals_dir)
            cfg = replace(cfg, goals_dir=gd, data_root=Path(data_root) if data_root is not None else gd.parent)
        elif data_root is not None:
            cfg = replace(cfg, data_root=Path(data_root))
        self.config = cfg
        self.docs = JsonDocumentStore(cfg.data_root)

    # ---------------- paths ----------------

    @property
    def goals_dir(self) -> Path:
        return self.config.goals_dir

    @property
    def data_root(self) -> Path:
        return self.config.data_root

    @property
    def observations_path(self) -> Path:
        return self.data_root / OBSERVATIONS_FILE

    def ensure_dirs(self) -> None:
        try:
            self.config.ensure_dirs()
        except OSError as e:
            raise IoFailure(f"cannot create data directories: {e.strerror or e}", path=self.data_root) from e

    # ---------------- goals ----------------

    def goals_path(self, day: date) -> Path:
        return goals_path(self.goals_dir, day)

    def load_goals(self, day: date) -> Optional[DailyGoals]:
        """The day's goals, or None when no file exists."""
        path = self.goals_path(day)
        if not path.exists():
            return None
        goals = read_goals_file(path)
        if goals.date != day:
            logger.warning("%s has header date %s; using file date", path, goals.date)
            goals.date = day
        return goals

    def load_or_create_goals(self, day: date) -> DailyGoals:
        return self.load_goals(day) or DailyGoals(date=day)

    def save_goals(self, goals: DailyGoals) -> Path:
        return write_goals_file(goals, self.goals_dir)

    def yesterday_goals(self, day: date) -> Optional[DailyGoals]:
        return self.load_goals(day - timedelta(days=1))

    # ---------------- JSON documents ----------------

    def load_vision(self) -> FiveYearVision:
        return self.docs.load_vision()

    def save_vision(self, vision: FiveYearVision) -> Path:
        return self.docs.save_vision(vision)

    def load_templates(self) -> ActionTemplates:
        return self.docs.load_templates()

    def save_templates(self, templates: ActionTemplates) -> Path:
        return self.docs.save_templates(templates)

    def load_objectives(self) -> ObjectivesData:
        return self.docs.load_objectives()

    def save_objectives(self, data: ObjectivesData) -> Path:
        return self.docs.save_objectives(data)

    def load_indicators(self) -> IndicatorsData:
        return self.docs.load_indicators()

    def save_indicators(self, data: IndicatorsData) -> Path:
        return self.docs.save_indicators(data)

    def load_or_create_day_meta(self, day: date, goals: DailyGoals, *, fresh_parse: bool = True) -> DayMeta:
        """
        Sidecar for `day` aligned with `goals`. A missing sidecar is synthesized.
        With fresh_parse, the parsed actions first take the sidecar's ids so
        identity is stable across restarts; sidecar detail is then pushed back
        into the actions.
        """
        meta = self.docs.load_day_meta(day)
        if meta is None:
            return meta_from_goals(goals)
        if fresh_parse:
            adopt_meta_ids(goals, meta)
        reconcile(meta, goals, trigger="load")
        hydrate_actions(goals, meta)
        return meta

    def save_day_meta(self, day: date, meta: DayMeta) -> Path:
        return self.docs.save_day_meta(day, meta)

    def load_review(self, day: date) -> Optional[Review]:
        return self.docs.load_review(day)

    def save_review(self, review: Review) -> Path:
        return self.docs.save_review(review)

    def list_reviews(self) -> List[Review]:
        return self.docs.list_reviews()

    # ---------------- observations ----------------

    def append_observation(self, obs: Observation) -> Path:
        return append_observation(self.observations_path, obs)

    def load_observations(self, indicator_id: Optional[str] = None, *,
                          start: Optional[date] = None, end: Optional[date] = None) -> List[Observation]:
        return read_observations(self.observations_path, indicator_id=indicator_id, start=start, end=end)

    # ---------------- stats ----------------

    def streak(self, day: Optional[date] = None) -> int:
        return calculate_streak(self.goals_dir, day or _today())

    def stats_for(self, goals: DailyGoals):
        return completion_stats(goals)

    def history(self, start: date, end: date):
        return history_stats(self.goals_dir, start, end)

    # ---------------- sessions ----------------

    def open_day(self, day: Optional[date] = None) -> "DaySession":
        """Load (or create) everything the UI needs for `day`."""
        day = day or _today()
        self.ensure_dirs()
        dirty: Set[str] = set()

        goals = self.load_goals(day)
        if goals is None:
            goals = DailyGoals(date=day)
            dirty.add("goals")
        had_meta = self.docs.meta_path(day).exists()
        meta = self.load_or_create_day_meta(day, goals, fresh_parse="goals" not in dirty)
        if not had_meta:
            dirty.add("day_meta")

        session = DaySession(
            api=self,
            date=day,
            goals=goals,
            meta=meta,
            vision=self.load_vision(),
            templates=self.load_templates(),
            objectives=self.load_objectives(),
            indicators=self.load_indicators(),
            dirty=dirty,
        )
        logger.debug("opened %s (dirty=%s)", day, sorted(dirty))
        return session

    def startup_context(self, session: "DaySession", hour: int) -> Dict[str, Any]:
        """What the UI preloads for the ritual phase of `hour`."""
        phase = RitualPhase.from_hour(hour)
        ctx: Dict[str, Any] = {"phase": phase, "greeting": phase.greeting()}
        if phase.wants_yesterday_context():
            try:
                y = self.yesterday_goals(session.date)
            except FocusError as e:
                logger.warning("yesterday unavailable: %s", e)
                y = None
            ctx["yesterday"] = y
            ctx["carry_over_candidates"] = carry_over_candidates(y) if y else []
        if phase.wants_completion_stats():
            ctx["stats"] = self.stats_for(session.goals)
            ctx["streak"] = self.streak(session.date)
        return ctx

    def save(self, session: "DaySession") -> SaveReport:
        """
        Write every dirty store in STORES order. A failing store stays dirty
        and is reported; it does not stop the remaining stores.
        """
        report = SaveReport()
        if "goals" in session.dirty:
            # ids and statuses must be in the sidecar written alongside
            session.dirty.add("day_meta")
        if "day_meta" in session.dirty:
            record_actions(session.meta, session.goals)

        writers = {
            "goals": lambda: self.save_goals(session.goals),
            "day_meta": lambda: self.save_day_meta(session.date, session.meta),
            "vision": lambda: self.save_vision(session.vision),
            "templates": lambda: self.save_templates(session.templates),
            "objectives": lambda: self.save_objectives(session.objectives),
            "indicators": lambda: self.save_indicators(session.indicators),
        }
        for store in STORES:
            if store not in session.dirty:
                continue
            try:
                writers[store]()
            except FocusError as e:
                logger.error("saving %s failed: %s", store, e)
                report.failed[store] = e
                metrics.record_save(store, False)
                continue
            session.dirty.discard(store)
            report.saved.append(store)
            metrics.record_save(store, True)
        return report


@dataclass
class DaySession:
    """One open day plus the shared documents; every verb records what it made dirty."""
    api: FocusAPI
    date: date
    goals: DailyGoals
    meta: DayMeta
    vision: FiveYearVision
    templates: ActionTemplates
    objectives: ObjectivesData
    indicators: IndicatorsData
    dirty: Set[str] = field(default_factory=set)
    warnings: List[str] = field(default_factory=list)

    def _warn(self, w: str) -> str:
        if w:
            self.warnings.append(w)
        return w

    def _action(self, outcome: OutcomeRef, index: int) -> Action:
        return self.goals.outcome(outcome).action(index)

    @property
    def is_dirty(self) -> bool:
        return bool(self.dirty)

    # ---------------- action verbs ----------------

    def set_action_text(self, outcome: OutcomeRef, index: int, text: str) -> str:
        w = self._action(outcome, index).set_text(text)
        self.dirty.add("goals")
        return self._warn(w)

    def cycle_status(self, outcome: OutcomeRef, index: int) -> ActionStatus:
        status = self._action(outcome, index).cycle_status()
        self.dirty.update(("goals", "day_meta"))
        return status

    def set_status(self, outcome: OutcomeRef, index: int, status: Union[ActionStatus, str]) -> None:
        self._action(outcome, index).set_status(status)
        self.dirty.update(("goals", "day_meta"))

    def toggle_completed(self, outcome: OutcomeRef, index: int) -> bool:
        done = self._action(outcome, index).toggle_completed()
        self.dirty.update(("goals", "day_meta"))
        return done

    def add_action(self, outcome: OutcomeRef, text: str = "") -> Action:
        action = _add_action(self.goals, self.meta, outcome, text)
        self.dirty.update(("goals", "day_meta"))
        return action

    def remove_action(self, outcome: OutcomeRef, index: int) -> Action:
        removed = _remove_action(self.goals, self.meta, outcome, index)
        self.dirty.update(("goals", "day_meta"))
        return removed

    def link_objective(self, outcome: OutcomeRef, index: int, objective_id: str) -> Optional[Objective]:
        """Link and return the objective; None if the id does not resolve (the link is kept)."""
        if self._action(outcome, index).link_objective(objective_id):
            self.dirty.add("day_meta")
        return self.resolve_objective(objective_id)

    def unlink_objective(self, outcome: OutcomeRef, index: int, objective_id: str) -> bool:
        changed = self._action(outcome, index).unlink_objective(objective_id)
        if changed:
            self.dirty.add("day_meta")
        return changed

    # ---------------- outcome verbs ----------------

    def set_goal(self, outcome: OutcomeRef, text: Optional[str]) -> str:
        w = self.goals.outcome(outcome).set_goal(text)
        self.dirty.add("goals")
        return self._warn(w)

    def set_reflection(self, outcome: OutcomeRef, text: Optional[str]) -> str:
        w = self.goals.outcome(outcome).set_reflection(text)
        self.dirty.add("day_meta")
        return self._warn(w)

    def apply_template(self, name: str, outcome: OutcomeRef) -> int:
        template = self.templates.get_template(name)
        if template is None:
            raise NotFound(f"no template named {name!r}")
        filled = apply_template_to_day(self.goals, self.meta, outcome, template)
        self.dirty.update(("goals", "day_meta"))
        return filled

    def carry_over(self, mask: Optional[SelectionMask] = None,
                   yesterday: Optional[DailyGoals] = None) -> int:
        y = yesterday if yesterday is not None else self.api.yesterday_goals(self.date)
        if y is None:
            return 0
        carried = _carry_over(y, self.goals, mask)
        if carried:
            self.dirty.update(("goals", "day_meta"))
        return carried

    # ---------------- vision / templates ----------------

    def set_vision(self, outcome: OutcomeRef, text: str) -> str:
        w = self.vision.set_vision(outcome, text)
        self.dirty.add("vision")
        return self._warn(w)

    def add_template(self, name: str, actions: Sequence[str]) -> List[str]:
        warnings = self.templates.add_template(name, list(actions))
        self.dirty.add("templates")
        self.warnings.extend(warnings)
        return warnings

    def remove_template(self, name: str) -> bool:
        removed = self.templates.remove_template(name)
        if removed:
            self.dirty.add("templates")
        return removed

    # ---------------- objectives / indicators ----------------

    def add_objective(self, domain: OutcomeRef, title: str, **fields: Any) -> Objective:
        obj = Objective.new(domain, title)
        for k, v in fields.items():
            setattr(obj, k, v)
        self.objectives.add(obj)
        self.dirty.add("objectives")
        return obj

    def add_indicator(self, name: str, kind: Union[IndicatorKind, str], unit: IndicatorUnit, *,
                      objective_id: Optional[str] = None, target: Optional[float] = None) -> IndicatorDef:
        ind = IndicatorDef.new(name, kind, unit)
        ind.target = target
        self.indicators.add(ind)
        self.dirty.add("indicators")
        if objective_id:
            _link_indicator(self.objectives, self.indicators, objective_id, ind.id)
            self.dirty.add("objectives")
        return ind

    def link_indicator(self, objective_id: str, indicator_id: str) -> None:
        _link_indicator(self.objectives, self.indicators, objective_id, indicator_id)
        self.dirty.update(("objectives", "indicators"))

    def resolve_objective(self, objective_id: Optional[str]) -> Optional[Objective]:
        return self.objectives.get(objective_id)

    def resolve_indicator(self, indicator_id: Optional[str]) -> Optional[IndicatorDef]:
        return self.indicators.get(indicator_id)

    def record_observation(self, indicator_id: str, value: float, *,
                           when: Optional[date] = None, note: Optional[str] = None,
                           action_id: Optional[str] = None,
                           source: ObservationSource = ObservationSource.MANUAL) -> Observation:
        ind = self.resolve_indicator(indicator_id)
        if ind is None:
            raise NotFound(f"no indicator with id {indicator_id!r}")
        obs = Observation.new(ind, value, when=when or self.date, source=source,
                              action_id=action_id, note=note)
        self.api.append_observation(obs)
        return obs

    def indicator_progress(self, indicator_id: str) -> IndicatorProgress:
        ind = self.resolve_indicator(indicator_id)
        if ind is None:
            raise NotFound(f"no indicator with id {indicator_id!r}")
        return indicator_progress(ind, self.api.load_observations(indicator_id))

    # ---------------- persistence ----------------

    def stats(self):
        return self.api.stats_for(self.goals)

    def save(self) -> SaveReport:
        return self.api.save(self)


__all__ = ["FocusAPI", "DaySession", "STORES"]
