# focusfive/reconcile.py
# Keeps the per-day sidecar aligned with the Markdown actions; carry-over, template application, add/remove with realignment

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from .model import (
    MAX_ACTIONS,
    Action,
    ActionMeta,
    ActionOrigin,
    ActionStatus,
    DailyGoals,
    DayMeta,
    Outcome,
    OutcomeType,
)
from . import metrics

logger = logging.getLogger(__name__)

# Flat list over yesterday's actions in Work, Health, Family order, or per-outcome lists
SelectionMask = Union[Sequence[bool], Mapping[OutcomeType, Sequence[bool]]]


# ------- sidecar alignment -------

def meta_from_goals(goals: DailyGoals) -> DayMeta:
    """Fresh sidecar: one entry per action, Done if completed else Planned."""
    meta = DayMeta()
    for o in goals.outcomes():
        meta.set_entries(o.outcome_type, [ActionMeta.for_action(a) for a in o.actions])
    metrics.record_reconcile("create")
    return meta


def reconcile(meta: DayMeta, goals: DailyGoals, *, trigger: str = "load") -> DayMeta:
    """
    Align `meta` with `goals` in place and return it.

    Per outcome: pad with entries for the extra actions (ids taken from the
    actions) or truncate surplus entries, then copy ids positionally. A
    completed action lifts a Planned entry to Done; an open action drops a
    Done entry back to Planned. InProgress, Skipped and Blocked are kept.
    """
    for o in goals.outcomes():
        entries = meta.entries(o.outcome_type)
        actions = o.actions
        if len(entries) < len(actions):
            entries.extend(ActionMeta.for_action(a) for a in actions[len(entries):])
        elif len(entries) > len(actions):
            del entries[len(actions):]
        for action, entry in zip(actions, entries):
            entry.id = action.id
            if action.completed and entry.status is ActionStatus.PLANNED:
                entry.status = ActionStatus.DONE
            elif not action.completed and entry.status is ActionStatus.DONE:
                entry.status = ActionStatus.PLANNED
    meta.touch()
    metrics.record_reconcile(trigger)
    return meta


def is_aligned(meta: DayMeta, goals: DailyGoals) -> bool:
    for o in goals.outcomes():
        entries = meta.entries(o.outcome_type)
        if len(entries) != len(o.actions):
            return False
        if any(e.id != a.id for e, a in zip(entries, o.actions)):
            return False
    return True


def adopt_meta_ids(goals: DailyGoals, meta: DayMeta) -> int:
    """
    Give freshly parsed actions the ids stored in the sidecar (by position),
    so action identity survives process restarts. Returns how many changed.
    """
    changed = 0
    for o in goals.outcomes():
        for action, entry in zip(o.actions, meta.entries(o.outcome_type)):
            if entry.id and action.id != entry.id:
                action.id = entry.id
                changed += 1
    return changed


def hydrate_actions(goals: DailyGoals, meta: DayMeta) -> None:
    """
    Push sidecar detail (status, origin, objective links, reflection) into the day.
    Markdown stays authoritative for completion: a checked action is Done,
    an unchecked one never is.
    """
    for o in goals.outcomes():
        for action, entry in zip(o.actions, meta.entries(o.outcome_type)):
            if action.completed:
                target = ActionStatus.DONE
            elif entry.status is ActionStatus.DONE:
                target = ActionStatus.PLANNED
            else:
                target = entry.status
            if action.status is not target:
                action.set_status(target, touch=False)
            action.origin = entry.origin
            for oid in entry.objective_ids:
                action.link_objective(oid, touch=False)
        text = meta.reflections.get(o.outcome_type.key)
        if text:
            o.set_reflection(text)


def record_actions(meta: DayMeta, goals: DailyGoals) -> DayMeta:
    """Realign, then copy each action's status/origin/objective (and reflections) into the sidecar before saving."""
    reconcile(meta, goals, trigger="save")
    for o in goals.outcomes():
        for action, entry in zip(o.actions, meta.entries(o.outcome_type)):
            entry.status = action.status
            entry.origin = action.origin
            entry.set_objectives(action.all_objective_ids())
        if o.reflection:
            meta.reflections[o.outcome_type.key] = o.reflection
        else:
            meta.reflections.pop(o.outcome_type.key, None)
    return meta


# ------- structural edits -------

def add_action(goals: DailyGoals, meta: DayMeta, outcome_type: Union[OutcomeType, str],
               text: str = "") -> Action:
    outcome = goals.outcome(outcome_type)
    action = outcome.add_action(text)
    reconcile(meta, goals, trigger="add")
    return action


def remove_action(goals: DailyGoals, meta: DayMeta, outcome_type: Union[OutcomeType, str],
                  index: int) -> Action:
    outcome = goals.outcome(outcome_type)
    removed = outcome.remove_action(index)
    entries = meta.entries(outcome.outcome_type)
    if index < len(entries):
        # drop the removed action's entry so later entries shift with their actions
        del entries[index]
    reconcile(meta, goals, trigger="remove")
    return removed


# ------- carry-over -------

def _selected(mask: Optional[SelectionMask], outcome_type: OutcomeType, index: int, flat_index: int) -> bool:
    if mask is None:
        return True
    if isinstance(mask, Mapping):
        per = mask.get(outcome_type) or mask.get(outcome_type.value) or []  # type: ignore[call-overload]
        return index < len(per) and bool(per[index])
    return flat_index < len(mask) and bool(mask[flat_index])


def carry_over_candidates(yesterday: DailyGoals) -> List[Tuple[OutcomeType, int, str]]:
    """Unfinished, non-empty actions from yesterday as (outcome, index, text)."""
    return [
        (t, i, a.text)
        for t, i, a in yesterday.iter_actions()
        if not a.completed and not a.is_empty
    ]


def carry_over(yesterday: DailyGoals, today: DailyGoals, mask: Optional[SelectionMask] = None) -> int:
    """
    Copy yesterday's unfinished actions into today's empty slot at the same
    position, if selected by `mask`. Existing text is never overwritten.
    Returns the number of actions carried.
    """
    carried = 0
    flat = 0
    for y_outcome in yesterday.outcomes():
        t_outcome = today.outcome(y_outcome.outcome_type)
        for i, src in enumerate(y_outcome.actions):
            pos = flat
            flat += 1
            if src.completed or src.is_empty:
                continue
            if i >= len(t_outcome.actions):
                continue
            dst = t_outcome.actions[i]
            if not dst.is_empty:
                continue
            if not _selected(mask, y_outcome.outcome_type, i, pos):
                continue
            dst.set_text(src.text)
            dst.origin = ActionOrigin.CARRY_OVER
            dst.set_status(ActionStatus.PLANNED)
            carried += 1
    if carried:
        logger.info("carried over %d action(s) from %s to %s", carried, yesterday.date, today.date)
    return carried


# ------- templates -------

def apply_template(outcome: Outcome, template: Sequence[str]) -> int:
    """
    Fill empty slots of `outcome` from `template`, growing the action list up to
    min(len(template), 5). Non-empty actions are left alone. Returns slots filled.
    """
    n = min(len(template), MAX_ACTIONS)
    while len(outcome.actions) < n:
        outcome.add_action()
    filled = 0
    for i in range(n):
        action = outcome.actions[i]
        if not action.is_empty or not (template[i] or "").strip():
            continue
        action.set_text(template[i])
        action.origin = ActionOrigin.TEMPLATE
        action.set_status(ActionStatus.PLANNED)
        filled += 1
    return filled


def apply_template_to_day(goals: DailyGoals, meta: Optional[DayMeta], outcome_type: Union[OutcomeType, str],
                          template: Sequence[str]) -> int:
    filled = apply_template(goals.outcome(outcome_type), template)
    if meta is not None:
        reconcile(meta, goals, trigger="template")
    return filled


__all__ = [
    "SelectionMask",
    "meta_from_goals",
    "reconcile",
    "is_aligned",
    "adopt_meta_ids",
    "hydrate_actions",
    "record_actions",
    "add_action",
    "remove_action",
    "carry_over_candidates",
    "carry_over",
    "apply_template",
    "apply_template_to_day",
]
