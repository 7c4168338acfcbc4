# tests/focusfive_test/test_reconcile.py
# Pytest for sidecar reconciliation, add/remove realignment, carry-over masks and template application

from __future__ import annotations

from datetime import date

import pytest

from focusfive.errors import InvariantViolation
from focusfive.model import (
    Action,
    ActionMeta,
    ActionOrigin,
    ActionStatus,
    DailyGoals,
    DayMeta,
    Outcome,
    OutcomeType,
)
from focusfive.reconcile import (
    add_action,
    adopt_meta_ids,
    apply_template,
    apply_template_to_day,
    carry_over,
    carry_over_candidates,
    hydrate_actions,
    is_aligned,
    meta_from_goals,
    reconcile,
    record_actions,
    remove_action,
)


def _day(d: int = 15) -> DailyGoals:
    return DailyGoals(date=date(2025, 1, d))


def _work(*specs) -> Outcome:
    """specs: (text, completed) pairs."""
    return Outcome(OutcomeType.WORK, actions=[Action.from_markdown(t, c) for t, c in specs])


# ---------------------------- alignment ----------------------------

def test_meta_from_goals_mirrors_actions() -> None:
    g = _day()
    g.work.actions[1].set_completed(True)
    meta = meta_from_goals(g)
    assert [e.id for e in meta.work] == [a.id for a in g.work.actions]
    assert [e.status for e in meta.work] == [ActionStatus.PLANNED, ActionStatus.DONE, ActionStatus.PLANNED]
    assert is_aligned(meta, g)


def test_reconcile_expands_with_default_entries() -> None:
    g = _day()
    a, b, c = (x.id for x in g.work.actions)
    meta = DayMeta(work=[ActionMeta(id="old-1", estimated_min=25), ActionMeta(id="old-2")])

    reconcile(meta, g)

    assert [e.id for e in meta.work] == [a, b, c]
    assert meta.work[0].estimated_min == 25
    third = meta.work[2]
    assert (third.status, third.origin, third.estimated_min, third.tags) == (
        ActionStatus.PLANNED, ActionOrigin.MANUAL, None, []
    )
    assert len(meta.health) == 3 and len(meta.family) == 3
    assert is_aligned(meta, g)


def test_reconcile_truncates_surplus_entries() -> None:
    g = _day()
    g.work = _work(("one", False))
    meta = DayMeta(work=[ActionMeta(id=str(i)) for i in range(4)])
    reconcile(meta, g)
    assert [e.id for e in meta.work] == [g.work.actions[0].id]


def test_reconcile_tracks_completion_but_keeps_richer_status() -> None:
    g = _day()
    g.work = _work(("a", True), ("b", False), ("c", False))
    meta = DayMeta(work=[
        ActionMeta(id="1", status=ActionStatus.PLANNED),
        ActionMeta(id="2", status=ActionStatus.DONE),
        ActionMeta(id="3", status=ActionStatus.BLOCKED),
    ])
    reconcile(meta, g)
    assert [e.status for e in meta.work] == [ActionStatus.DONE, ActionStatus.PLANNED, ActionStatus.BLOCKED]


def test_adopt_ids_then_hydrate_restores_identity_and_detail() -> None:
    g = _day()
    g.work = _work(("a", False), ("b", True))
    meta = DayMeta(work=[
        ActionMeta(id="keep-a", status=ActionStatus.IN_PROGRESS, origin=ActionOrigin.TEMPLATE, objective_id="o1"),
        ActionMeta(id="keep-b", status=ActionStatus.PLANNED),
    ], reflections={"work": "steady"})

    assert adopt_meta_ids(g, meta) == 2
    reconcile(meta, g)
    hydrate_actions(g, meta)

    a, b = g.work.actions
    assert (a.id, a.status, a.origin, a.objective_ids) == ("keep-a", ActionStatus.IN_PROGRESS, ActionOrigin.TEMPLATE, ["o1"])
    assert (b.id, b.status, b.completed) == ("keep-b", ActionStatus.DONE, True)
    assert g.work.reflection == "steady"


def test_record_actions_copies_state_into_sidecar() -> None:
    g = _day()
    meta = meta_from_goals(g)
    g.health.actions[0].set_status(ActionStatus.SKIPPED)
    g.health.actions[1].link_objective("obj-9")
    g.family.set_reflection("called home")
    record_actions(meta, g)
    assert meta.health[0].status is ActionStatus.SKIPPED
    assert meta.health[1].objective_id == "obj-9"
    assert meta.reflections == {"family": "called home"}
    g.family.set_reflection("")
    record_actions(meta, g)
    assert meta.reflections == {}


# ---------------------------- structural edits ----------------------------

def test_add_action_appends_meta_entry() -> None:
    g = _day()
    meta = meta_from_goals(g)
    action = add_action(g, meta, "work", "fourth")
    assert meta.work[-1].id == action.id and len(meta.work) == 4


def test_add_beyond_five_fails_without_changes() -> None:
    g = _day()
    meta = meta_from_goals(g)
    add_action(g, meta, OutcomeType.WORK)
    add_action(g, meta, OutcomeType.WORK)
    with pytest.raises(InvariantViolation):
        add_action(g, meta, OutcomeType.WORK)
    assert len(g.work.actions) == 5 and len(meta.work) == 5


def test_remove_shifts_meta_with_actions() -> None:
    g = _day()
    meta = meta_from_goals(g)
    meta.work[2].estimated_min = 45
    keep = g.work.actions[2].id
    remove_action(g, meta, "work", 1)
    assert [e.id for e in meta.work] == [a.id for a in g.work.actions]
    assert meta.work[1].id == keep and meta.work[1].estimated_min == 45


def test_remove_last_action_fails() -> None:
    g = _day()
    g.family = Outcome(OutcomeType.FAMILY, actions=[Action.new("only")])
    meta = meta_from_goals(g)
    with pytest.raises(InvariantViolation):
        remove_action(g, meta, "family", 0)
    assert len(meta.family) == 1


# ---------------------------- carry-over ----------------------------

def _yesterday() -> DailyGoals:
    y = _day(14)
    y.work = _work(("Draft memo", False), ("Ship CI", True), ("Intro call", False))
    return y


def test_carry_over_fills_empty_slots_for_selected_open_actions() -> None:
    today = _day()
    n = carry_over(_yesterday(), today, [True, True, True])
    assert n == 2
    w = today.work.actions
    assert (w[0].text, w[0].origin, w[0].status) == ("Draft memo", ActionOrigin.CARRY_OVER, ActionStatus.PLANNED)
    assert w[1].text == ""
    assert (w[2].text, w[2].origin) == ("Intro call", ActionOrigin.CARRY_OVER)


def test_carry_over_respects_mask_and_existing_text() -> None:
    today = _day()
    today.work.actions[2].set_text("Already planned")
    assert carry_over(_yesterday(), today, [False, True, True]) == 0
    assert [a.text for a in today.work.actions] == ["", "", "Already planned"]


def test_carry_over_per_outcome_mask() -> None:
    y = _yesterday()
    y.health.actions[0].set_text("Stretch")
    today = _day()
    n = carry_over(y, today, {OutcomeType.HEALTH: [True], "Work": [False, False, True]})
    assert n == 2
    assert today.health.actions[0].text == "Stretch"
    assert [a.text for a in today.work.actions] == ["", "", "Intro call"]


def test_carry_over_skips_positions_today_lacks() -> None:
    today = _day()
    today.work = _work(("", False))
    assert carry_over(_yesterday(), today) == 1
    assert today.work.actions[0].text == "Draft memo"


def test_carry_over_candidates() -> None:
    cands = carry_over_candidates(_yesterday())
    assert cands == [(OutcomeType.WORK, 0, "Draft memo"), (OutcomeType.WORK, 2, "Intro call")]


# ---------------------------- templates ----------------------------

def test_template_fills_empty_slots_only() -> None:
    health = Outcome(OutcomeType.HEALTH)
    health.actions[0].set_text("Run")
    filled = apply_template(health, ["Hydrate", "Stretch", "Plan day"])
    assert filled == 2
    assert [a.text for a in health.actions] == ["Run", "Stretch", "Plan day"]
    assert health.actions[0].origin is ActionOrigin.MANUAL
    assert health.actions[1].origin is ActionOrigin.TEMPLATE
    assert health.actions[2].origin is ActionOrigin.TEMPLATE


def test_template_grows_outcome_up_to_five() -> None:
    work = Outcome(OutcomeType.WORK)
    filled = apply_template(work, ["a", "b", "c", "d", "e"])
    assert filled == 5
    assert len(work.actions) == 5


def test_template_to_day_realigns_meta() -> None:
    g = _day()
    meta = meta_from_goals(g)
    apply_template_to_day(g, meta, "family", ["x", "y", "z", "w"])
    assert len(meta.family) == 4
    assert is_aligned(meta, g)


def test_every_objective_link_moves_between_day_and_sidecar() -> None:
    g = _day()
    meta = meta_from_goals(g)
    g.work.actions[0].link_objective("obj-a")
    g.work.actions[0].link_objective("obj-b")
    record_actions(meta, g)
    assert (meta.work[0].objective_id, meta.work[0].objective_ids) == ("obj-a", ["obj-a", "obj-b"])

    fresh = _day()
    adopt_meta_ids(fresh, meta)
    reconcile(meta, fresh)
    hydrate_actions(fresh, meta)
    assert fresh.work.actions[0].objective_ids == ["obj-a", "obj-b"]
    assert fresh.work.actions[0].objective_id == "obj-a"


def test_legacy_scalar_sidecar_link_is_merged() -> None:
    e = ActionMeta(id="x", objective_id="old", objective_ids=["new", "old"])
    assert (e.objective_id, e.objective_ids) == ("old", ["old", "new"])
