# focusfive/cli.py
# Command-line interface over the facade (show/set/cycle/add/remove/goal/template/carry-over/streak/stats/observe)

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from .api import DaySession, FocusAPI
from .config import load_config
from .errors import FocusError, SaveReport
from .model import DailyGoals, IndicatorKind, IndicatorUnit, Observation, OutcomeType
from .utils import today
from . import metrics


# ----------------------------- globals/helpers -----------------------------

def _date_from_arg(x: str) -> date:
    try:
        return date.fromisoformat(x.strip())
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {x!r} (expected YYYY-MM-DD)") from None

def _outcome_from_arg(x: str) -> OutcomeType:
    try:
        return OutcomeType.parse(x)
    except FocusError:
        raise argparse.ArgumentTypeError(f"unknown outcome {x!r} (work|health|family)") from None

def _unit_from_arg(x: str) -> IndicatorUnit:
    s = (x or "").strip()
    for kind in IndicatorUnit.KINDS[:-1]:
        if s.lower() == kind.lower():
            return IndicatorUnit(kind)
    return IndicatorUnit.custom(s)

def _mask_from_arg(x: Optional[str]) -> Optional[List[bool]]:
    """'1,0,1' or 'yes,no,yes' -> [True, False, True]; None selects everything."""
    if x is None:
        return None
    return [t.strip().lower() in {"1", "true", "yes", "y", "x"} for t in x.split(",")]

def _goals_to_jsonable(g: DailyGoals) -> Dict[str, Any]:
    return {
        "date": g.date.isoformat(),
        "day_number": g.day_number,
        "outcomes": [
            {
                "type": o.outcome_type.value,
                "goal": o.goal,
                "reflection": o.reflection,
                "actions": [
                    {
                        "id": a.id,
                        "text": a.text,
                        "status": a.status.value,
                        "completed": a.completed,
                        "origin": a.origin.value,
                        "objective_ids": list(a.objective_ids),
                    }
                    for a in o.actions
                ],
            }
            for o in g.outcomes()
        ],
    }

def _observation_to_jsonable(o: Observation) -> Dict[str, Any]:
    return {
        "id": o.id,
        "indicator_id": o.indicator_id,
        "when": o.when.isoformat(),
        "value": o.value,
        "note": o.note,
    }

_STATUS_MARK = {"Planned": " ", "InProgress": "~", "Done": "x", "Skipped": "-", "Blocked": "!"}

def _print_day(g: DailyGoals) -> None:
    head = f"{g.date.isoformat()}"
    if g.day_number:
        head += f"  (Day {g.day_number})"
    print(head)
    for o in g.outcomes():
        title = o.outcome_type.value
        if o.goal:
            title += f" - {o.goal}"
        print(f"\n{title}  [{o.count_completed()}/{len(o.actions)}]")
        for i, a in enumerate(o.actions):
            print(f"  {i}. [{_STATUS_MARK.get(a.status.value, ' ')}] {a.text or '-'}")

def _build_api(args) -> FocusAPI:
    return FocusAPI(load_config(), goals_dir=args.goals_dir, data_root=args.data_root)

def _open(args) -> DaySession:
    return _build_api(args).open_day(args.date or today())

def _finish(session: DaySession, args, message: str) -> int:
    report: SaveReport = session.save()
    for w in session.warnings:
        print(f"warning: {w}", file=sys.stderr)
    if not report.ok:
        print(f"error: {report.summary()}", file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps(_goals_to_jsonable(session.goals), indent=2))
    elif message:
        print(message)
    return 0


# ----------------------------- commands -----------------------------

def cmd_show(args) -> int:
    s = _open(args)
    if s.dirty:
        report: SaveReport = s.save()
        if not report.ok:
            print(f"error: {report.summary()}", file=sys.stderr)
            return 1
    if args.json:
        print(json.dumps(_goals_to_jsonable(s.goals), indent=2))
    else:
        _print_day(s.goals)
    return 0

def cmd_set(args) -> int:
    s = _open(args)
    s.set_action_text(args.outcome, args.index, " ".join(args.text))
    return _finish(s, args, f"set {args.outcome.value}[{args.index}]")

def cmd_cycle(args) -> int:
    s = _open(args)
    status = s.cycle_status(args.outcome, args.index)
    return _finish(s, args, f"{args.outcome.value}[{args.index}] -> {status.value}")

def cmd_add(args) -> int:
    s = _open(args)
    s.add_action(args.outcome, " ".join(args.text or []))
    n = len(s.goals.outcome(args.outcome).actions)
    return _finish(s, args, f"added {args.outcome.value}[{n - 1}]")

def cmd_remove(args) -> int:
    s = _open(args)
    removed = s.remove_action(args.outcome, args.index)
    return _finish(s, args, f"removed {args.outcome.value}[{args.index}] {removed.text!r}")

def cmd_goal(args) -> int:
    s = _open(args)
    s.set_goal(args.outcome, " ".join(args.text))
    return _finish(s, args, f"goal set for {args.outcome.value}")

def cmd_template_save(args) -> int:
    s = _open(args)
    s.add_template(args.name, args.actions)
    return _finish(s, args, f"template {args.name!r} saved")

def cmd_template_apply(args) -> int:
    s = _open(args)
    filled = s.apply_template(args.name, args.outcome)
    return _finish(s, args, f"applied {args.name!r} to {args.outcome.value}: {filled} filled")

def cmd_template_list(args) -> int:
    templates = _build_api(args).load_templates()
    if args.json:
        print(json.dumps({n: templates.get_template(n) for n in templates.template_names()}, indent=2))
        return 0
    if not templates.templates:
        print("(no templates)")
    for name in templates.template_names():
        print(f"{name}: {', '.join(templates.get_template(name) or [])}")
    return 0

def cmd_carry_over(args) -> int:
    s = _open(args)
    carried = s.carry_over(_mask_from_arg(args.mask))
    return _finish(s, args, f"carried over {carried} action(s)")

def cmd_streak(args) -> int:
    n = _build_api(args).streak(args.date or today())
    print(json.dumps({"streak": n}) if args.json else f"streak: {n} day(s)")
    return 0

def cmd_stats(args) -> int:
    s = _open(args)
    st = s.stats()
    if args.json:
        print(json.dumps({
            "completed": st.completed,
            "total": st.total,
            "percentage": st.percentage,
            "by_outcome": [list(x) for x in st.by_outcome],
            "best_outcome": st.best_outcome,
            "needs_attention": st.needs_attention,
        }, indent=2))
        return 0
    print(f"{st.completed}/{st.total} done ({st.percentage}%)")
    for name, done, total in st.by_outcome:
        print(f"  {name}: {done}/{total}")
    if st.best_outcome:
        print(f"best: {st.best_outcome}")
    if st.needs_attention:
        print(f"needs attention: {', '.join(st.needs_attention)}")
    return 0

def cmd_indicator_add(args) -> int:
    s = _open(args)
    ind = s.add_indicator(args.name, args.kind, _unit_from_arg(args.unit),
                          objective_id=args.objective, target=args.target)
    report = s.save()
    if not report.ok:
        print(f"error: {report.summary()}", file=sys.stderr)
        return 1
    print(json.dumps({"id": ind.id}) if args.json else f"created {ind.id} {ind.name}")
    return 0

def cmd_observe(args) -> int:
    s = _open(args)
    obs = s.record_observation(args.indicator_id, args.value, note=args.note)
    print(json.dumps(_observation_to_jsonable(obs)) if args.json else f"recorded {obs.value} for {obs.indicator_id}")
    return 0

def cmd_observations(args) -> int:
    api = _build_api(args)
    items = api.load_observations(args.indicator)
    if args.json:
        print(json.dumps([_observation_to_jsonable(o) for o in items], indent=2))
        return 0
    if not items:
        print("(no observations)")
    for o in items:
        print(f"{o.when.isoformat()}  {o.indicator_id}  {o.value:g}" + (f"  {o.note}" if o.note else ""))
    return 0


# ----------------------------- parser -----------------------------

def _make_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="focusfive", description="FocusFive daily tracker")
    p.add_argument("--goals-dir", help="Directory of daily Markdown files (default: $FOCUSFIVE_GOALS_DIR or ~/FocusFive/goals)")
    p.add_argument("--data-root", help="Directory for JSON documents (default: parent of goals dir)")
    p.add_argument("--date", type=_date_from_arg, help="Day to operate on, YYYY-MM-DD (default: today)")
    p.add_argument("--json", action="store_true", help="JSON output")
    p.add_argument("--metrics", action="store_true", help="Dump Prometheus metrics for this run to stderr")
    sp = p.add_subparsers(dest="cmd", required=True)

    s = sp.add_parser("show", help="Show the day")
    s.set_defaults(func=cmd_show)

    s = sp.add_parser("set", help="Set action text")
    s.add_argument("outcome", type=_outcome_from_arg)
    s.add_argument("index", type=int)
    s.add_argument("text", nargs="+")
    s.set_defaults(func=cmd_set)

    s = sp.add_parser("cycle", help="Cycle action status")
    s.add_argument("outcome", type=_outcome_from_arg)
    s.add_argument("index", type=int)
    s.set_defaults(func=cmd_cycle)

    s = sp.add_parser("add", help="Append an action to an outcome")
    s.add_argument("outcome", type=_outcome_from_arg)
    s.add_argument("text", nargs="*")
    s.set_defaults(func=cmd_add)

    s = sp.add_parser("remove", help="Remove an action by index")
    s.add_argument("outcome", type=_outcome_from_arg)
    s.add_argument("index", type=int)
    s.set_defaults(func=cmd_remove)

    s = sp.add_parser("goal", help="Set an outcome's goal")
    s.add_argument("outcome", type=_outcome_from_arg)
    s.add_argument("text", nargs="+")
    s.set_defaults(func=cmd_goal)

    t = sp.add_parser("template", help="Action templates").add_subparsers(dest="tcmd", required=True)
    s = t.add_parser("save", help="Save a template")
    s.add_argument("name")
    s.add_argument("actions", nargs="+")
    s.set_defaults(func=cmd_template_save)
    s = t.add_parser("apply", help="Apply a template to an outcome")
    s.add_argument("name")
    s.add_argument("outcome", type=_outcome_from_arg)
    s.set_defaults(func=cmd_template_apply)
    s = t.add_parser("list", help="List templates")
    s.set_defaults(func=cmd_template_list)

    s = sp.add_parser("carry-over", help="Copy yesterday's unfinished actions into empty slots")
    s.add_argument("--mask", help="Comma-separated selection over yesterday's actions (Work, Health, Family order)")
    s.set_defaults(func=cmd_carry_over)

    s = sp.add_parser("streak", help="Days in a row with a completed action")
    s.set_defaults(func=cmd_streak)

    s = sp.add_parser("stats", help="Completion statistics for the day")
    s.set_defaults(func=cmd_stats)

    s = sp.add_parser("indicator", help="Define an indicator")
    s.add_argument("name")
    s.add_argument("--kind", default=IndicatorKind.LEADING.value, choices=[k.value for k in IndicatorKind])
    s.add_argument("--unit", default="Count", help="Count|Minutes|Dollars|Percent or a custom label")
    s.add_argument("--target", type=float)
    s.add_argument("--objective", help="Objective id to attach to")
    s.set_defaults(func=cmd_indicator_add)

    s = sp.add_parser("observe", help="Record an indicator observation")
    s.add_argument("indicator_id")
    s.add_argument("value", type=float)
    s.add_argument("--note")
    s.set_defaults(func=cmd_observe)

    s = sp.add_parser("observations", help="List observations")
    s.add_argument("--indicator")
    s.set_defaults(func=cmd_observations)

    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _make_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=load_config().log_level, format="%(levelname)s %(name)s: %(message)s")
    try:
        rc = args.func(args)
    except FocusError as e:
        print(f"error: {e}", file=sys.stderr)
        rc = 1
    except KeyboardInterrupt:
        return 130
    if args.metrics:
        sys.stderr.write(metrics.render().decode("utf-8"))
    return rc


if __name__ == "__main__":
    raise SystemExit(main())
