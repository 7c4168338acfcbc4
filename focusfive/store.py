# focusfive/store.py
# Versioned JSON documents under the data root: codecs (to/from dict) + load-or-default / atomic save per document

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .atomic import atomic_write_text, read_text
from .errors import FocusError, InvariantViolation, ParseFailure
from .model import (
    DOCUMENT_VERSION,
    MAX_ACTION_LENGTH,
    MAX_TEMPLATE_ACTIONS,
    MAX_VISION_LENGTH,
    META_VERSION,
    ActionMeta,
    ActionOrigin,
    ActionStatus,
    ActionTemplates,
    DayMeta,
    Decision,
    FiveYearVision,
    IndicatorDef,
    IndicatorDirection,
    IndicatorKind,
    IndicatorUnit,
    IndicatorsData,
    Objective,
    ObjectiveStatus,
    ObjectivesData,
    Observation,
    ObservationSource,
    OutcomeType,
    Review,
    ReviewPeriod,
)
from .schema import validate_document
from .utils import clamp_text, iso, iso_date, iso_week_id, parse_date, parse_iso, today, utcnow
from . import metrics

logger = logging.getLogger(__name__)

VISION_FILE = "vision.json"
TEMPLATES_FILE = "templates.json"
OBJECTIVES_FILE = "objectives.json"
INDICATORS_FILE = "indicators.json"
META_DIR = "meta"
REVIEWS_DIR = "reviews"


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------

def vision_to_dict(v: FiveYearVision) -> Dict[str, Any]:
    return {
        "version": DOCUMENT_VERSION,
        "work": v.work,
        "health": v.health,
        "family": v.family,
        "created": iso_date(v.created),
        "modified": iso_date(v.modified),
    }

def vision_from_dict(d: Dict[str, Any]) -> FiveYearVision:
    return FiveYearVision(
        work=clamp_text(str(d.get("work") or ""), MAX_VISION_LENGTH, what="work vision")[0],
        health=clamp_text(str(d.get("health") or ""), MAX_VISION_LENGTH, what="health vision")[0],
        family=clamp_text(str(d.get("family") or ""), MAX_VISION_LENGTH, what="family vision")[0],
        created=parse_date(d.get("created")) or today(),
        modified=parse_date(d.get("modified")) or today(),
    )

def templates_to_dict(t: ActionTemplates) -> Dict[str, Any]:
    return {
        "version": DOCUMENT_VERSION,
        "templates": {name: list(t.templates[name]) for name in t.template_names()},
        "created": iso_date(t.created),
        "modified": iso_date(t.modified),
    }

def templates_from_dict(d: Dict[str, Any]) -> ActionTemplates:
    out = ActionTemplates(
        created=parse_date(d.get("created")) or today(),
        modified=parse_date(d.get("modified")) or today(),
    )
    for name, actions in (d.get("templates") or {}).items():
        actions = [str(a) for a in actions or []]
        if not actions:
            logger.warning("skipping empty template %r", name)
            continue
        if len(actions) > MAX_TEMPLATE_ACTIONS:
            logger.warning("template %r truncated from %d to %d actions", name, len(actions), MAX_TEMPLATE_ACTIONS)
        out.templates[str(name)] = [
            clamp_text(a, MAX_ACTION_LENGTH, what=f"template {name!r} action")[0]
            for a in actions[:MAX_TEMPLATE_ACTIONS]
        ]
    return out

def unit_to_dict(u: IndicatorUnit) -> Dict[str, Any]:
    if u.kind == "Custom":
        return {"type": "Custom", "value": u.label}
    return {"type": u.kind}

def unit_from_dict(d: Any) -> IndicatorUnit:
    if isinstance(d, str):
        return IndicatorUnit(d)
    d = dict(d or {})
    return IndicatorUnit(str(d.get("type") or "Count"), d.get("value"))

def objective_to_dict(o: Objective) -> Dict[str, Any]:
    return {
        "id": o.id,
        "domain": o.domain.value,
        "title": o.title,
        "description": o.description,
        "start": iso_date(o.start),
        "end": iso_date(o.end),
        "status": o.status.value,
        "indicators": list(o.indicators),
        "created": iso(o.created),
        "modified": iso(o.modified),
        "parent_id": o.parent_id,
    }

def objective_from_dict(d: Dict[str, Any]) -> Objective:
    return Objective(
        id=str(d["id"]),
        domain=OutcomeType.parse(d.get("domain", "Work")),
        title=str(d.get("title", "")),
        description=d.get("description"),
        start=parse_date(d.get("start")) or today(),
        end=parse_date(d.get("end")),
        status=ObjectiveStatus(d.get("status") or ObjectiveStatus.ACTIVE.value),
        indicators=[str(x) for x in d.get("indicators") or []],
        created=parse_iso(d.get("created")) or utcnow(),
        modified=parse_iso(d.get("modified")) or utcnow(),
        parent_id=d.get("parent_id"),
    )

def indicator_to_dict(i: IndicatorDef) -> Dict[str, Any]:
    return {
        "id": i.id,
        "name": i.name,
        "kind": i.kind.value,
        "unit": unit_to_dict(i.unit),
        "objective_id": i.objective_id,
        "target": i.target,
        "direction": i.direction.value,
        "active": i.active,
        "created": iso(i.created),
        "modified": iso(i.modified),
        "lineage_of": i.lineage_of,
        "notes": i.notes,
    }

def indicator_from_dict(d: Dict[str, Any]) -> IndicatorDef:
    target = d.get("target")
    return IndicatorDef(
        id=str(d["id"]),
        name=str(d.get("name", "")),
        kind=IndicatorKind(d.get("kind") or IndicatorKind.LEADING.value),
        unit=unit_from_dict(d.get("unit")),
        objective_id=d.get("objective_id"),
        target=float(target) if target is not None else None,
        direction=IndicatorDirection(d.get("direction") or IndicatorDirection.HIGHER_IS_BETTER.value),
        active=bool(d.get("active", True)),
        created=parse_iso(d.get("created")) or utcnow(),
        modified=parse_iso(d.get("modified")) or utcnow(),
        lineage_of=d.get("lineage_of"),
        notes=d.get("notes"),
    )

def observation_to_dict(o: Observation) -> Dict[str, Any]:
    return {
        "id": o.id,
        "indicator_id": o.indicator_id,
        "when": iso_date(o.when),
        "value": o.value,
        "unit": unit_to_dict(o.unit),
        "source": o.source.value,
        "action_id": o.action_id,
        "note": o.note,
        "created": iso(o.created),
    }

def observation_from_dict(d: Dict[str, Any]) -> Observation:
    when = parse_date(d.get("when"))
    if when is None:
        raise ValueError(f"observation {d.get('id')!r} has no valid 'when' date")
    return Observation(
        id=str(d["id"]),
        indicator_id=str(d["indicator_id"]),
        when=when,
        value=float(d["value"]),
        unit=unit_from_dict(d.get("unit")),
        source=ObservationSource(d.get("source") or ObservationSource.MANUAL.value),
        action_id=d.get("action_id"),
        note=d.get("note"),
        created=parse_iso(d.get("created")) or utcnow(),
    )

def action_meta_to_dict(m: ActionMeta) -> Dict[str, Any]:
    return {
        "id": m.id,
        "status": m.status.value,
        "origin": m.origin.value,
        "estimated_min": m.estimated_min,
        "actual_min": m.actual_min,
        "priority": m.priority,
        "tags": list(m.tags),
        "objective_id": m.objective_id,
        "objective_ids": list(m.objective_ids),
    }

def action_meta_from_dict(d: Dict[str, Any]) -> ActionMeta:
    return ActionMeta(
        id=str(d["id"]),
        status=ActionStatus(d.get("status") or ActionStatus.PLANNED.value),
        origin=ActionOrigin(d.get("origin") or ActionOrigin.MANUAL.value),
        estimated_min=d.get("estimated_min"),
        actual_min=d.get("actual_min"),
        priority=d.get("priority"),
        tags=[str(t) for t in d.get("tags") or []],
        objective_id=d.get("objective_id"),
        objective_ids=[str(x) for x in d.get("objective_ids") or []],
    )

def day_meta_to_dict(m: DayMeta) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "version": m.version,
        "work": [action_meta_to_dict(x) for x in m.work],
        "health": [action_meta_to_dict(x) for x in m.health],
        "family": [action_meta_to_dict(x) for x in m.family],
        "created": iso(m.created),
        "modified": iso(m.modified),
    }
    if m.reflections:
        out["reflections"] = dict(m.reflections)
    return out

def day_meta_from_dict(d: Dict[str, Any]) -> DayMeta:
    return DayMeta(
        version=int(d.get("version") or META_VERSION),
        work=[action_meta_from_dict(x) for x in d.get("work") or []],
        health=[action_meta_from_dict(x) for x in d.get("health") or []],
        family=[action_meta_from_dict(x) for x in d.get("family") or []],
        reflections={str(k): str(v) for k, v in (d.get("reflections") or {}).items() if v},
        created=parse_iso(d.get("created")) or utcnow(),
        modified=parse_iso(d.get("modified")) or utcnow(),
    )

def review_to_dict(r: Review) -> Dict[str, Any]:
    return {
        "version": DOCUMENT_VERSION,
        "review": {
            "id": r.id,
            "date": iso_date(r.date),
            "period": r.period.value,
            "notes": r.notes,
            "score_1_to_5": r.score_1_to_5,
            "decisions": [
                {
                    "summary": x.summary,
                    "objective_id": x.objective_id,
                    "indicator_id": x.indicator_id,
                    "rationale": x.rationale,
                }
                for x in r.decisions
            ],
        },
    }

def review_from_dict(d: Dict[str, Any]) -> Review:
    r = dict(d.get("review") or {})
    day = parse_date(r.get("date"))
    if day is None:
        raise ValueError("review has no valid 'date'")
    return Review(
        id=str(r["id"]),
        date=day,
        period=ReviewPeriod(r.get("period") or ReviewPeriod.WEEKLY.value),
        notes=r.get("notes"),
        score_1_to_5=int(r.get("score_1_to_5") or 3),
        decisions=[
            Decision(
                summary=str(x.get("summary", "")),
                objective_id=x.get("objective_id"),
                indicator_id=x.get("indicator_id"),
                rationale=x.get("rationale"),
            )
            for x in r.get("decisions") or []
        ],
    )

def objectives_to_dict(data: ObjectivesData) -> Dict[str, Any]:
    return {"version": data.version, "objectives": [objective_to_dict(o) for o in data.objectives]}

def objectives_from_dict(d: Dict[str, Any]) -> ObjectivesData:
    return ObjectivesData(
        version=int(d.get("version") or DOCUMENT_VERSION),
        objectives=[objective_from_dict(x) for x in d.get("objectives") or []],
    )

def indicators_to_dict(data: IndicatorsData) -> Dict[str, Any]:
    return {"version": data.version, "indicators": [indicator_to_dict(i) for i in data.indicators]}

def indicators_from_dict(d: Dict[str, Any]) -> IndicatorsData:
    return IndicatorsData(
        version=int(d.get("version") or DOCUMENT_VERSION),
        indicators=[indicator_from_dict(x) for x in d.get("indicators") or []],
    )


# ---------------------------------------------------------------------------
# Raw document I/O
# ---------------------------------------------------------------------------

def load_document(path: Union[str, Path], kind: str) -> Optional[Dict[str, Any]]:
    """
    Read + decode + schema-check one JSON document.
    Returns None when the file is absent; raises ParseFailure/EncodingFailure/IoFailure otherwise.
    """
    p = Path(path)
    if not p.exists():
        return None
    text = read_text(p)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        metrics.record_parse(kind, False)
        raise ParseFailure(f"invalid JSON: {e.msg} (column {e.colno})", path=p, line=e.lineno) from e
    try:
        validate_document(kind, payload, where=p)
    except ParseFailure:
        metrics.record_parse(kind, False)
        raise
    metrics.record_parse(kind, True)
    return payload

def save_document(path: Union[str, Path], payload: Dict[str, Any]) -> Path:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    return atomic_write_text(path, text + "\n")


class JsonDocumentStore:
    """
    Load-or-default / save for every JSON document under one data root.

    Layout:
      data_root/
        vision.json  templates.json  objectives.json  indicators.json
        meta/<YYYY-MM-DD>.meta.json
        reviews/<YYYY>-W<ww>.json

    Absent files load as defaults. Present-but-broken files raise
    ParseFailure; the caller decides whether to overwrite them.
    """

    def __init__(self, data_root: Union[str, Path]):
        self.root = Path(data_root)

    # ---------------- paths ----------------

    def paths(self) -> Dict[str, str]:
        return {
            "root": str(self.root),
            "vision": str(self.vision_path),
            "templates": str(self.templates_path),
            "objectives": str(self.objectives_path),
            "indicators": str(self.indicators_path),
            "meta": str(self.root / META_DIR),
            "reviews": str(self.root / REVIEWS_DIR),
        }

    @property
    def vision_path(self) -> Path:
        return self.root / VISION_FILE

    @property
    def templates_path(self) -> Path:
        return self.root / TEMPLATES_FILE

    @property
    def objectives_path(self) -> Path:
        return self.root / OBJECTIVES_FILE

    @property
    def indicators_path(self) -> Path:
        return self.root / INDICATORS_FILE

    def meta_path(self, day: date) -> Path:
        return self.root / META_DIR / f"{day.isoformat()}.meta.json"

    def review_path(self, day: date) -> Path:
        return self.root / REVIEWS_DIR / f"{iso_week_id(day)}.json"

    # ---------------- generic ----------------

    def _load(self, path: Path, kind: str, decode, default):
        try:
            payload = load_document(path, kind)
            if payload is None:
                return default()
            return decode(payload)
        except (KeyError, TypeError, ValueError, InvariantViolation) as e:
            metrics.record_parse(kind, False)
            raise ParseFailure(f"malformed {kind} document: {e}", path=path).with_context(f"load {kind}", path) from e
        except FocusError as e:
            raise e.with_context(f"load {kind}", path)

    def _save(self, path: Path, kind: str, payload: Dict[str, Any]) -> Path:
        try:
            out = save_document(path, payload)
        except FocusError as e:
            raise e.with_context(f"save {kind}", path)
        logger.debug("saved %s to %s", kind, out)
        return out

    # ---------------- vision / templates ----------------

    def load_vision(self) -> FiveYearVision:
        return self._load(self.vision_path, "vision", vision_from_dict, FiveYearVision)

    def save_vision(self, vision: FiveYearVision) -> Path:
        return self._save(self.vision_path, "vision", vision_to_dict(vision))

    def load_templates(self) -> ActionTemplates:
        return self._load(self.templates_path, "templates", templates_from_dict, ActionTemplates)

    def save_templates(self, templates: ActionTemplates) -> Path:
        return self._save(self.templates_path, "templates", templates_to_dict(templates))

    # ---------------- objectives / indicators ----------------

    def load_objectives(self) -> ObjectivesData:
        return self._load(self.objectives_path, "objectives", objectives_from_dict, ObjectivesData)

    def save_objectives(self, data: ObjectivesData) -> Path:
        return self._save(self.objectives_path, "objectives", objectives_to_dict(data))

    def load_indicators(self) -> IndicatorsData:
        return self._load(self.indicators_path, "indicators", indicators_from_dict, IndicatorsData)

    def save_indicators(self, data: IndicatorsData) -> Path:
        return self._save(self.indicators_path, "indicators", indicators_to_dict(data))

    # ---------------- day meta ----------------

    def load_day_meta(self, day: date) -> Optional[DayMeta]:
        """The sidecar for `day`, or None when it does not exist yet."""
        return self._load(self.meta_path(day), "day_meta", day_meta_from_dict, lambda: None)

    def save_day_meta(self, day: date, meta: DayMeta) -> Path:
        return self._save(self.meta_path(day), "day_meta", day_meta_to_dict(meta))

    # ---------------- reviews ----------------

    def load_review(self, day: date) -> Optional[Review]:
        return self._load(self.review_path(day), "review", review_from_dict, lambda: None)

    def save_review(self, review: Review) -> Path:
        return self._save(self.review_path(review.date), "review", review_to_dict(review))

    def list_reviews(self) -> List[Review]:
        d = self.root / REVIEWS_DIR
        if not d.is_dir():
            return []
        out: List[Review] = []
        for p in sorted(d.glob("*.json")):
            r = self._load(p, "review", review_from_dict, lambda: None)
            if r is not None:
                out.append(r)
        return out


__all__ = [
    "JsonDocumentStore",
    "load_document",
    "save_document",
    "vision_to_dict",
    "vision_from_dict",
    "templates_to_dict",
    "templates_from_dict",
    "unit_to_dict",
    "unit_from_dict",
    "objective_to_dict",
    "objective_from_dict",
    "indicator_to_dict",
    "indicator_from_dict",
    "observation_to_dict",
    "observation_from_dict",
    "action_meta_to_dict",
    "action_meta_from_dict",
    "day_meta_to_dict",
    "day_meta_from_dict",
    "review_to_dict",
    "review_from_dict",
    "objectives_to_dict",
    "objectives_from_dict",
    "indicators_to_dict",
    "indicators_from_dict",
]
