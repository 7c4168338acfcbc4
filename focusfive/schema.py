# focusfive/schema.py
# JSON Schemas + validator for the on-disk documents (vision, templates, objectives, indicators, day-meta, reviews, observations)

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union
from pathlib import Path

from jsonschema import Draft202012Validator

from .errors import ParseFailure


# ---------------------------
# Public API
# ---------------------------

def get_schema(kind: str) -> Dict[str, Any]:
    """Schema for a document kind ('vision', 'templates', 'objectives', 'indicators', 'day_meta', 'review', 'observation')."""
    try:
        return _SCHEMAS[kind]
    except KeyError:
        raise ValueError(f"unknown document kind: {kind!r}") from None


def validate_document(kind: str, payload: Any, *, where: Optional[Union[str, Path]] = None) -> None:
    """
    Validate a decoded JSON document. Raises ParseFailure with a readable
    message listing (at most five) violations. Unknown keys are allowed.
    """
    validator = _VALIDATORS.get(kind)
    if validator is None:
        raise ValueError(f"unknown document kind: {kind!r}")
    errors = sorted(validator.iter_errors(payload), key=lambda e: [str(p) for p in e.path])
    if not errors:
        return

    msgs: List[str] = []
    for e in errors[:5]:
        path = "$" + "".join(f"[{p!r}]" if isinstance(p, int) else f".{p}" for p in e.path)
        msgs.append(f"{path}: {e.message}")
    more = "" if len(errors) <= 5 else f" (+{len(errors) - 5} more)"
    raise ParseFailure(f"{kind} schema validation failed: " + "; ".join(msgs) + more, path=where)


# ---------------------------
# Internal: schemas
# ---------------------------

_DRAFT = "https://json-schema.org/draft/2020-12/schema"

_DATE = {"type": "string", "pattern": r"^\d{4}-\d{2}-\d{2}"}
_TIMESTAMP = {"type": "string", "minLength": 10}
_OPT_STR = {"type": ["string", "null"]}
_OPT_INT = {"type": ["integer", "null"]}
_OUTCOME = {"enum": ["Work", "Health", "Family"]}
_ACTION_STATUS = {"enum": ["Planned", "InProgress", "Done", "Skipped", "Blocked"]}
_ACTION_ORIGIN = {"enum": ["Manual", "Template", "CarryOver"]}

_UNIT: Dict[str, Any] = {
    "oneOf": [
        {
            "type": "object",
            "properties": {"type": {"enum": ["Count", "Minutes", "Dollars", "Percent"]}},
            "required": ["type"],
        },
        {
            "type": "object",
            "properties": {"type": {"const": "Custom"}, "value": {"type": "string", "minLength": 1}},
            "required": ["type", "value"],
        },
    ]
}

_SCHEMA_VISION: Dict[str, Any] = {
    "$schema": _DRAFT,
    "type": "object",
    "properties": {
        "version": {"type": "integer", "minimum": 1},
        "work": {"type": "string"},
        "health": {"type": "string"},
        "family": {"type": "string"},
        "created": _DATE,
        "modified": _DATE,
    },
    "additionalProperties": True,
}

_SCHEMA_TEMPLATES: Dict[str, Any] = {
    "$schema": _DRAFT,
    "type": "object",
    "properties": {
        "version": {"type": "integer", "minimum": 1},
        "templates": {
            "type": "object",
            "additionalProperties": {"type": "array", "items": {"type": "string"}},
        },
        "created": _DATE,
        "modified": _DATE,
    },
    "additionalProperties": True,
}

_SCHEMA_OBJECTIVE: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "domain": _OUTCOME,
        "title": {"type": "string", "minLength": 1},
        "description": _OPT_STR,
        "start": _DATE,
        "end": {"oneOf": [_DATE, {"type": "null"}]},
        "status": {"enum": ["Active", "Paused", "Completed", "Dropped"]},
        "indicators": {"type": "array", "items": {"type": "string"}},
        "created": _TIMESTAMP,
        "modified": _TIMESTAMP,
        "parent_id": _OPT_STR,
    },
    "required": ["id", "domain", "title"],
}

_SCHEMA_OBJECTIVES: Dict[str, Any] = {
    "$schema": _DRAFT,
    "type": "object",
    "properties": {
        "version": {"type": "integer", "minimum": 1},
        "objectives": {"type": "array", "items": _SCHEMA_OBJECTIVE},
    },
    "additionalProperties": True,
}

_SCHEMA_INDICATOR: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "name": {"type": "string", "minLength": 1},
        "kind": {"enum": ["Leading", "Lagging"]},
        "unit": _UNIT,
        "objective_id": _OPT_STR,
        "target": {"type": ["number", "null"]},
        "direction": {"enum": ["HigherIsBetter", "LowerIsBetter", "WithinRange"]},
        "active": {"type": "boolean"},
        "created": _TIMESTAMP,
        "modified": _TIMESTAMP,
        "lineage_of": _OPT_STR,
        "notes": _OPT_STR,
    },
    "required": ["id", "name", "kind", "unit"],
}

_SCHEMA_INDICATORS: Dict[str, Any] = {
    "$schema": _DRAFT,
    "type": "object",
    "properties": {
        "version": {"type": "integer", "minimum": 1},
        "indicators": {"type": "array", "items": _SCHEMA_INDICATOR},
    },
    "additionalProperties": True,
}

_SCHEMA_ACTION_META: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "status": _ACTION_STATUS,
        "origin": _ACTION_ORIGIN,
        "estimated_min": _OPT_INT,
        "actual_min": _OPT_INT,
        "priority": _OPT_INT,
        "tags": {"type": "array", "items": {"type": "string"}},
        "objective_id": _OPT_STR,
        "objective_ids": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["id"],
}

_SCHEMA_DAY_META: Dict[str, Any] = {
    "$schema": _DRAFT,
    "type": "object",
    "properties": {
        "version": {"type": "integer", "minimum": 1},
        "work": {"type": "array", "items": _SCHEMA_ACTION_META},
        "health": {"type": "array", "items": _SCHEMA_ACTION_META},
        "family": {"type": "array", "items": _SCHEMA_ACTION_META},
        "reflections": {"type": "object", "additionalProperties": {"type": "string"}},
        "created": _TIMESTAMP,
        "modified": _TIMESTAMP,
    },
    "additionalProperties": True,
}

_SCHEMA_REVIEW: Dict[str, Any] = {
    "$schema": _DRAFT,
    "type": "object",
    "properties": {
        "version": {"type": "integer", "minimum": 1},
        "review": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "minLength": 1},
                "date": _DATE,
                "period": {"enum": ["Weekly", "Monthly", "Quarterly"]},
                "notes": _OPT_STR,
                "score_1_to_5": {"type": "integer"},
                "decisions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "summary": {"type": "string"},
                            "objective_id": _OPT_STR,
                            "indicator_id": _OPT_STR,
                            "rationale": _OPT_STR,
                        },
                        "required": ["summary"],
                    },
                },
            },
            "required": ["id", "date"],
        },
    },
    "required": ["review"],
}

_SCHEMA_OBSERVATION: Dict[str, Any] = {
    "$schema": _DRAFT,
    "type": "object",
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "indicator_id": {"type": "string", "minLength": 1},
        "when": _DATE,
        "value": {"type": "number"},
        "unit": _UNIT,
        "source": {"enum": ["Manual", "Automated", "Import"]},
        "action_id": _OPT_STR,
        "note": _OPT_STR,
        "created": _TIMESTAMP,
    },
    "required": ["id", "indicator_id", "when", "value", "unit"],
}

_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "vision": _SCHEMA_VISION,
    "templates": _SCHEMA_TEMPLATES,
    "objectives": _SCHEMA_OBJECTIVES,
    "indicators": _SCHEMA_INDICATORS,
    "day_meta": _SCHEMA_DAY_META,
    "review": _SCHEMA_REVIEW,
    "observation": _SCHEMA_OBSERVATION,
}

_VALIDATORS: Dict[str, Draft202012Validator] = {k: Draft202012Validator(v) for k, v in _SCHEMAS.items()}


__all__ = ["get_schema", "validate_document"]
