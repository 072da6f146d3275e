"""JSON schema describing the rendered schema snapshot."""

from __future__ import annotations

from .kinds import Kind

_PROBABILITY: dict[str, object] = {"type": "number", "minimum": 0.0, "maximum": 1.0}

KIND_SUMMARY_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "kind": {"type": "string", "enum": [kind.value for kind in Kind if kind.is_leaf]},
        "path": {"type": "string"},
        "count": {"type": "integer", "minimum": 1},
        "probability": _PROBABILITY,
        "samples": {"type": "array"},
    },
    "required": ["kind", "path", "count", "probability", "samples"],
    "additionalProperties": False,
}

FIELD_SUMMARY_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "path": {"type": "string"},
        "count": {"type": "integer", "minimum": 1},
        "probability": _PROBABILITY,
        "kinds": {"type": "array", "items": KIND_SUMMARY_SCHEMA},
    },
    "required": ["name", "path", "count", "probability", "kinds"],
    "additionalProperties": False,
}

SNAPSHOT_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "count": {"type": "integer", "minimum": 1},
        "fields": {"type": "array", "items": FIELD_SUMMARY_SCHEMA},
    },
    "required": ["count", "fields"],
    "additionalProperties": False,
}
