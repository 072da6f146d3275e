"""Rendering schema snapshots as JSON or YAML."""

from __future__ import annotations

import decimal
import json
import uuid
from collections.abc import Mapping
from typing import Any

import yaml
from bson import Binary, Decimal128, json_util
from bson.binary import UuidRepresentation
from jsonschema import validate

from .schemas import SNAPSHOT_SCHEMA
from .snapshot import SchemaSnapshot


def snapshot_to_dict(snapshot: SchemaSnapshot) -> dict[str, Any]:
    """Return the snapshot as plain containers ready for Extended JSON."""

    return _prepare(snapshot.to_dict())


def to_json(snapshot: SchemaSnapshot, *, indent: int | None = None, canonical: bool = False) -> str:
    """Render a snapshot as (relaxed, or canonical) MongoDB Extended JSON."""

    options = json_util.CANONICAL_JSON_OPTIONS if canonical else json_util.RELAXED_JSON_OPTIONS
    return json_util.dumps(snapshot_to_dict(snapshot), json_options=options, indent=indent)


def to_yaml(snapshot: SchemaSnapshot) -> str:
    payload = json.loads(to_json(snapshot))
    return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)


def validate_payload(payload: Any) -> None:
    """Check a decoded snapshot payload against ``SNAPSHOT_SCHEMA``."""

    validate(instance=payload, schema=SNAPSHOT_SCHEMA)


def _prepare(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _prepare(child) for key, child in value.items()}
    if isinstance(value, (list, tuple)):
        return [_prepare(item) for item in value]
    if isinstance(value, decimal.Decimal):
        try:
            return Decimal128(value)
        except (decimal.DecimalException, ValueError):
            return str(value)
    if isinstance(value, uuid.UUID):
        return Binary.from_uuid(value, UuidRepresentation.STANDARD)
    if isinstance(value, bytearray):
        return Binary(bytes(value))
    return value
