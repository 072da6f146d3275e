"""Hashing helpers for value deduplication."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any


def fingerprint(value: Any) -> str:
    """Return a stable SHA-256 fingerprint for a decoded value.

    The value's type name is folded in so that ``1``, ``1.0`` and ``True`` (or
    an ``Int64`` and a plain ``int``) never collapse into one sample. Mappings
    are ordered by their stringified keys, so any key type is accepted and key
    order does not matter.
    """

    serialized = json.dumps(_canonical(value), default=_fallback)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def _canonical(value: Any) -> Any:
    if isinstance(value, Mapping):
        items = [
            [type(key).__name__, str(key), _canonical(child)]
            for key, child in value.items()
        ]
        items.sort(key=lambda item: (item[0], item[1]))
        return ["mapping", items]
    if isinstance(value, (list, tuple)):
        return [type(value).__name__, [_canonical(item) for item in value]]
    return [type(value).__name__, value]


def _fallback(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    return str(value)
