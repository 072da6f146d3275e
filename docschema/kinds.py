"""Value kind classification."""

from __future__ import annotations

import datetime
import decimal
import re
import uuid
from collections.abc import Mapping
from enum import Enum
from typing import Any

from bson import Binary, DBRef, Decimal128, Int64, ObjectId, Regex, Timestamp
from bson.datetime_ms import DatetimeMS

from .errors import DecodeError, DecodeReason

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class Kind(str, Enum):
    """Closed set of value kinds, in canonical order."""

    NULL = "Null"
    BOOLEAN = "Boolean"
    INT32 = "Int32"
    INT64 = "Int64"
    DOUBLE = "Double"
    DECIMAL = "Decimal"
    STRING = "String"
    BINARY = "Binary"
    OBJECT_ID = "ObjectId"
    DATETIME = "DateTime"
    TIMESTAMP = "Timestamp"
    REGEXP = "RegExp"
    ARRAY = "Array"
    DOCUMENT = "Document"

    @property
    def is_leaf(self) -> bool:
        return self is not Kind.DOCUMENT


def classify(value: Any, *, path: str | None = None) -> Kind:
    """Map a decoded value onto exactly one :class:`Kind`.

    ``bool`` is checked before ``int`` and ``Int64`` before plain integers, so
    subclass relationships never leak into the wrong tag. Plain integers are
    sized by value: 32-bit, then 64-bit, and anything wider is reported as
    ``Decimal`` since BSON has no wider integer.
    """

    if value is None:
        return Kind.NULL
    if isinstance(value, bool):
        return Kind.BOOLEAN
    if isinstance(value, Int64):
        return Kind.INT64
    if isinstance(value, int):
        if _INT32_MIN <= value <= _INT32_MAX:
            return Kind.INT32
        if _INT64_MIN <= value <= _INT64_MAX:
            return Kind.INT64
        return Kind.DECIMAL
    if isinstance(value, float):
        return Kind.DOUBLE
    if isinstance(value, (decimal.Decimal, Decimal128)):
        return Kind.DECIMAL
    if isinstance(value, str):
        return Kind.STRING
    if isinstance(value, (bytes, bytearray, Binary, uuid.UUID)):
        return Kind.BINARY
    if isinstance(value, ObjectId):
        return Kind.OBJECT_ID
    if isinstance(value, (datetime.datetime, DatetimeMS)):
        return Kind.DATETIME
    if isinstance(value, Timestamp):
        return Kind.TIMESTAMP
    if isinstance(value, (Regex, re.Pattern)):
        return Kind.REGEXP
    if isinstance(value, (list, tuple)):
        return Kind.ARRAY
    if isinstance(value, (Mapping, DBRef)):
        return Kind.DOCUMENT
    raise DecodeError(
        f"unsupported value of type {type(value).__name__!r}"
        + (f" at {path!r}" if path else ""),
        reason=DecodeReason.UNSUPPORTED_VALUE,
        path=path,
    )


def document_items(value: Any) -> Mapping[Any, Any]:
    """Return the entries of a value classified as ``Kind.DOCUMENT``.

    A ``DBRef`` is walked as its ``$ref``/``$id``/``$db`` document form.
    """

    if isinstance(value, DBRef):
        return value.as_doc()
    return value
