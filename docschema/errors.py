"""Exception types raised by the schema engine and its decode/encode helpers."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class DecodeReason(str, Enum):
    """Why a value could not be turned into a document for ingestion."""

    NOT_A_DOCUMENT = "not_a_document"
    INVALID_JSON = "invalid_json"
    UNSUPPORTED_VALUE = "unsupported_value"


class SchemaError(RuntimeError):
    """Base class for errors reported by the schema engine."""


class DecodeError(SchemaError):
    """Raised when an input cannot be decoded into an ingestible document."""

    def __init__(
        self,
        message: str,
        *,
        reason: DecodeReason,
        path: Optional[str] = None,
        record: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.path = path
        self.record = record

    def __str__(self) -> str:
        message = super().__str__()
        if self.record is not None:
            message = f"record {self.record}: {message}"
        return message


class EmptyModelError(SchemaError):
    """Raised when a snapshot is requested before any document was ingested."""

    def __init__(self, message: str = "no documents have been ingested") -> None:
        super().__init__(message)
