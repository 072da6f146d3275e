"""Immutable export view of a schema model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .kinds import Kind


@dataclass(frozen=True, slots=True)
class KindView:
    kind: Kind
    path: str
    count: int
    probability: float
    samples: tuple[Any, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "path": self.path,
            "count": self.count,
            "probability": self.probability,
            "samples": list(self.samples),
        }


@dataclass(frozen=True, slots=True)
class FieldView:
    name: str
    path: str
    count: int
    probability: float
    kinds: tuple[KindView, ...]

    def kind(self, kind: Kind | str) -> KindView:
        """Return the view for ``kind`` or raise ``KeyError``."""

        wanted = Kind(kind)
        for view in self.kinds:
            if view.kind is wanted:
                return view
        raise KeyError(f"{self.path!r} has no {wanted.value} values")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "count": self.count,
            "probability": self.probability,
            "kinds": [view.to_dict() for view in self.kinds],
        }


@dataclass(frozen=True, slots=True)
class SchemaSnapshot:
    """Probabilities derived from a model at the moment it was taken.

    Fields and kinds keep first-seen order. The snapshot is detached from the
    model: later ingestion does not change it.
    """

    document_count: int
    fields: tuple[FieldView, ...]

    def field(self, path: str) -> FieldView:
        for view in self.fields:
            if view.path == path:
                return view
        raise KeyError(path)

    def paths(self) -> list[str]:
        return [view.path for view in self.fields]

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.document_count,
            "fields": [view.to_dict() for view in self.fields],
        }
