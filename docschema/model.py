"""Schema aggregation engine."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any, Callable, Iterator, Optional

from . import encode as encode_module
from .config import ModelConfig
from .errors import DecodeError, DecodeReason, EmptyModelError
from .io import DocumentStream, decode_document
from .kinds import Kind, classify, document_items
from .snapshot import FieldView, KindView, SchemaSnapshot
from .stats import FieldStat, PreparedSample
from .utils import fingerprint


logger = logging.getLogger(__name__)

_Step = tuple[str, str, Kind, Optional[PreparedSample]]
ProgressCallback = Callable[[int], None]


class SchemaModel:
    """Accumulate a probabilistic schema across documents.

    The model has a single writer: :meth:`ingest` (and :meth:`merge`) mutate
    it and hold no locks, so callers sharing a model between threads must
    serialise those calls themselves. Fields are keyed by their full path, so
    ``a.name`` and ``b.name`` are tracked independently.
    """

    def __init__(self, config: Optional[ModelConfig] = None) -> None:
        self.config = config or ModelConfig()
        self.document_count = 0
        self.fields: dict[str, FieldStat] = {}

    def ingest(self, document: Any) -> None:
        """Merge one decoded document into the model.

        The document is fully classified, and its sample values fingerprinted
        and copied, before anything is committed, so a failure anywhere in the
        tree leaves the model untouched.
        """

        if not isinstance(document, Mapping):
            raise DecodeError(
                f"expected a document at the root, got {type(document).__name__!r}",
                reason=DecodeReason.NOT_A_DOCUMENT,
            )

        steps = list(self._plan(document, prefix=None))

        self.document_count += 1
        touched: set[str] = set()
        touched_kinds: set[tuple[str, Kind]] = set()
        for path, name, kind, sample in steps:
            stats = self._resolve(path, name)
            # Presence is counted per document, not per occurrence.
            if path not in touched:
                touched.add(path)
                stats.mark_present()
            if kind.is_leaf:
                counted = (path, kind) not in touched_kinds
                touched_kinds.add((path, kind))
                stats.add(kind, sample, counted=counted)

    def ingest_json(self, text: str | bytes) -> None:
        """Decode a JSON or Extended JSON document and ingest it."""

        self.ingest(decode_document(text))

    def merge(self, other: "SchemaModel") -> None:
        """Fold the statistics of ``other`` into this model.

        Counts add up; samples from ``other`` fill any room left under this
        model's bound; paths and kinds new to this model are appended in the
        order ``other`` first saw them.
        """

        if other is self:
            raise ValueError("cannot merge a model into itself")

        self.document_count += other.document_count
        for path, other_stats in other.fields.items():
            stats = self._resolve(path, other_stats.name)
            stats.absorb(other_stats)

    def snapshot(self) -> SchemaSnapshot:
        """Derive field and kind probabilities from the current counts."""

        if self.document_count == 0:
            raise EmptyModelError()

        fields = []
        for stats in self.fields.values():
            kinds = tuple(
                KindView(
                    kind=kind_stats.kind,
                    path=kind_stats.path,
                    count=kind_stats.count,
                    probability=kind_stats.probability(stats.count),
                    samples=tuple(copy.deepcopy(kind_stats.samples.values)),
                )
                for kind_stats in stats.kinds.values()
            )
            fields.append(
                FieldView(
                    name=stats.name,
                    path=stats.path,
                    count=stats.count,
                    probability=stats.probability(self.document_count),
                    kinds=kinds,
                )
            )
        return SchemaSnapshot(document_count=self.document_count, fields=tuple(fields))

    def to_json(self, **kwargs: Any) -> str:
        return encode_module.to_json(self.snapshot(), **kwargs)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, path: object) -> bool:
        return path in self.fields

    def __repr__(self) -> str:
        return f"SchemaModel(documents={self.document_count}, fields={len(self.fields)})"

    def _plan(self, document: Mapping[Any, Any], prefix: Optional[str]) -> Iterator[_Step]:
        for key, value in document.items():
            name = str(key)
            path = self.config.join(prefix, name)
            kind = classify(value, path=path)
            if kind is Kind.DOCUMENT:
                yield path, name, kind, None
                yield from self._plan(document_items(value), path)
            else:
                yield path, name, kind, self._prepare_sample(path, kind, value)

    def _prepare_sample(self, path: str, kind: Kind, value: Any) -> Optional[PreparedSample]:
        stats = self.fields.get(path)
        if self.config.sample_size == 0 or (stats is not None and stats.sample_is_full(kind)):
            return None
        try:
            return fingerprint(value), copy.deepcopy(value)
        except (TypeError, ValueError, RecursionError, copy.Error) as error:
            raise DecodeError(
                f"cannot sample value at {path!r}: {error}",
                reason=DecodeReason.UNSUPPORTED_VALUE,
                path=path,
            ) from error

    def _resolve(self, path: str, name: str) -> FieldStat:
        stats = self.fields.get(path)
        if stats is None:
            stats = FieldStat(name=name, path=path, sample_size=self.config.sample_size)
            self.fields[path] = stats
            logger.debug("New field %s", path)
        return stats


def build_model(
    stream: DocumentStream,
    config: Optional[ModelConfig] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> SchemaModel:
    """Ingest every document of ``stream`` into a fresh model.

    When the stream is configured with ``skip_invalid``, documents holding
    values that cannot be classified are logged and skipped as well.
    """

    model = SchemaModel(config)
    for chunk in stream.iter_chunks():
        for document in chunk:
            try:
                model.ingest(document)
            except DecodeError as error:
                if not stream.config.skip_invalid:
                    raise
                stream.skipped += 1
                logger.warning("Skipping document in %s: %s", stream.path, error)
        if progress_callback is not None:
            progress_callback(len(chunk))
    logger.debug("Ingested %s documents from %s", model.document_count, stream.path)
    return model
