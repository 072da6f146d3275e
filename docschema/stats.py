"""Per-path and per-kind accumulators."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .kinds import Kind
from .sample import ValueSample


logger = logging.getLogger(__name__)

# (fingerprint, retained copy) of a value prepared before it is committed.
PreparedSample = tuple[str, Any]


@dataclass(slots=True)
class KindStat:
    kind: Kind
    path: str
    sample_size: int
    count: int = 0
    samples: ValueSample = field(init=False)

    def __post_init__(self) -> None:
        self.samples = ValueSample(capacity=self.sample_size)

    def add(self, sample: Optional[PreparedSample], *, counted: bool = True) -> None:
        """Record one value; ``counted`` is False for repeats within a document."""

        if counted:
            self.count += 1
        if sample is not None:
            self.samples.admit(*sample)

    def absorb(self, other: "KindStat") -> None:
        """Fold the counts and samples of another stat for the same kind."""

        self.count += other.count
        self.samples.extend(other.samples)

    def probability(self, field_count: int) -> float:
        if field_count == 0:
            return 0.0
        return self.count / field_count


@dataclass(slots=True)
class FieldStat:
    """Occurrence statistics for one fully qualified field path.

    ``count`` is the number of documents the path appeared in, and each entry
    of ``kinds`` counts the documents in which the path held a value of that
    kind. A path holding only subdocuments has no kinds at all.
    """

    name: str
    path: str
    sample_size: int
    count: int = 0
    kinds: dict[Kind, KindStat] = field(default_factory=dict)

    def mark_present(self) -> None:
        self.count += 1

    def add(self, kind: Kind, sample: Optional[PreparedSample], *, counted: bool = True) -> KindStat:
        """Route a leaf value into the stat for its kind, creating it if new."""

        stat = self.kinds.get(kind)
        if stat is None:
            stat = KindStat(kind=kind, path=self.path, sample_size=self.sample_size)
            self.kinds[kind] = stat
            logger.debug("New kind %s observed at %s", kind.value, self.path)
        stat.add(sample, counted=counted)
        return stat

    def sample_is_full(self, kind: Kind) -> bool:
        stat = self.kinds.get(kind)
        return stat is not None and stat.samples.is_full()

    def absorb(self, other: "FieldStat") -> None:
        self.count += other.count
        for kind, other_stat in other.kinds.items():
            stat = self.kinds.get(kind)
            if stat is None:
                stat = KindStat(kind=kind, path=self.path, sample_size=self.sample_size)
                self.kinds[kind] = stat
            stat.absorb(other_stat)

    def probability(self, document_count: int) -> float:
        if document_count == 0:
            return 0.0
        return self.count / document_count
