"""Bounded, deduplicated value samples."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Iterator

from .utils import fingerprint


@dataclass(slots=True)
class ValueSample:
    """First-N-distinct sample of the values seen for one (path, kind) pair.

    Once ``capacity`` distinct values are held, further values are dropped;
    nothing is ever evicted, so the cost per sample is fixed no matter how many
    documents are ingested.
    """

    capacity: int
    values: list[Any] = field(default_factory=list)
    _seen: set[str] = field(default_factory=set, repr=False)

    def offer(self, value: Any) -> bool:
        """Retain a copy of ``value`` if there is room and it is not already held."""

        if self.is_full():
            return False
        key = fingerprint(value)
        if key in self._seen:
            return False
        return self.admit(key, copy.deepcopy(value))

    def admit(self, key: str, value: Any) -> bool:
        """Retain a value that was already fingerprinted and copied by the caller."""

        if self.is_full() or key in self._seen:
            return False
        self._seen.add(key)
        self.values.append(value)
        return True

    def extend(self, values: "ValueSample") -> None:
        for value in values:
            if self.is_full():
                break
            self.offer(value)

    def is_full(self) -> bool:
        return len(self.values) >= self.capacity

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)
