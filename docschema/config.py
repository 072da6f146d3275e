"""Configuration for schema models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class ModelConfig:
    """Tunables shared by every statistic owned by a :class:`SchemaModel`."""

    sample_size: int = 10
    path_separator: str = "."

    def __post_init__(self) -> None:
        if self.sample_size < 0:
            raise ValueError("sample size must not be negative")
        if not self.path_separator:
            raise ValueError("path separator must be a non-empty string")

    def join(self, prefix: Optional[str], key: str) -> str:
        """Return the full path of ``key`` below ``prefix``; ``None`` is the root.

        An empty string is a real parent key, so ``{"": {"x": 1}}`` yields
        ``.x`` and never collides with a root-level ``x``.
        """

        if prefix is None:
            return key
        return f"{prefix}{self.path_separator}{key}"
