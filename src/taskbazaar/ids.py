"""Monotonic identifier sequences owned by the marketplace engine.

Identifiers never depend on wall-clock time, so rapid sequential calls
cannot collide and tests see the same ids on every run.
"""

from __future__ import annotations

from typing import Iterable


class IdSequence:
    """Generates prefixed, zero-padded, strictly increasing identifiers.

    Usage:
        tasks = IdSequence("T")
        tasks.next()   # "T-00000001"
        tasks.next()   # "T-00000002"
    """

    def __init__(self, prefix: str, start: int = 0) -> None:
        if not prefix:
            raise ValueError("Id prefix must be non-empty")
        if start < 0:
            raise ValueError("Id sequence start must be >= 0")
        self._prefix = prefix
        self._counter = start

    @property
    def last_issued(self) -> int:
        return self._counter

    def next(self) -> str:
        """Issue the next identifier."""
        self._counter += 1
        return f"{self._prefix}-{self._counter:08d}"

    def skip_past(self, existing_ids: Iterable[str]) -> None:
        """Advance the counter beyond any existing id carrying this prefix.

        Seeded records may use ids from the same namespace; issuing one of
        them again would overwrite a record.
        """
        marker = f"{self._prefix}-"
        for existing in existing_ids:
            if not existing.startswith(marker):
                continue
            suffix = existing[len(marker):]
            if suffix.isdigit():
                self._counter = max(self._counter, int(suffix))
