from __future__ import annotations

from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class PendingOperationTracker:
    """Counterpart ids with a mutating operation in flight.

    Only a re-entrancy guard: nothing here is persisted.
    """

    def __init__(self) -> None:
        self._ids: set[Hashable] = set()

    def begin(self, key: Hashable) -> None:
        if key in self._ids:
            raise ValueError("already_pending")
        self._ids.add(key)

    def end(self, key: Hashable) -> None:
        self._ids.discard(key)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._ids

    def snapshot(self) -> frozenset:
        return frozenset(self._ids)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        self.begin(key)
        try:
            yield
        finally:
            self.end(key)

    def __len__(self) -> int:
        return len(self._ids)
