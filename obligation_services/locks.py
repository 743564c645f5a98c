"""
obligation_services.locks -- Per-definition mutual exclusion.

Responsibility:
    Hand out one re-entrant lock per definition id so that every mutation
    of a definition's occurrences and balance runs single-writer, while
    different definitions proceed in parallel.

Invariants enforced:
    - ``lock_for(id)`` returns the same lock object for the same id until
      ``discard(id)`` is called.
    - Lock creation is itself guarded, so two threads racing on a new id
      receive the same lock.

Non-goals:
    - Cross-process exclusion.  Multiple processes rely on the
      ``SELECT ... FOR UPDATE`` of the definition row (PostgreSQL).
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID


class DefinitionLockRegistry:
    """Registry of re-entrant locks keyed by definition id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[UUID, threading.RLock] = {}

    def lock_for(self, definition_id: UUID) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(definition_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[definition_id] = lock
            return lock

    @contextmanager
    def hold(self, definition_id: UUID) -> Iterator[None]:
        """Hold the definition's lock for the duration of the block."""
        with self.lock_for(definition_id):
            yield

    def discard(self, definition_id: UUID) -> None:
        """Forget the lock of a deleted definition."""
        with self._guard:
            self._locks.pop(definition_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
