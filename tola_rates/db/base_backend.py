"""Document store interface shared by every persistence backend."""

from __future__ import annotations

import threading
import time
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator

from tola_rates.errors import PersistenceFailure
from tola_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

Document = dict[str, Any]


class DocumentStore(ABC):
    """Key-value store of JSON documents with per-key critical sections.

    ``get``/``put`` are plain reads and writes. Callers that need a
    read-modify-write cycle wrap it in :meth:`locked` so that two triggers
    never interleave on the same key, whether they run in this process or in
    another one sharing the database (an API server and a cron tick).

    :meth:`locked` takes a process-local re-entrant lock and then a lease
    through :meth:`try_lease`. Backends shared between processes store the
    lease next to the documents; the default lease always succeeds.
    """

    lease_ttl: float = 60.0
    lease_wait: float = 30.0
    lease_poll: float = 0.05

    def __init__(self) -> None:
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self._depth: dict[str, int] = {}

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create required tables/collections and verify connectivity."""

    @abstractmethod
    def get(self, key: str) -> Document | None:
        """Return the document stored under ``key`` or ``None``."""

    @abstractmethod
    def put(self, key: str, document: Document) -> None:
        """Replace the document stored under ``key``."""

    def try_lease(self, key: str, token: str, expires_at: float) -> bool:
        """Claim the lease on ``key`` until ``expires_at`` (epoch seconds).

        Returns ``False`` while another holder's lease is still valid.
        """

        return True

    def release_lease(self, key: str, token: str) -> None:
        """Drop the lease on ``key`` if ``token`` still holds it."""

    def _lock_for(self, key: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    def _acquire_lease(self, key: str) -> str:
        token = uuid.uuid4().hex
        deadline = time.monotonic() + self.lease_wait
        while not self.try_lease(key, token, time.time() + self.lease_ttl):
            if time.monotonic() >= deadline:
                raise PersistenceFailure(f"Timed out waiting for the {key!r} lease")
            time.sleep(self.lease_poll)
        return token

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """Hold the lock guarding ``key`` for the duration of the block."""

        with self._lock_for(key):
            # Only the thread holding the RLock touches its depth entry.
            depth = self._depth.get(key, 0)
            token = self._acquire_lease(key) if depth == 0 else None
            self._depth[key] = depth + 1
            try:
                yield
            finally:
                self._depth[key] = depth
                if token is not None:
                    try:
                        self.release_lease(key, token)
                    except PersistenceFailure as exc:
                        LOGGER.error("Lease on %s not released, it expires on its own: %s", key, exc)

    def close(self) -> None:  # pragma: no cover - optional cleanup hook
        """Backends may override to release connections/resources."""


__all__ = ["Document", "DocumentStore"]
