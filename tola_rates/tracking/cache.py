"""Last-good snapshot cache used when live ingestion fails."""

from __future__ import annotations

from typing import Any

from tola_rates.db import CACHE_KEY
from tola_rates.db.base_backend import DocumentStore

STALE_MESSAGE = "Live server down, showing last update"


class CacheGateway:
    """Last-write/last-read holder of the most recent live response."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get(self) -> dict[str, Any] | None:
        return self._store.get(CACHE_KEY)

    def put(self, snapshot: dict[str, Any]) -> None:
        with self._store.locked(CACHE_KEY):
            self._store.put(CACHE_KEY, dict(snapshot))


def as_stale(snapshot: dict[str, Any], message: str = STALE_MESSAGE) -> dict[str, Any]:
    """Return a copy of ``snapshot`` marked as stale; the cached document is untouched."""

    stale = dict(snapshot)
    stale["status"] = "stale"
    stale["message"] = message
    return stale


__all__ = ["CacheGateway", "STALE_MESSAGE", "as_stale"]
