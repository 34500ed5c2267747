"""Ingestion orchestration: fetch, normalise, detect, record, cache and notify."""

from __future__ import annotations

from typing import Any

from tola_rates.db import HISTORY_KEY
from tola_rates.db.base_backend import DocumentStore
from tola_rates.errors import (
    InvalidPayload,
    PersistenceFailure,
    ServiceUnavailable,
    UpstreamUnavailable,
)
from tola_rates.ingestion.models import COMMODITIES, ChangeResult, Commodity, History, Reading
from tola_rates.ingestion.normalizer import normalize
from tola_rates.ingestion.strategy import RateSource
from tola_rates.notifications.onesignal import Notifier
from tola_rates.tracking.cache import CacheGateway, as_stale
from tola_rates.tracking.change import compute_change, last_direction
from tola_rates.tracking.history import DEFAULT_HISTORY_LIMIT, HistoryStore, recent_entries
from tola_rates.tracking.notify import NotifyDecision, NotifyStateStore
from tola_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

RATE_TITLES: dict[Commodity, str] = {"gold": "छापावाल सुन", "silver": "चाँदी"}


def build_response(
    reading: Reading, changes: dict[Commodity, ChangeResult], *, source: str, unit: str
) -> dict[str, Any]:
    """Shape the consumer payload for a live reading."""

    return {
        "source": source,
        "status": "live",
        "date": reading.date,
        "unit": unit,
        "rates": [
            {
                "id": commodity,
                "title": RATE_TITLES[commodity],
                "price": reading.price(commodity),
                **changes[commodity].as_payload(),
            }
            for commodity in COMMODITIES
        ],
    }


class PriceService:
    """Runs the ingestion pipeline against one document store."""

    def __init__(
        self,
        store: DocumentStore,
        source: RateSource,
        *,
        notifier: Notifier | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        carry_forward_direction: bool = True,
    ) -> None:
        self.store = store
        self.source = source
        self.notifier = notifier
        self.carry_forward_direction = carry_forward_direction
        self.history_store = HistoryStore(store, limit=history_limit)
        self.cache = CacheGateway(store)
        self.notify_state = NotifyStateStore(store)

    def fetch_reading(self) -> Reading:
        """Fetch and normalise one reading; raises UpstreamUnavailable/InvalidPayload."""

        return normalize(self.source.fetch())

    def _changes_for(self, reading: Reading, history: History) -> dict[Commodity, ChangeResult]:
        return {
            commodity: compute_change(
                history,
                commodity,
                reading.price(commodity),
                last_direction(history, commodity),
                carry_forward=self.carry_forward_direction,
            )
            for commodity in COMMODITIES
        }

    def ingest(self, reading: Reading) -> dict[str, Any]:
        """Record ``reading`` and return the live payload written to the cache.

        The cache write stays inside the history critical section so the cached
        snapshot always describes the newest history entry.
        """

        with self.store.locked(HISTORY_KEY):
            outcome = self.history_store.record(
                reading, lambda history: self._changes_for(reading, history)
            )
            response = build_response(
                reading, outcome.changes, source=self.source.name, unit=outcome.history.unit
            )
            try:
                self.cache.put(response)
            except PersistenceFailure as exc:
                LOGGER.error("Cache write failed; serving uncached live response: %s", exc)
        return response

    def prices(self) -> dict[str, Any]:
        """Return the live payload, or the cached one marked stale when ingestion fails."""

        try:
            return self.ingest(self.fetch_reading())
        except (UpstreamUnavailable, InvalidPayload, PersistenceFailure) as exc:
            LOGGER.warning("Live fetch failed, using cache: %s", exc)
        try:
            cached = self.cache.get()
        except PersistenceFailure as exc:
            LOGGER.error("Cache read failed: %s", exc)
            cached = None
        if cached is None:
            raise ServiceUnavailable()
        return as_stale(cached)

    def history(self, days: int) -> dict[str, Any]:
        if days <= 0:
            raise ValueError("days must be positive")
        history = self.history_store.load()
        return {
            "unit": history.unit,
            "days": days,
            "data": [entry.to_document() for entry in recent_entries(history, days)],
        }

    def check_and_notify(self, reading: Reading | None = None) -> NotifyDecision:
        """Run the notification gate for ``reading`` (fetched when omitted)."""

        if self.notifier is None:
            raise RuntimeError("No notifier configured")
        current = reading or self.fetch_reading()
        return self.notify_state.check_and_notify(current, self.notifier.send)

    def tick(self, *, notify: bool = True) -> dict[str, Any]:
        """One scheduled cycle: refresh history/cache, then alert on change.

        The notification gate is skipped when the live fetch failed; a stale
        snapshot never triggers an alert.
        """

        try:
            reading = self.fetch_reading()
        except (UpstreamUnavailable, InvalidPayload) as exc:
            LOGGER.error("Scheduled fetch failed: %s", exc)
            return {"status": "error", "message": str(exc)}
        try:
            response = self.ingest(reading)
        except PersistenceFailure as exc:
            LOGGER.error("History unavailable during tick: %s", exc)
            response = {"status": "error", "message": str(exc)}
        if notify and self.notifier is not None:
            try:
                self.check_and_notify(reading)
            except PersistenceFailure as exc:
                LOGGER.error("Notify state unavailable: %s", exc)
        return response


__all__ = ["PriceService", "RATE_TITLES", "build_response"]
