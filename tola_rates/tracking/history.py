"""Bounded, date-deduplicated history of accepted readings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping

from tola_rates.db import HISTORY_KEY
from tola_rates.db.base_backend import DocumentStore
from tola_rates.errors import PersistenceFailure
from tola_rates.ingestion.models import (
    ChangeResult,
    Commodity,
    Direction,
    History,
    HistoryEntry,
    Reading,
)
from tola_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 60


def last_entry(history: History) -> HistoryEntry | None:
    return history.data[-1] if history.data else None


def recent_entries(history: History, n: int) -> list[HistoryEntry]:
    """Return the newest ``n`` entries in chronological order."""

    if n <= 0:
        return []
    return list(history.data[-n:])


def should_record(history: History, reading: Reading) -> bool:
    """True when ``reading`` carries a new date or moves either price."""

    last = last_entry(history)
    if last is None or not any(entry.date == reading.date for entry in history.data):
        return True
    return last.gold != reading.gold or last.silver != reading.silver


def append_entry(
    history: History,
    reading: Reading,
    directions: Mapping[Commodity, Direction],
    *,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> History:
    """Return a new history with ``reading`` appended.

    A stored entry with the same date is removed first, and only the newest
    ``limit`` entries are kept afterwards.
    """

    if limit <= 0:
        raise ValueError("limit must be positive")
    data = [entry for entry in history.data if entry.date != reading.date]
    data.append(
        HistoryEntry(
            date=reading.date,
            gold=reading.gold,
            silver=reading.silver,
            gold_direction=directions.get("gold", Direction.SAME),
            silver_direction=directions.get("silver", Direction.SAME),
        )
    )
    if len(data) > limit:
        data = data[-limit:]
    return History(unit=history.unit, data=data)


@dataclass(slots=True)
class RecordOutcome:
    """What happened during a :meth:`HistoryStore.record` cycle."""

    changes: dict[Commodity, ChangeResult]
    history: History
    recorded: bool = False
    persisted: bool = True
    errors: list[str] = field(default_factory=list)


class HistoryStore:
    """Sole writer of the ``history`` document."""

    def __init__(self, store: DocumentStore, *, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        self._store = store
        self.limit = limit

    def load(self) -> History:
        doc = self._store.get(HISTORY_KEY)
        try:
            return History.from_document(doc)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Stored history document is malformed: {exc!r}") from exc

    def record(
        self,
        reading: Reading,
        compute: Callable[[History], dict[Commodity, ChangeResult]],
    ) -> RecordOutcome:
        """Compute changes against the stored history and append ``reading``.

        Load, compute, conditional append and save run under the history lock.
        A failed load raises :class:`PersistenceFailure`; a failed save is
        logged and reported through ``RecordOutcome.persisted``.
        """

        with self._store.locked(HISTORY_KEY):
            history = self.load()
            changes = compute(history)
            outcome = RecordOutcome(changes=changes, history=history)
            if not should_record(history, reading):
                return outcome
            updated = append_entry(
                history,
                reading,
                {commodity: result.direction for commodity, result in changes.items()},
                limit=self.limit,
            )
            outcome.recorded = True
            outcome.history = updated
            try:
                self._store.put(HISTORY_KEY, updated.to_document())
            except PersistenceFailure as exc:
                LOGGER.error("History write failed for %s; state may diverge: %s", reading.date, exc)
                outcome.persisted = False
                outcome.errors.append(str(exc))
            else:
                LOGGER.info("History updated for %s (%s entries)", reading.date, len(updated))
            return outcome


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "HistoryStore",
    "RecordOutcome",
    "append_entry",
    "last_entry",
    "recent_entries",
    "should_record",
]
