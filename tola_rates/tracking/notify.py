"""Notification gate that only alerts on a genuine change since the last alert."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from tola_rates.db import NOTIFY_KEY
from tola_rates.db.base_backend import DocumentStore
from tola_rates.errors import PersistenceFailure
from tola_rates.ingestion.models import Commodity, Reading
from tola_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

NOTIFICATION_TITLE = "आजको सुन–चाँदी अपडेट"

_LABELS: dict[Commodity, str] = {"gold": "🥇 सुन", "silver": "🥈 चाँदी"}
_UP = "💹 बढ्यो"
_DOWN = "📉 घट्यो"


@dataclass(slots=True)
class NotifyDecision:
    should_notify: bool
    messages: list[str] = field(default_factory=list)

    @property
    def body(self) -> str:
        return "\n".join(self.messages)


def _price_message(commodity: Commodity, reading: Reading, last: Reading | None) -> str:
    price = reading.price(commodity)
    if last is None:
        return f"{_LABELS[commodity]}: रु {price}"
    label = _UP if price > last.price(commodity) else _DOWN
    return f"{_LABELS[commodity]} {label}: रु {price}"


def decide(last_notified: Reading | None, reading: Reading) -> NotifyDecision:
    """Build the alert messages warranted by ``reading``.

    A price that moves and reverts between two ticks is alerted twice; the
    gate only compares against the last reading that was actually sent.
    """

    messages: list[str] = []
    if last_notified is None or last_notified.date != reading.date:
        messages.append(f"📅 मिति: {reading.date}")
    for commodity in ("gold", "silver"):
        if last_notified is None or last_notified.price(commodity) != reading.price(commodity):
            messages.append(_price_message(commodity, reading, last_notified))
    return NotifyDecision(should_notify=bool(messages), messages=messages)


class NotifyStateStore:
    """Sole writer of the ``last_notified`` document."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def load(self) -> Reading | None:
        doc = self._store.get(NOTIFY_KEY)
        return Reading.from_document(doc) if doc else None

    def advance(self, reading: Reading) -> None:
        self._store.put(NOTIFY_KEY, reading.to_document())

    def check_and_notify(
        self, reading: Reading, send: Callable[[str, str], bool]
    ) -> NotifyDecision:
        """Run decide, send and advance as one critical section.

        State moves forward only when ``send`` reports success, so a failed
        delivery is retried on the next tick.
        """

        with self._store.locked(NOTIFY_KEY):
            decision = decide(self.load(), reading)
            if not decision.should_notify:
                LOGGER.debug("No change since last notification for %s", reading.date)
                return decision
            if not send(NOTIFICATION_TITLE, decision.body):
                LOGGER.warning("Notification delivery failed; state left at previous reading")
                return decision
            try:
                self.advance(reading)
            except PersistenceFailure as exc:
                LOGGER.error("Notification sent but state not saved; next tick may repeat it: %s", exc)
                return decision
            LOGGER.info("Notification sent for %s (%s lines)", reading.date, len(decision.messages))
            return decision


__all__ = ["NOTIFICATION_TITLE", "NotifyDecision", "NotifyStateStore", "decide"]
