from __future__ import annotations

from tola_rates.db import NOTIFY_KEY
from tola_rates.ingestion.models import Reading
from tola_rates.tracking.notify import NOTIFICATION_TITLE, NotifyStateStore, decide

READING = Reading(date="2081-01-01", gold=100000, silver=1200)


def test_first_reading_notifies_everything_without_direction() -> None:
    decision = decide(None, READING)

    assert decision.should_notify
    assert len(decision.messages) == 3
    assert "2081-01-01" in decision.messages[0]
    assert "100000" in decision.messages[1]
    assert "1200" in decision.messages[2]
    assert not any("बढ्यो" in line or "घट्यो" in line for line in decision.messages)


def test_identical_reading_is_suppressed() -> None:
    decision = decide(READING, READING)

    assert not decision.should_notify
    assert decision.messages == []
    assert decision.body == ""


def test_gold_rise_and_silver_fall_carry_direction() -> None:
    reading = Reading(date="2081-01-01", gold=101000, silver=1150)

    decision = decide(READING, reading)

    assert len(decision.messages) == 2
    assert "बढ्यो" in decision.messages[0] and "101000" in decision.messages[0]
    assert "घट्यो" in decision.messages[1] and "1150" in decision.messages[1]


def test_date_change_alone_is_notified() -> None:
    reading = Reading(date="2081-01-02", gold=100000, silver=1200)

    decision = decide(READING, reading)

    assert decision.messages == ["📅 मिति: 2081-01-02"]


def test_scenario_successful_send_advances_state(memory_store, notifier) -> None:
    gate = NotifyStateStore(memory_store)

    first = gate.check_and_notify(READING, notifier.send)
    second = gate.check_and_notify(READING, notifier.send)

    assert first.should_notify and len(first.messages) == 3
    assert not second.should_notify
    assert len(notifier.sent) == 1
    title, body = notifier.sent[0]
    assert title == NOTIFICATION_TITLE
    assert body.split("\n") == first.messages
    assert gate.load() == READING


def test_failed_send_leaves_state_untouched(memory_store, notifier) -> None:
    notifier.succeed = False
    gate = NotifyStateStore(memory_store)

    gate.check_and_notify(READING, notifier.send)
    assert gate.load() is None

    notifier.succeed = True
    retried = gate.check_and_notify(READING, notifier.send)

    assert retried.should_notify
    assert len(notifier.sent) == 2
    assert gate.load() == READING


def test_oscillation_is_notified_twice(memory_store, notifier) -> None:
    gate = NotifyStateStore(memory_store)
    gate.advance(READING)

    gate.check_and_notify(Reading(date="2081-01-01", gold=101000, silver=1200), notifier.send)
    gate.check_and_notify(READING, notifier.send)

    assert len(notifier.sent) == 2
    assert "बढ्यो" in notifier.sent[0][1]
    assert "घट्यो" in notifier.sent[1][1]


def test_state_write_failure_does_not_raise(memory_store, notifier) -> None:
    memory_store.fail_puts.add(NOTIFY_KEY)
    gate = NotifyStateStore(memory_store)

    decision = gate.check_and_notify(READING, notifier.send)

    assert decision.should_notify
    assert len(notifier.sent) == 1
    assert gate.load() is None
