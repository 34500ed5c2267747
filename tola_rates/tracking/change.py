"""Last-different-value change detection for gold and silver prices.

The reference point for a change is the most recent *differing* historical
value, not simply the previous entry. Consecutive identical readings are
therefore never treated as new baselines, and a day without movement keeps
the trend that was last observed.
"""

from __future__ import annotations

from tola_rates.ingestion.models import ChangeResult, Commodity, Direction, History


def find_last_different(
    history: History, commodity: Commodity, current_value: int | float
) -> int | float | None:
    """Return the newest stored value for ``commodity`` that differs from ``current_value``."""

    for entry in reversed(history.data):
        value = entry.price(commodity)
        if value is not None and value != current_value:
            return value
    return None


def last_direction(history: History, commodity: Commodity) -> Direction:
    """Direction stored on the most recent entry (``same`` for an empty history)."""

    if not history.data:
        return Direction.SAME
    return history.data[-1].direction(commodity)


def calculate_change(
    current: int | float,
    previous: int | float | None,
    last_dir: Direction = Direction.SAME,
    *,
    carry_forward: bool = True,
) -> ChangeResult:
    if previous is None:
        return ChangeResult(previous=None, change=0, percent=0, direction=Direction.SAME)

    diff = current - previous
    if diff == 0:
        direction = last_dir if carry_forward else Direction.SAME
        return ChangeResult(previous=previous, change=0, percent=0, direction=direction)

    change = abs(diff)
    percent = 0 if previous == 0 else round(change / previous * 100, 2)
    return ChangeResult(
        previous=previous,
        change=change,
        percent=percent,
        direction=Direction.UP if diff > 0 else Direction.DOWN,
    )


def compute_change(
    history: History,
    commodity: Commodity,
    current_value: int | float,
    last_dir: Direction,
    *,
    carry_forward: bool = True,
) -> ChangeResult:
    """Combine :func:`find_last_different` and :func:`calculate_change`."""

    previous = find_last_different(history, commodity, current_value)
    return calculate_change(current_value, previous, last_dir, carry_forward=carry_forward)


__all__ = ["calculate_change", "compute_change", "find_last_different", "last_direction"]
