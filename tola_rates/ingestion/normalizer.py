"""Validate raw source payloads into canonical :class:`Reading` objects."""

from __future__ import annotations

import re
from typing import Any, Mapping

from tola_rates.errors import InvalidPayload
from tola_rates.ingestion.models import Reading
from tola_rates.utils.bs_date import format_bs_date, today_date


def parse_price(value: object | None) -> int | float | None:
    """Return a positive price or ``None`` when the value is unusable.

    Numeric values are kept as-is. Strings such as ``"रु 1,52,400"`` are
    reduced to their digits, so decimal separators are not honoured.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number: int | float = value
    else:
        digits = re.sub(r"[^\d]", "", str(value))
        if not digits:
            return None
        number = int(digits)
    if number != number or number <= 0:  # NaN or non-positive
        return None
    return number


def normalize(raw: Mapping[str, Any]) -> Reading:
    """Turn a raw reading into a :class:`Reading` or raise :class:`InvalidPayload`."""

    if not isinstance(raw, Mapping):
        raise InvalidPayload(f"Expected a mapping, got {type(raw).__name__}")
    gold = parse_price(raw.get("gold"))
    silver = parse_price(raw.get("silver"))
    if gold is None or silver is None:
        raise InvalidPayload(
            f"Gold/Silver price missing or non-numeric (gold={raw.get('gold')!r}, "
            f"silver={raw.get('silver')!r})"
        )
    date = format_bs_date(raw.get("date")) or today_date()
    return Reading(date=date, gold=gold, silver=silver)


__all__ = ["normalize", "parse_price"]
