"""Helpers for Bikram Sambat date strings published by Nepali rate sources."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Final

BS_MONTHS: Final[dict[str, str]] = {
    "baishakh": "01",
    "jestha": "02",
    "ashadh": "03",
    "shrawan": "04",
    "bhadra": "05",
    "ashwin": "06",
    "kartik": "07",
    "mangsir": "08",
    "poush": "09",
    "magh": "10",
    "falgun": "11",
    "chaitra": "12",
}

_ISO_PATTERN = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*$")
_DAY_FIRST_PATTERN = re.compile(r"(\d{1,2})\s+([A-Za-z]+)\s*,?\s+(\d{4})")
_MONTH_FIRST_PATTERN = re.compile(r"([A-Za-z]+)\s+(\d{1,2})\s*,?\s+(\d{4})")


def today_date() -> str:
    """Return today's calendar date as ``YYYY-MM-DD`` (UTC)."""

    return datetime.now(timezone.utc).date().isoformat()


def _compose(year: str, month: str, day: str) -> str | None:
    month_num, day_num = int(month), int(day)
    # BS months run up to 32 days.
    if not (1 <= month_num <= 12 and 1 <= day_num <= 32):
        return None
    return f"{year}-{month_num:02d}-{day_num:02d}"


def format_bs_date(value: str | None) -> str | None:
    """Normalise a BS date into ``YYYY-MM-DD``.

    Accepts ISO-style strings (``2081-10-5``) as well as the long forms
    printed by FENEGOSIDA (``5 Magh 2081`` or ``Magh 5, 2081``). Returns
    ``None`` when the value cannot be interpreted.
    """

    if not value:
        return None
    text = str(value).strip()
    iso = _ISO_PATTERN.match(text)
    if iso:
        return _compose(*iso.groups())
    day_first = _DAY_FIRST_PATTERN.search(text)
    if day_first:
        day, month_name, year = day_first.groups()
        month = BS_MONTHS.get(month_name.lower())
        if month:
            return _compose(year, month, day)
    month_first = _MONTH_FIRST_PATTERN.search(text)
    if month_first:
        month_name, day, year = month_first.groups()
        month = BS_MONTHS.get(month_name.lower())
        if month:
            return _compose(year, month, day)
    return None


__all__ = ["BS_MONTHS", "format_bs_date", "today_date"]
