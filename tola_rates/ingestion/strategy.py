"""Abstractions for pluggable rate sources."""

from __future__ import annotations

from typing import Protocol

from tola_rates.ingestion.models import RawReading


class RateSource(Protocol):
    """Contract for acquiring one raw gold/silver reading.

    Implementations must give up after a bounded timeout and raise
    :class:`~tola_rates.errors.UpstreamUnavailable` (or
    :class:`~tola_rates.errors.InvalidPayload` for malformed responses).
    """

    name: str

    def fetch(self) -> RawReading:
        ...  # pragma: no cover - protocol definition


__all__ = ["RateSource"]
