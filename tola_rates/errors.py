"""Exception hierarchy shared by the ingestion pipeline."""

from __future__ import annotations


class TolaRatesError(Exception):
    """Base class for every error raised by tola_rates."""


class InvalidPayload(TolaRatesError, ValueError):
    """Raised when a raw reading is missing prices or carries non-numeric data."""


class UpstreamUnavailable(TolaRatesError):
    """Raised when the rate source times out or answers with a transport error."""


class PersistenceFailure(TolaRatesError, RuntimeError):
    """Raised when a document store cannot be read or written."""


class ServiceUnavailable(TolaRatesError):
    """Raised when neither live data nor a cached snapshot can be served."""

    def __init__(self, message: str = "Service unavailable") -> None:
        super().__init__(message)
        self.message = message


__all__ = [
    "TolaRatesError",
    "InvalidPayload",
    "UpstreamUnavailable",
    "PersistenceFailure",
    "ServiceUnavailable",
]
