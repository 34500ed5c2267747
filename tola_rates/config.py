"""Runtime configuration read from the environment (and optional ``.env`` files)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

from tola_rates.ingestion.source import DEFAULT_SOURCE_URL, DEFAULT_TIMEOUT
from tola_rates.tracking.history import DEFAULT_HISTORY_LIMIT

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str | None, default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {value!r}")


def _parse_positive(name: str, value: str | None, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be numeric, got {value!r}") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be positive")
    return parsed


@dataclass(slots=True)
class Settings:
    """Settings shared by the facade, the CLI and the HTTP app."""

    db_url: str | None = None
    source_url: str = DEFAULT_SOURCE_URL
    source_format: str = "json"
    timeout: float = DEFAULT_TIMEOUT
    history_limit: int = DEFAULT_HISTORY_LIMIT
    carry_forward_direction: bool = True
    onesignal_app_id: str | None = None
    onesignal_api_key: str | None = None
    android_channel_id: str | None = None

    def __post_init__(self) -> None:
        if self.source_format not in {"json", "html"}:
            raise ValueError("source_format must be 'json' or 'html'")
        if self.history_limit <= 0:
            raise ValueError("history_limit must be positive")

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.onesignal_app_id and self.onesignal_api_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ`` after loading ``.env``)."""

        if environ is None:
            load_dotenv()
            environ = os.environ
        return cls(
            db_url=environ.get("TOLA_RATES_DB_URL") or None,
            source_url=environ.get("TOLA_RATES_SOURCE_URL") or DEFAULT_SOURCE_URL,
            source_format=(environ.get("TOLA_RATES_SOURCE_FORMAT") or "json").lower(),
            timeout=_parse_positive(
                "TOLA_RATES_TIMEOUT", environ.get("TOLA_RATES_TIMEOUT"), DEFAULT_TIMEOUT
            ),
            history_limit=int(
                _parse_positive(
                    "TOLA_RATES_HISTORY_LIMIT",
                    environ.get("TOLA_RATES_HISTORY_LIMIT"),
                    DEFAULT_HISTORY_LIMIT,
                )
            ),
            carry_forward_direction=_parse_bool(
                "TOLA_RATES_CARRY_FORWARD_DIRECTION",
                environ.get("TOLA_RATES_CARRY_FORWARD_DIRECTION"),
                True,
            ),
            onesignal_app_id=environ.get("ONESIGNAL_APP_ID") or None,
            onesignal_api_key=environ.get("ONESIGNAL_API_KEY") or None,
            android_channel_id=environ.get("ANDROID_CHANNEL_ID") or None,
        )


__all__ = ["Settings"]
