"""Helpers for locating the default SQLite document database."""

from __future__ import annotations

from pathlib import Path
from typing import Final

__all__ = ["DEFAULT_SQLITE_DB_PATH", "HISTORY_KEY", "CACHE_KEY", "NOTIFY_KEY"]

# Resolved against the working directory at import time so the service, the
# CLI and cron ticks launched from the same directory share one database.
DEFAULT_SQLITE_DB_PATH: Final[Path] = (Path.cwd() / "tola_rates.db").resolve()

HISTORY_KEY: Final[str] = "history"
CACHE_KEY: Final[str] = "last_success"
NOTIFY_KEY: Final[str] = "last_notified"
