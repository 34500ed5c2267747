"""Public interface for the tola_rates package."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl, quote, urlencode, urlparse, urlunparse

from tola_rates.config import Settings
from tola_rates.db import DEFAULT_SQLITE_DB_PATH
from tola_rates.db.base_backend import DocumentStore
from tola_rates.errors import (
    InvalidPayload,
    PersistenceFailure,
    ServiceUnavailable,
    TolaRatesError,
    UpstreamUnavailable,
)
from tola_rates.ingestion.models import Direction, History, HistoryEntry, Reading
from tola_rates.ingestion.source import HtmlRateSource, JsonRateSource
from tola_rates.ingestion.strategy import RateSource
from tola_rates.notifications.onesignal import Notifier, OneSignalNotifier
from tola_rates.service import PriceService
from tola_rates.tracking.notify import NotifyDecision

__all__ = [
    "__version__",
    "DatabaseBackend",
    "DatabaseConnectionInfo",
    "Direction",
    "History",
    "HistoryEntry",
    "InvalidPayload",
    "PersistenceFailure",
    "Reading",
    "ServiceUnavailable",
    "Settings",
    "TolaRates",
    "TolaRatesError",
    "UpstreamUnavailable",
]

try:
    __version__ = importlib_metadata.version("tola-rates")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "0.1.0"


class DatabaseBackend(str, Enum):
    """Supported document store engines."""

    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MONGODB = "mongodb"

    @classmethod
    def resolve_backend_and_scheme(cls, scheme: str) -> tuple["DatabaseBackend", str]:
        """Return backend enum + canonical scheme used in connection URLs."""

        if not scheme:
            raise ValueError("DB_URL must include a scheme (e.g. sqlite:// or postgres://)")
        scheme_lower = scheme.lower()
        base_scheme, _, driver = scheme_lower.partition("+")
        if base_scheme in {"postgresql", "postgres"}:
            # Keep driver hints (postgresql+psycopg) for SQLAlchemy.
            return cls.POSTGRES, f"postgresql+{driver}" if driver else "postgresql"
        if base_scheme == "sqlite":
            return cls.SQLITE, "sqlite"
        if base_scheme == "mysql":
            return cls.MYSQL, scheme_lower if driver else "mysql"
        if base_scheme == "mongodb":
            # srv-style schemes route through DNS in pymongo.
            return cls.MONGODB, scheme_lower if driver else "mongodb"
        raise ValueError(
            "Unsupported database backend. Supported values are SQLite, MySQL, "
            "Postgres, and MongoDB."
        )

    @classmethod
    def from_scheme(cls, scheme: str) -> "DatabaseBackend":
        backend, _ = cls.resolve_backend_and_scheme(scheme)
        return backend


@dataclass(slots=True)
class DatabaseConnectionInfo:
    """Where the history, cache and notification documents live."""

    backend: DatabaseBackend
    url: str
    name: str | None = None
    host: str | None = None
    port: int | None = None

    @classmethod
    def sqlite(cls, db_path: str | Path = DEFAULT_SQLITE_DB_PATH) -> "DatabaseConnectionInfo":
        path = Path(db_path).expanduser().resolve()
        return cls(
            backend=DatabaseBackend.SQLITE,
            url=f"sqlite:///{quote(path.as_posix(), safe='/:')}",
            name=str(path),
        )

    @classmethod
    def from_url(cls, url: str) -> "DatabaseConnectionInfo":
        """Create a connection object by parsing a database URL/DSN."""

        cleaned_url, query_db_name = cls._extract_database_name(url)
        parsed = urlparse(cleaned_url)
        if not parsed.scheme:
            raise ValueError("DB_URL must include a scheme (e.g. sqlite:// or postgres://)")
        backend, canonical_scheme = DatabaseBackend.resolve_backend_and_scheme(parsed.scheme)
        if parsed.scheme != canonical_scheme:
            parsed = parsed._replace(scheme=canonical_scheme)
            cleaned_url = urlunparse(parsed)
        if backend is DatabaseBackend.SQLITE:
            # sqlite:///relative.db and sqlite:////abs/path.db both carry the path.
            return cls.sqlite(parsed.path[1:] if parsed.path.startswith("/") else parsed.path)
        name = parsed.path[1:] if parsed.path and parsed.path != "/" else None
        return cls(
            backend=backend,
            url=cleaned_url,
            name=name or query_db_name,
            host=parsed.hostname,
            port=parsed.port,
        )

    @staticmethod
    def _extract_database_name(url: str) -> tuple[str, str | None]:
        """Move a ``DATABASE_NAME=`` query parameter into the URL path."""

        # Hosted MongoDB strings are often pasted with the parameter glued to
        # the previous one, without an ``&`` delimiter.
        patched = re.sub(r"(?i)(?<![?&])DATABASE_NAME=", "&DATABASE_NAME=", url)
        parsed = urlparse(patched)
        remaining: list[tuple[str, str]] = []
        database_name: str | None = None
        for key, value in parse_qsl(parsed.query, keep_blank_values=True):
            if key.lower() == "database_name":
                database_name = value or database_name
                continue
            remaining.append((key, value))
        path = parsed.path
        if (not path or path == "/") and database_name:
            path = f"/{database_name}"
        cleaned = parsed._replace(query=urlencode(remaining, doseq=True), path=path)
        return urlunparse(cleaned), database_name


def build_store(info: DatabaseConnectionInfo) -> DocumentStore:
    """Instantiate and prepare the document store described by ``info``."""

    store: DocumentStore
    if info.backend is DatabaseBackend.SQLITE:
        from tola_rates.db.sqlite_backend import SQLiteBackend

        store = SQLiteBackend(info.name or DEFAULT_SQLITE_DB_PATH)
    elif info.backend is DatabaseBackend.POSTGRES:
        from tola_rates.db.postgres_backend import PostgresBackend

        store = PostgresBackend(info.url)
    elif info.backend is DatabaseBackend.MYSQL:
        from tola_rates.db.mysql_backend import MySQLBackend

        store = MySQLBackend(info.url)
    elif info.backend is DatabaseBackend.MONGODB:
        from tola_rates.db.mongo_backend import MongoBackend

        store = MongoBackend(info.url, database=info.name)
    else:  # pragma: no cover - exhaustive enum
        raise ValueError(f"Unsupported backend: {info.backend}")
    store.ensure_schema()
    return store


class TolaRates:
    """Package facade that wires settings, storage, source and notifier."""

    __slots__ = ("settings", "connection_info", "store", "service")

    __version__ = __version__

    def __init__(
        self,
        db_config: DatabaseConnectionInfo | str | None = None,
        *,
        settings: Settings | None = None,
        source: RateSource | None = None,
        notifier: Notifier | None = None,
        store: DocumentStore | None = None,
    ) -> None:
        """Configure storage and collaborators.

        ``db_config`` accepts a ``DatabaseConnectionInfo`` or a DSN string;
        when omitted the DSN from ``settings.db_url`` is used, falling back to
        a SQLite file in the working directory. ``source`` and ``notifier``
        default to the JSON feed and OneSignal (when credentials are set).
        """

        self.settings = settings or Settings()
        self.connection_info = self._build_connection_info(db_config or self.settings.db_url)
        self.store = store or build_store(self.connection_info)
        self.service = PriceService(
            self.store,
            source or self._build_source(self.settings),
            notifier=notifier or self._build_notifier(self.settings),
            history_limit=self.settings.history_limit,
            carry_forward_direction=self.settings.carry_forward_direction,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "TolaRates":
        return cls(settings=Settings.from_env(), **kwargs)

    @staticmethod
    def _build_connection_info(
        db_config: DatabaseConnectionInfo | str | None,
    ) -> DatabaseConnectionInfo:
        if isinstance(db_config, DatabaseConnectionInfo):
            return db_config
        if isinstance(db_config, str):
            return DatabaseConnectionInfo.from_url(db_config)
        return DatabaseConnectionInfo.sqlite()

    @staticmethod
    def _build_source(settings: Settings) -> RateSource:
        if settings.source_format == "html":
            return HtmlRateSource(settings.source_url, timeout=settings.timeout)
        return JsonRateSource(settings.source_url, timeout=settings.timeout)

    @staticmethod
    def _build_notifier(settings: Settings) -> Notifier | None:
        if not settings.notifications_enabled:
            return None
        return OneSignalNotifier(
            settings.onesignal_app_id or "",
            settings.onesignal_api_key or "",
            android_channel_id=settings.android_channel_id,
            timeout=settings.timeout,
        )

    @property
    def backend(self) -> str:
        return self.connection_info.backend.value

    def prices(self) -> dict[str, Any]:
        """Latest prices; stale cached prices when the source is down."""

        return self.service.prices()

    def history(self, days: int = 7) -> dict[str, Any]:
        """The newest ``days`` history entries in chronological order."""

        return self.service.history(days)

    def notify(self) -> NotifyDecision:
        """Fetch the current reading and alert subscribers if it changed."""

        return self.service.check_and_notify()

    def tick(self, *, notify: bool = True) -> dict[str, Any]:
        """Scheduled refresh of history and cache followed by the notification gate."""

        return self.service.tick(notify=notify)

    def close(self) -> None:
        self.store.close()
