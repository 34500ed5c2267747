"""Shared logic for SQL (Postgres/MySQL) document stores."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tola_rates.db.base_backend import Document, DocumentStore
from tola_rates.errors import PersistenceFailure
from tola_rates.utils.logger import get_logger

if TYPE_CHECKING:  # pragma: no cover - type checker helper
    from sqlalchemy.engine import Engine
else:  # pragma: no cover - fallback type used at runtime
    Engine = Any

LOGGER = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tola_documents (
    doc_key VARCHAR(64) NOT NULL PRIMARY KEY,
    body TEXT NOT NULL,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

LEASE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tola_leases (
    lease_key VARCHAR(64) NOT NULL PRIMARY KEY,
    token VARCHAR(32) NOT NULL,
    expires_at DOUBLE PRECISION NOT NULL
);
"""

SELECT_SQL = "SELECT body FROM tola_documents WHERE doc_key = :doc_key"
DELETE_SQL = "DELETE FROM tola_documents WHERE doc_key = :doc_key"
INSERT_SQL = """
INSERT INTO tola_documents(doc_key, body, updated_at)
VALUES(:doc_key, :body, :updated_at)
"""
LEASE_EXPIRE_SQL = "DELETE FROM tola_leases WHERE lease_key = :lease_key AND expires_at < :now"
LEASE_INSERT_SQL = """
INSERT INTO tola_leases(lease_key, token, expires_at)
VALUES(:lease_key, :token, :expires_at)
"""
LEASE_RELEASE_SQL = "DELETE FROM tola_leases WHERE lease_key = :lease_key AND token = :token"


class RelationalBackend(DocumentStore):
    """Base class that encapsulates SQLAlchemy powered interactions.

    Without a dialect specific ``upsert_sql`` a write deletes and re-inserts the
    row inside one transaction.
    """

    schema_sql: str = SCHEMA_SQL
    upsert_sql: str | None = None

    def __init__(self, url: str) -> None:
        super().__init__()
        self.url = url
        self._engine_instance: Engine | None = None

    def _get_engine(self) -> Engine:
        if self._engine_instance is None:
            self._engine_instance = create_engine(self.url, future=True)
        return self._engine_instance

    def ensure_schema(self) -> None:
        try:
            with self._get_engine().begin() as connection:
                LOGGER.info("Ensuring tola_documents schema exists")
                connection.execute(text("SELECT 1"))
                connection.execute(text(self.schema_sql))
                connection.execute(text(LEASE_SCHEMA_SQL))
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to ensure relational schema: {exc}") from exc

    def get(self, key: str) -> Document | None:
        try:
            with self._get_engine().connect() as connection:
                row = connection.execute(text(SELECT_SQL), {"doc_key": key}).first()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to read {key!r}: {exc}") from exc
        if row is None:
            return None
        try:
            return json.loads(row._mapping["body"])
        except ValueError as exc:
            raise PersistenceFailure(f"Stored {key!r} document is not valid JSON") from exc

    def put(self, key: str, document: Document) -> None:
        params = {
            "doc_key": key,
            "body": json.dumps(document, ensure_ascii=False),
            "updated_at": datetime.now(timezone.utc).replace(tzinfo=None),
        }
        try:
            with self._get_engine().begin() as connection:
                if self.upsert_sql:
                    connection.execute(text(self.upsert_sql), params)
                else:
                    connection.execute(text(DELETE_SQL), params)
                    connection.execute(text(INSERT_SQL), params)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to write {key!r}: {exc}") from exc

    def try_lease(self, key: str, token: str, expires_at: float) -> bool:
        try:
            with self._get_engine().begin() as connection:
                connection.execute(text(LEASE_EXPIRE_SQL), {"lease_key": key, "now": time.time()})
                connection.execute(
                    text(LEASE_INSERT_SQL),
                    {"lease_key": key, "token": token, "expires_at": expires_at},
                )
        except IntegrityError:
            return False
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to lease {key!r}: {exc}") from exc
        return True

    def release_lease(self, key: str, token: str) -> None:
        try:
            with self._get_engine().begin() as connection:
                connection.execute(text(LEASE_RELEASE_SQL), {"lease_key": key, "token": token})
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to release {key!r} lease: {exc}") from exc

    def close(self) -> None:  # pragma: no cover - trivial resource cleanup
        if self._engine_instance is not None:
            self._engine_instance.dispose()


__all__ = ["RelationalBackend"]
