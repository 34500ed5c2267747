"""SQLite document store built on the SQLAlchemy ORM."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, DateTime, Float, String, Text, create_engine, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from tola_rates.db import DEFAULT_SQLITE_DB_PATH
from tola_rates.db.base_backend import Document, DocumentStore
from tola_rates.errors import PersistenceFailure
from tola_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class _Document(Base):
    __tablename__ = "documents"

    key = Column(String(64), primary_key=True)
    body = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class _Lease(Base):
    __tablename__ = "document_leases"

    key = Column(String(64), primary_key=True)
    token = Column(String(32), nullable=False)
    expires_at = Column(Float, nullable=False)


class SQLiteBackend(DocumentStore):
    """Document store persisted in a local SQLite file."""

    def __init__(self, db_path: str | Path = DEFAULT_SQLITE_DB_PATH) -> None:
        super().__init__()
        self.db_path = Path(db_path).expanduser().resolve()
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            future=True,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        self._SessionFactory: sessionmaker[Session] = sessionmaker(
            bind=self.engine, expire_on_commit=False, future=True
        )
        self.ensure_schema()

    def ensure_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to create SQLite schema: {exc}") from exc

    def get(self, key: str) -> Document | None:
        try:
            with self._SessionFactory() as session:
                row = session.get(_Document, key)
                if row is None:
                    return None
                body = str(row.body)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to read {key!r} from SQLite: {exc}") from exc
        try:
            return json.loads(body)
        except ValueError as exc:
            raise PersistenceFailure(f"Stored {key!r} document is not valid JSON") from exc

    def put(self, key: str, document: Document) -> None:
        body = json.dumps(document, ensure_ascii=False)
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        try:
            with self._SessionFactory() as session:
                existing = session.get(_Document, key)
                if existing is None:
                    session.add(_Document(key=key, body=body, updated_at=now))
                else:
                    setattr(existing, "body", body)
                    setattr(existing, "updated_at", now)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to write {key!r} to SQLite: {exc}") from exc
        LOGGER.debug("Stored %s document in %s", key, self.db_path)

    def try_lease(self, key: str, token: str, expires_at: float) -> bool:
        try:
            with self._SessionFactory() as session:
                session.execute(
                    delete(_Lease).where(_Lease.key == key, _Lease.expires_at < time.time())
                )
                session.add(_Lease(key=key, token=token, expires_at=expires_at))
                session.commit()
        except IntegrityError:
            return False
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to lease {key!r} in SQLite: {exc}") from exc
        return True

    def release_lease(self, key: str, token: str) -> None:
        try:
            with self._SessionFactory() as session:
                session.execute(delete(_Lease).where(_Lease.key == key, _Lease.token == token))
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to release {key!r} lease in SQLite: {exc}") from exc

    def close(self) -> None:  # pragma: no cover - trivial
        self.engine.dispose()

    def __enter__(self) -> "SQLiteBackend":  # pragma: no cover - trivial
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - trivial
        self.close()


__all__ = ["SQLiteBackend"]
