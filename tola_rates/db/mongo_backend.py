"""MongoDB document store."""

from __future__ import annotations

import time
from datetime import datetime, timezone

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from tola_rates.db.base_backend import Document, DocumentStore
from tola_rates.errors import PersistenceFailure
from tola_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)


class MongoBackend(DocumentStore):
    """Document store that keeps one MongoDB document per key."""

    collection_name = "tola_documents"
    lease_collection_name = "tola_leases"

    def __init__(self, url: str, *, database: str | None = None) -> None:
        super().__init__()
        self.url = url
        self._client = MongoClient(url, serverSelectionTimeoutMS=5000)
        db = self._client.get_default_database() if database is None else self._client[database]
        if db is None:
            raise ValueError("MongoDB connection URI must include a database name")
        self._collection: Collection = db[self.collection_name]
        self._leases: Collection = db[self.lease_collection_name]

    def ensure_schema(self) -> None:
        try:
            LOGGER.info("Ensuring MongoDB document collection is reachable")
            self._client.admin.command("ping")
        except PyMongoError as exc:  # pragma: no cover - error path
            raise PersistenceFailure(f"Failed to reach MongoDB: {exc}") from exc

    def get(self, key: str) -> Document | None:
        try:
            doc = self._collection.find_one({"_id": key})
        except PyMongoError as exc:
            raise PersistenceFailure(f"Failed to read {key!r} from MongoDB: {exc}") from exc
        if doc is None:
            return None
        return doc.get("body")

    def put(self, key: str, document: Document) -> None:
        try:
            self._collection.replace_one(
                {"_id": key},
                {"_id": key, "body": document, "updated_at": datetime.now(timezone.utc)},
                upsert=True,
            )
        except PyMongoError as exc:
            raise PersistenceFailure(f"Failed to write {key!r} to MongoDB: {exc}") from exc

    def try_lease(self, key: str, token: str, expires_at: float) -> bool:
        try:
            self._leases.delete_one({"_id": key, "expires_at": {"$lt": time.time()}})
            self._leases.insert_one({"_id": key, "token": token, "expires_at": expires_at})
        except DuplicateKeyError:
            return False
        except PyMongoError as exc:
            raise PersistenceFailure(f"Failed to lease {key!r} in MongoDB: {exc}") from exc
        return True

    def release_lease(self, key: str, token: str) -> None:
        try:
            self._leases.delete_one({"_id": key, "token": token})
        except PyMongoError as exc:
            raise PersistenceFailure(f"Failed to release {key!r} lease in MongoDB: {exc}") from exc

    def close(self) -> None:  # pragma: no cover - trivial cleanup
        self._client.close()


__all__ = ["MongoBackend"]
