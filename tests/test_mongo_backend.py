"""Mongo backend tests that monkeypatch pymongo primitives."""

from __future__ import annotations

import time
from typing import Any, Dict

import pytest
from pymongo.errors import DuplicateKeyError, PyMongoError

from tola_rates.db import mongo_backend as mongo_module
from tola_rates.errors import PersistenceFailure


class _DummyCollection:
    def __init__(self) -> None:
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.fail = False

    def find_one(self, query: Dict[str, Any]) -> Dict[str, Any] | None:
        if self.fail:
            raise PyMongoError("boom")
        return self.docs.get(query["_id"])

    def replace_one(self, query: Dict[str, Any], doc: Dict[str, Any], *, upsert: bool) -> None:
        assert upsert is True
        if self.fail:
            raise PyMongoError("boom")
        self.docs[query["_id"]] = dict(doc)

    def insert_one(self, doc: Dict[str, Any]) -> None:
        if doc["_id"] in self.docs:
            raise DuplicateKeyError("duplicate key")
        self.docs[doc["_id"]] = dict(doc)

    def delete_one(self, query: Dict[str, Any]) -> None:
        doc = self.docs.get(query["_id"])
        if doc is None:
            return
        for field, expected in query.items():
            if isinstance(expected, dict):
                if not doc[field] < expected["$lt"]:
                    return
            elif doc[field] != expected:
                return
        del self.docs[query["_id"]]


class _DummyDatabase(dict):
    def __getitem__(self, name: str) -> _DummyCollection:  # type: ignore[override]
        if name not in self:
            self[name] = _DummyCollection()
        return dict.__getitem__(self, name)


class _DummyClient:
    def __init__(self, url: str, **kwargs: Any) -> None:
        self.url = url
        self.kwargs = kwargs
        self.admin = self
        self.closed = False
        self.databases: Dict[str, _DummyDatabase] = {}
        self.commands: list[str] = []

    def __getitem__(self, name: str) -> _DummyDatabase:
        return self.databases.setdefault(name, _DummyDatabase())

    def get_default_database(self) -> _DummyDatabase:
        return self.__getitem__("default")

    def command(self, name: str) -> None:
        self.commands.append(name)

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def patched_client(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(mongo_module, "MongoClient", _DummyClient)


def test_mongo_backend_roundtrip(patched_client: None) -> None:
    backend = mongo_module.MongoBackend("mongodb://localhost/tola", database="tola")
    backend.ensure_schema()

    backend.put("history", {"unit": "tola", "data": []})
    backend.put("history", {"unit": "tola", "data": [{"date": "2081-01-01"}]})

    assert backend.get("history") == {"unit": "tola", "data": [{"date": "2081-01-01"}]}
    assert backend.get("last_success") is None
    assert backend._client.commands == ["ping"]
    stored = backend._client.databases["tola"]["tola_documents"].docs["history"]
    assert stored["_id"] == "history"
    assert "updated_at" in stored
    backend.close()
    assert backend._client.closed


def test_mongo_backend_uses_default_database(patched_client: None) -> None:
    backend = mongo_module.MongoBackend("mongodb://localhost/tola")

    backend.put("last_notified", {"date": "2081-01-01"})

    assert "default" in backend._client.databases


def test_mongo_errors_become_persistence_failures(patched_client: None) -> None:
    backend = mongo_module.MongoBackend("mongodb://localhost/tola", database="tola")
    backend._collection.fail = True  # type: ignore[attr-defined]

    with pytest.raises(PersistenceFailure):
        backend.get("history")
    with pytest.raises(PersistenceFailure):
        backend.put("history", {})


def test_mongo_lease_is_exclusive_until_released_or_expired(patched_client: None) -> None:
    backend = mongo_module.MongoBackend("mongodb://localhost/tola", database="tola")

    assert backend.try_lease("history", "first", time.time() + 60)
    assert not backend.try_lease("history", "second", time.time() + 60)

    backend.release_lease("history", "second")
    assert not backend.try_lease("history", "second", time.time() + 60)

    backend.release_lease("history", "first")
    assert backend.try_lease("history", "second", time.time() - 1)
    assert backend.try_lease("history", "third", time.time() + 60)
    leases = backend._client.databases["tola"]["tola_leases"].docs
    assert leases["history"]["token"] == "third"


def test_mongo_locked_section_releases_lease(patched_client: None) -> None:
    backend = mongo_module.MongoBackend("mongodb://localhost/tola", database="tola")

    with backend.locked("last_notified"):
        backend.put("last_notified", {"date": "2081-01-01"})
        assert "last_notified" in backend._client.databases["tola"]["tola_leases"].docs

    assert backend._client.databases["tola"]["tola_leases"].docs == {}
