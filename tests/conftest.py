from __future__ import annotations

import copy
from typing import Any

import pytest

from tola_rates.db.base_backend import Document, DocumentStore
from tola_rates.errors import PersistenceFailure, UpstreamUnavailable


class MemoryStore(DocumentStore):
    """In-process document store with switchable failures."""

    def __init__(self) -> None:
        super().__init__()
        self.docs: dict[str, Document] = {}
        self.puts: list[str] = []
        self.fail_puts: set[str] = set()
        self.fail_gets: set[str] = set()

    def ensure_schema(self) -> None:
        return None

    def get(self, key: str) -> Document | None:
        if key in self.fail_gets:
            raise PersistenceFailure(f"read of {key} failed")
        doc = self.docs.get(key)
        return copy.deepcopy(doc) if doc is not None else None

    def put(self, key: str, document: Document) -> None:
        if key in self.fail_puts:
            raise PersistenceFailure(f"write of {key} failed")
        self.puts.append(key)
        self.docs[key] = copy.deepcopy(document)


class StaticSource:
    """Rate source returning queued raw readings (or raising queued errors)."""

    name = "calendar-event.pages.dev"

    def __init__(self, *items: Any) -> None:
        self.items = list(items)
        self.calls = 0

    def push(self, item: Any) -> None:
        self.items.append(item)

    def fetch(self) -> Any:
        self.calls += 1
        if not self.items:
            raise UpstreamUnavailable("nothing queued")
        item = self.items[0] if len(self.items) == 1 else self.items.pop(0)
        if isinstance(item, Exception):
            raise item
        return dict(item)


class RecordingNotifier:
    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.sent: list[tuple[str, str]] = []

    def send(self, title: str, body: str) -> bool:
        self.sent.append((title, body))
        return self.succeed


@pytest.fixture()
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def make_source():
    return StaticSource
