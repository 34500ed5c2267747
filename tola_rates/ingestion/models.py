"""Data models shared across ingestion and tracking modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Mapping, TypedDict

Commodity = Literal["gold", "silver"]
COMMODITIES: tuple[Commodity, ...] = ("gold", "silver")
HISTORY_UNIT = "tola"


class RawReading(TypedDict, total=False):
    """Loosely typed reading as produced by a rate source."""

    date: str | None
    gold: str | int | float | None
    silver: str | int | float | None


class Direction(str, Enum):
    """Trend label attached to a commodity price."""

    SAME = "same"
    UP = "up"
    DOWN = "down"

    @classmethod
    def coerce(cls, value: object) -> "Direction":
        """Map stored strings (or ``None``) back to a Direction."""

        if isinstance(value, Direction):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.SAME


@dataclass(frozen=True, slots=True)
class Reading:
    """Canonical price reading for a single Bikram Sambat date."""

    date: str
    gold: int | float
    silver: int | float

    def price(self, commodity: Commodity) -> int | float:
        return self.gold if commodity == "gold" else self.silver

    def to_document(self) -> dict[str, Any]:
        return {"date": self.date, "gold": self.gold, "silver": self.silver}

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Reading":
        return cls(date=str(doc["date"]), gold=doc["gold"], silver=doc["silver"])


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """A stored reading together with the directions computed at ingestion."""

    date: str
    gold: int | float | None
    silver: int | float | None
    gold_direction: Direction = Direction.SAME
    silver_direction: Direction = Direction.SAME

    def price(self, commodity: Commodity) -> int | float | None:
        return self.gold if commodity == "gold" else self.silver

    def direction(self, commodity: Commodity) -> Direction:
        return self.gold_direction if commodity == "gold" else self.silver_direction

    def to_document(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "gold": self.gold,
            "silver": self.silver,
            "goldDirection": self.gold_direction.value,
            "silverDirection": self.silver_direction.value,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "HistoryEntry":
        return cls(
            date=str(doc["date"]),
            gold=doc.get("gold"),
            silver=doc.get("silver"),
            gold_direction=Direction.coerce(doc.get("goldDirection")),
            silver_direction=Direction.coerce(doc.get("silverDirection")),
        )


@dataclass(slots=True)
class History:
    """Chronological ledger of accepted readings (oldest first)."""

    unit: str = HISTORY_UNIT
    data: list[HistoryEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.data)

    def to_document(self) -> dict[str, Any]:
        return {"unit": self.unit, "data": [entry.to_document() for entry in self.data]}

    @classmethod
    def from_document(cls, doc: Mapping[str, Any] | None) -> "History":
        if not doc:
            return cls()
        return cls(
            unit=str(doc.get("unit") or HISTORY_UNIT),
            data=[HistoryEntry.from_document(item) for item in doc.get("data") or []],
        )


@dataclass(frozen=True, slots=True)
class ChangeResult:
    """Change of one commodity relative to its last differing value."""

    previous: int | float | None
    change: int | float
    percent: float
    direction: Direction

    def as_payload(self) -> dict[str, Any]:
        return {
            "previous": self.previous,
            "change": self.change,
            "percent": self.percent,
            "direction": self.direction.value,
        }


__all__ = [
    "COMMODITIES",
    "HISTORY_UNIT",
    "ChangeResult",
    "Commodity",
    "Direction",
    "History",
    "HistoryEntry",
    "RawReading",
    "Reading",
]
