from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Tuple
import math


@dataclass(frozen=True)
class RawRow:
    company_name: str
    percent_text: str
    row_id: str
    ordinal: int  # 0-based row index as extracted


@dataclass(frozen=True)
class HoldingEntry:
    position: int  # 1-based rank
    company: str
    ticker: str
    percent: float
    id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position,
            "company": self.company,
            "ticker": self.ticker,
            "percent": self.percent,
            "id": self.id,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "HoldingEntry":
        position = d["position"]
        if isinstance(position, bool) or not isinstance(position, int) or position < 1:
            raise ValueError(f"position must be an integer >= 1, got {position!r}")
        percent = d["percent"]
        if isinstance(percent, bool) or not isinstance(percent, (int, float)):
            raise ValueError(f"percent must be a number, got {percent!r}")
        if not math.isfinite(percent) or percent < 0:
            raise ValueError(f"percent must be finite and >= 0, got {percent!r}")
        entry_id = d.get("id")
        if entry_id is None:
            entry_id = ""  # rows without an id attribute
        return HoldingEntry(
            position=position,
            company=_require_str(d["company"], "company"),
            ticker=_require_str(d["ticker"], "ticker"),
            percent=float(percent),
            id=_require_str(entry_id, "id"),
        )


def _require_str(val: Any, key: str) -> str:
    if not isinstance(val, str):
        raise ValueError(f"{key} must be a string, got {val!r}")
    return val


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a Z suffix."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime:
    ts = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class Snapshot:
    timestamp: datetime
    items: Tuple[HoldingEntry, ...]

    def __post_init__(self):
        # freeze whatever sequence was handed in
        object.__setattr__(self, "items", tuple(self.items))

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "itemCount": self.item_count,
            "items": [e.to_dict() for e in self.items],
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Snapshot":
        """Rebuild a snapshot from its serialized shape.

        Besides the shape, the ranking invariants are checked: positions run
        1..n, percent never increases, tickers are unique. Raises
        KeyError/ValueError/TypeError on malformed input; callers at the
        storage boundary translate those into PersistenceError.
        """
        if not isinstance(d, dict) or not isinstance(d.get("items"), list):
            raise ValueError("snapshot must be an object with an items list")
        items = tuple(HoldingEntry.from_dict(e) for e in d["items"])
        for i, e in enumerate(items, start=1):
            if e.position != i:
                raise ValueError(f"position {e.position} at index {i - 1}, expected {i}")
        for prev, cur in zip(items, items[1:]):
            if cur.percent > prev.percent:
                raise ValueError(f"{cur.ticker} ({cur.percent}) ranked below {prev.ticker} ({prev.percent})")
        tickers = [e.ticker for e in items]
        if len(set(tickers)) != len(tickers):
            raise ValueError("duplicate tickers in snapshot")
        count = d.get("itemCount")
        if count is not None and int(count) != len(items):
            raise ValueError(f"itemCount {count} does not match {len(items)} items")
        return Snapshot(timestamp=parse_timestamp(_require_str(d["timestamp"], "timestamp")), items=items)
