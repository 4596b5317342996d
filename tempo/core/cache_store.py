"""Per-day advice cache, topic history ledger and supplementary-slot flags.

Everything is stored as JSON blobs in a key-value backend:

- ``advice:{user}:{YYYY-MM-DD}`` -> ``{"advice": {...}, "generated_at": ISO-8601}``
- ``topics:{user}`` -> ``[{"topic": str, "date": YYYY-MM-DD}, ...]``
- ``slot:{user}:{YYYY-MM-DD}:{slot}`` -> ``true``
"""

import json
import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Protocol

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tempo.core.domain import DaySlot, GeneratedAdvice
from tempo.db.models import CacheRecord

logger = logging.getLogger("uvicorn.error")

ADVICE_TTL = timedelta(hours=24)
TOPIC_HISTORY_DAYS = 14
FALLBACK_MAX_LOOKBACK_DAYS = 3


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def put(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryKeyValueBackend:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()
        self.writes: list[str] = []

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self.writes.append(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class SqlKeyValueBackend:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, key: str) -> Optional[str]:
        row = self.db.query(CacheRecord).filter(CacheRecord.key == key).first()
        return row.value if row else None

    def put(self, key: str, value: str) -> None:
        row = self.db.query(CacheRecord).filter(CacheRecord.key == key).first()
        if row:
            row.value = value
        else:
            self.db.add(CacheRecord(key=key, value=value))
        try:
            self.db.commit()
        except IntegrityError:
            # Another writer inserted the same key first; last write wins.
            self.db.rollback()
            row = self.db.query(CacheRecord).filter(CacheRecord.key == key).one()
            row.value = value
            self.db.commit()

    def delete(self, key: str) -> None:
        self.db.query(CacheRecord).filter(CacheRecord.key == key).delete()
        self.db.commit()


@dataclass(frozen=True)
class CacheEntry:
    advice: GeneratedAdvice
    generated_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        return _as_aware(now) - _as_aware(self.generated_at) < ADVICE_TTL


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _advice_key(user_id: str, advice_date: date) -> str:
    return f"advice:{user_id}:{advice_date.isoformat()}"


def _topics_key(user_id: str) -> str:
    return f"topics:{user_id}"


def _slot_key(user_id: str, advice_date: date, slot: DaySlot) -> str:
    return f"slot:{user_id}:{advice_date.isoformat()}:{slot.value}"


class AdviceCacheStore:
    def __init__(self, backend: KeyValueBackend) -> None:
        self.backend = backend

    def get(self, user_id: str, advice_date: date) -> Optional[CacheEntry]:
        raw = self.backend.get(_advice_key(user_id, advice_date))
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
            advice = GeneratedAdvice.model_validate(payload["advice"])
            generated_at = datetime.fromisoformat(payload["generated_at"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, ValidationError):
            logger.warning("advice_cache_corrupt_entry user=%s date=%s", user_id, advice_date)
            return None
        return CacheEntry(advice=advice, generated_at=generated_at)

    def put(self, user_id: str, advice_date: date, advice: GeneratedAdvice) -> CacheEntry:
        entry = CacheEntry(advice=advice, generated_at=advice.generated_at)
        payload = {
            "advice": advice.model_dump(mode="json", by_alias=True),
            "generated_at": advice.generated_at.isoformat(),
        }
        self.backend.put(_advice_key(user_id, advice_date), json.dumps(payload, separators=(",", ":")))
        self.append_topic(user_id, advice.daily_try.title, advice_date)
        return entry

    def get_fallback(
        self, user_id: str, advice_date: date, max_lookback: int = FALLBACK_MAX_LOOKBACK_DAYS
    ) -> Optional[tuple[CacheEntry, int]]:
        for days_back in range(1, max_lookback + 1):
            entry = self.get(user_id, advice_date - timedelta(days=days_back))
            if entry is not None:
                return entry, days_back
        return None

    def _load_topics(self, user_id: str) -> list[dict[str, str]]:
        raw = self.backend.get(_topics_key(user_id))
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            return []
        if not isinstance(items, list):
            return []
        return [
            item
            for item in items
            if isinstance(item, dict) and isinstance(item.get("topic"), str) and isinstance(item.get("date"), str)
        ]

    @staticmethod
    def _prune(items: list[dict[str, str]], as_of: date) -> list[dict[str, str]]:
        cutoff = as_of - timedelta(days=TOPIC_HISTORY_DAYS)
        kept = []
        for item in items:
            try:
                item_date = date.fromisoformat(item["date"])
            except ValueError:
                continue
            if item_date >= cutoff:
                kept.append(item)
        return kept

    def append_topic(self, user_id: str, topic: str, topic_date: date) -> None:
        cleaned = topic.strip()
        if not cleaned:
            return
        items = self._prune(self._load_topics(user_id), topic_date)
        items.append({"topic": cleaned, "date": topic_date.isoformat()})
        self.backend.put(_topics_key(user_id), json.dumps(items, ensure_ascii=False, separators=(",", ":")))

    def recent_topics(self, user_id: str, as_of: date) -> list[str]:
        return [item["topic"] for item in self._prune(self._load_topics(user_id), as_of)]

    def is_slot_shown(self, user_id: str, advice_date: date, slot: DaySlot) -> bool:
        return self.backend.get(_slot_key(user_id, advice_date, slot)) is not None

    def mark_slot_shown(self, user_id: str, advice_date: date, slot: DaySlot) -> None:
        self.backend.put(_slot_key(user_id, advice_date, slot), "true")
