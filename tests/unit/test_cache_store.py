import json
from datetime import date, datetime, timedelta, timezone

from tempo.core.cache_store import AdviceCacheStore, CacheEntry, MemoryKeyValueBackend, SqlKeyValueBackend
from tempo.core.domain import DaySlot
from tempo.core.static_advice import build_static_advice

TODAY = date(2024, 6, 10)


def _advice(generated_at: datetime, title: str = "A 10-minute walk"):
    advice = build_static_advice("Ken", DaySlot.morning, "en", generated_at)
    return advice.model_copy(update={"daily_try": advice.daily_try.model_copy(update={"title": title})})


def test_put_then_get_returns_identical_advice(store) -> None:
    advice = _advice(datetime(2024, 6, 10, 7, 0, tzinfo=timezone.utc))
    store.put("user-1", TODAY, advice)
    entry = store.get("user-1", TODAY)
    assert entry is not None
    assert entry.advice == advice
    assert entry.generated_at == advice.generated_at
    assert store.get("user-2", TODAY) is None


def test_record_format_is_json_with_iso_timestamp(store, memory_backend) -> None:
    store.put("user-1", TODAY, _advice(datetime(2024, 6, 10, 7, 0, tzinfo=timezone.utc)))
    record = json.loads(memory_backend.get("advice:user-1:2024-06-10"))
    assert record["generated_at"] == "2024-06-10T07:00:00+00:00"
    assert record["advice"]["dailyTry"]["title"] == "A 10-minute walk"


def test_put_overwrites_existing_entry(store) -> None:
    store.put("user-1", TODAY, _advice(datetime(2024, 6, 10, 7, 0, tzinfo=timezone.utc), "First"))
    store.put("user-1", TODAY, _advice(datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc), "Second"))
    assert store.get("user-1", TODAY).advice.daily_try.title == "Second"


def test_corrupt_record_reads_as_missing(store, memory_backend) -> None:
    memory_backend.put("advice:user-1:2024-06-10", "{broken")
    assert store.get("user-1", TODAY) is None
    memory_backend.put("advice:user-1:2024-06-10", json.dumps({"advice": {"greeting": "hi"}}))
    assert store.get("user-1", TODAY) is None


def test_entry_freshness_is_rolling_24_hours() -> None:
    generated_at = datetime(2024, 6, 10, 23, 50, tzinfo=timezone.utc)
    entry = CacheEntry(advice=_advice(generated_at), generated_at=generated_at)
    assert entry.is_fresh(generated_at + timedelta(hours=23, minutes=59)) is True
    assert entry.is_fresh(generated_at + timedelta(hours=24)) is False


def test_fallback_returns_most_recent_previous_day(store) -> None:
    store.put("user-1", date(2024, 6, 9), _advice(datetime(2024, 6, 9, 7, 0, tzinfo=timezone.utc), "Day 1"))
    store.put("user-1", date(2024, 6, 7), _advice(datetime(2024, 6, 7, 7, 0, tzinfo=timezone.utc), "Day 3"))
    entry, days_back = store.get_fallback("user-1", TODAY)
    assert days_back == 1
    assert entry.advice.daily_try.title == "Day 1"


def test_fallback_scans_at_most_three_days(store) -> None:
    store.put("user-1", date(2024, 6, 7), _advice(datetime(2024, 6, 7, 7, 0, tzinfo=timezone.utc), "Day 3"))
    entry, days_back = store.get_fallback("user-1", TODAY)
    assert days_back == 3

    other = AdviceCacheStore(MemoryKeyValueBackend())
    other.put("user-1", date(2024, 6, 6), _advice(datetime(2024, 6, 6, 7, 0, tzinfo=timezone.utc)))
    assert other.get_fallback("user-1", TODAY) is None
    # Today's own entry is never its own fallback.
    other.put("user-1", TODAY, _advice(datetime(2024, 6, 10, 7, 0, tzinfo=timezone.utc)))
    assert other.get_fallback("user-1", TODAY) is None


def test_topic_ledger_keeps_fourteen_days(store) -> None:
    store.append_topic("user-1", "Old topic", date(2024, 5, 26))
    store.append_topic("user-1", "Boundary topic", date(2024, 5, 27))
    store.put("user-1", TODAY, _advice(datetime(2024, 6, 10, 7, 0, tzinfo=timezone.utc), "Fresh topic"))
    assert store.recent_topics("user-1", TODAY) == ["Boundary topic", "Fresh topic"]
    assert store.recent_topics("user-1", date(2024, 6, 25)) == []


def test_slot_flags_are_independent_of_advice(store) -> None:
    assert store.is_slot_shown("user-1", TODAY, DaySlot.evening) is False
    store.mark_slot_shown("user-1", TODAY, DaySlot.evening)
    assert store.is_slot_shown("user-1", TODAY, DaySlot.evening) is True
    assert store.get("user-1", TODAY) is None


def test_sql_backend_upserts_and_deletes(db_session) -> None:
    backend = SqlKeyValueBackend(db_session)
    backend.put("sql-test:key", "one")
    backend.put("sql-test:key", "two")
    assert backend.get("sql-test:key") == "two"
    backend.delete("sql-test:key")
    assert backend.get("sql-test:key") is None


def test_store_over_sql_backend(db_session) -> None:
    store = AdviceCacheStore(SqlKeyValueBackend(db_session))
    advice = _advice(datetime(2024, 6, 10, 7, 0, tzinfo=timezone.utc))
    store.put("sql-user", TODAY, advice)
    assert store.get("sql-user", TODAY).advice == advice
    assert store.recent_topics("sql-user", TODAY) == ["A 10-minute walk"]
