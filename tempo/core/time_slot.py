from datetime import date, datetime
from typing import TYPE_CHECKING

from tempo.core.domain import DaySlot

if TYPE_CHECKING:
    from tempo.core.cache_store import AdviceCacheStore

MORNING_START_HOUR = 6
AFTERNOON_START_HOUR = 13
EVENING_START_HOUR = 18

SUPPLEMENTARY_SLOTS = (DaySlot.afternoon, DaySlot.evening)


def classify_time_slot(now: datetime) -> DaySlot:
    """Map local wall-clock time to a daypart.

    Hours before 06:00 still belong to the previous evening.
    """
    hour = now.hour
    if MORNING_START_HOUR <= hour < AFTERNOON_START_HOUR:
        return DaySlot.morning
    if AFTERNOON_START_HOUR <= hour < EVENING_START_HOUR:
        return DaySlot.afternoon
    return DaySlot.evening


def supplementary_allowed(store: "AdviceCacheStore", user_id: str, advice_date: date, slot: DaySlot) -> bool:
    if slot not in SUPPLEMENTARY_SLOTS:
        return False
    return not store.is_slot_shown(user_id, advice_date, slot)
