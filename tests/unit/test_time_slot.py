from datetime import date, datetime

import pytest

from tempo.core.domain import DaySlot
from tempo.core.time_slot import classify_time_slot, supplementary_allowed


@pytest.mark.parametrize(
    ("hour", "minute", "expected"),
    [
        (0, 0, DaySlot.evening),
        (5, 59, DaySlot.evening),
        (6, 0, DaySlot.morning),
        (12, 59, DaySlot.morning),
        (13, 0, DaySlot.afternoon),
        (17, 59, DaySlot.afternoon),
        (18, 0, DaySlot.evening),
        (23, 59, DaySlot.evening),
    ],
)
def test_classify_time_slot_boundaries(hour: int, minute: int, expected: DaySlot) -> None:
    assert classify_time_slot(datetime(2024, 6, 10, hour, minute)) == expected


def test_supplementary_allowed_once_per_slot(store) -> None:
    today = date(2024, 6, 10)
    assert supplementary_allowed(store, "user-1", today, DaySlot.morning) is False
    assert supplementary_allowed(store, "user-1", today, DaySlot.afternoon) is True

    store.mark_slot_shown("user-1", today, DaySlot.afternoon)
    assert supplementary_allowed(store, "user-1", today, DaySlot.afternoon) is False
    assert supplementary_allowed(store, "user-1", today, DaySlot.evening) is True
    assert supplementary_allowed(store, "user-1", date(2024, 6, 11), DaySlot.afternoon) is True
