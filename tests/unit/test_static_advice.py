from datetime import datetime, timezone

from tempo.core.domain import DaySlot
from tempo.core.static_advice import build_static_advice

NOW = datetime(2024, 6, 10, 19, 0, tzinfo=timezone.utc)


def test_static_advice_is_complete_in_both_languages() -> None:
    for language in ("ja", "en"):
        advice = build_static_advice("Ken", DaySlot.evening, language, NOW)
        assert "Ken" in advice.greeting
        assert advice.condition_summary
        assert advice.condition_detail
        assert advice.daily_try.title and advice.daily_try.summary and advice.daily_try.detail
        assert advice.closing_message
        assert advice.time_slot == DaySlot.evening
        assert advice.generated_at == NOW


def test_static_advice_unknown_language_defaults_to_japanese() -> None:
    advice = build_static_advice("Ken", DaySlot.morning, "fr", NOW)
    assert advice.greeting == "Kenさん、おはようございます"
    assert build_static_advice("Ken", DaySlot.morning, "en", NOW).greeting == "Good morning, Ken"
