from datetime import datetime

from tempo.core.domain import ActionSuggestion, DaySlot, GeneratedAdvice, TryContent
from tempo.core.localization import greeting_for, normalize_language

STATIC_CONTENT = {
    "ja": {
        "condition_summary": "今日も自分のペースで過ごしましょう。",
        "condition_detail": (
            "最新のデータをもとにしたアドバイスを準備できませんでした。"
            "まずは睡眠、水分補給、軽い運動という基本を大切にしてください。"
        ),
        "actions": [
            ("hydration", "こまめに水分補給", "起床後と食事の前にコップ1杯の水を飲みましょう。"),
            ("stretch", "軽いストレッチ", "1時間に1回、肩と背中をゆっくり伸ばしましょう。"),
        ],
        "daily_try": (
            "10分間の散歩",
            "外の空気を吸って体をほぐしましょう。",
            "昼食後に10分ほど、無理のないペースで歩いてみましょう。日光を浴びることで体内時計も整います。",
        ),
        "closing_message": "小さな積み重ねが、明日の元気につながります。",
    },
    "en": {
        "condition_summary": "Take today at your own pace.",
        "condition_detail": (
            "We could not prepare advice from your latest data. "
            "Focus on the basics today: sleep, hydration and light movement."
        ),
        "actions": [
            ("hydration", "Drink water regularly", "Have a glass of water after waking and before each meal."),
            ("stretch", "Light stretching", "Stretch your shoulders and back gently once an hour."),
        ],
        "daily_try": (
            "A 10-minute walk",
            "Get some fresh air and loosen up.",
            "Walk for about ten minutes at an easy pace after lunch. Daylight also helps steady your body clock.",
        ),
        "closing_message": "Small steps today add up to more energy tomorrow.",
    },
}


def build_static_advice(nickname: str, slot: DaySlot, language: str, generated_at: datetime) -> GeneratedAdvice:
    content = STATIC_CONTENT[normalize_language(language)]
    title, summary, detail = content["daily_try"]
    return GeneratedAdvice(
        greeting=greeting_for(nickname or "", slot.value, language),
        condition_summary=content["condition_summary"],
        condition_detail=content["condition_detail"],
        daily_try=TryContent(title=title, summary=summary, detail=detail),
        closing_message=content["closing_message"],
        action_suggestions=[
            ActionSuggestion(icon=icon, title=action_title, detail=action_detail)
            for icon, action_title, action_detail in content["actions"]
        ],
        time_slot=slot,
        generated_at=generated_at,
    )
