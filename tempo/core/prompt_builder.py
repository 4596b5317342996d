from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from tempo.core.context import AdviceRequestContext
from tempo.core.domain import DaySlot, GeneratedAdvice, Interest
from tempo.core.localization import (
    NONE_PLACEHOLDER,
    YES_NO,
    describe_weather_code,
    normalize_language,
    unknown,
    weekday_name,
)
from tempo.core.prompt_examples import DEFAULT_INTEREST, EXAMPLES_BY_INTEREST

LANGUAGE_NAMES = {"ja": "Japanese (polite desu/masu form)", "en": "English"}

BASE_INSTRUCTIONS = """
You are the dedicated health advisor of Tempo AI.

Role:
- Analyze the user's health data together with environmental data and give one personalized daily advisory.
- Speak like a calm, kind, slightly older companion: warm, never pushy.
- Combine data sources (HRV with sleep, weather with condition, habits with yesterday's activity).

Never:
- Give a medical diagnosis or suggest prescription drugs.
- Use emoji.
- Use alarming language or force numeric targets.

Balance:
- 60-70% baseline habits, 30-40% the user's stated interests.
- A "recent topics" list may be given. Prefer a daily try that differs from those topics, but repeating one is acceptable when it clearly fits today's data.

Output:
Return only one JSON object with exactly this structure:
{
  "greeting": "greeting that uses the nickname",
  "condition": {
    "summary": "today's condition in 1-2 sentences",
    "detail": "detailed analysis combining health and environment data"
  },
  "actionSuggestions": [
    {"icon": "fitness|stretch|nutrition|hydration|rest|work|sleep|mental|beauty|outdoor", "title": "short title", "detail": "one sentence"}
  ],
  "closingMessage": "encouraging closing message",
  "dailyTry": {"title": "today's try", "summary": "one line", "detail": "how to do it"},
  "weeklyTry": null or {"title": "this week's try", "summary": "one line", "detail": "how to do it"},
  "environmentAdvice": [{"type": "air_quality|temperature|uv|pressure|humidity", "message": "one sentence"}]
}
Only fill "weeklyTry" when the context says today is Monday; otherwise use null.
Leave "environmentAdvice" empty when environment data is unavailable.
No text before or after the JSON.
""".strip()

SUPPLEMENTARY_INSTRUCTIONS = """
You are the dedicated health advisor of Tempo AI.

Role:
- Complement the user's morning advisory with one short follow-up for the current time of day.
- Keep it brief, practical and friendly.

Output:
Return only one JSON object:
{
  "greeting": "greeting for the time of day",
  "message": "follow-up advice, at most two sentences",
  "actionSuggestion": {"icon": "hydration|movement|rest|nutrition|mindfulness", "title": "short title", "detail": "one sentence"}
}
No text before or after the JSON.
""".strip()


@dataclass(frozen=True)
class PromptLayer:
    text: str
    cache_eligible: bool = False


@dataclass(frozen=True)
class LayeredPrompt:
    instructions: PromptLayer
    examples: Optional[PromptLayer]
    user_data: str

    @property
    def system_layers(self) -> tuple[PromptLayer, ...]:
        if self.examples is None:
            return (self.instructions,)
        return (self.instructions, self.examples)


def build_instructions(language: str) -> PromptLayer:
    lang = normalize_language(language)
    text = f"{BASE_INSTRUCTIONS}\n\nWrite every text value in {LANGUAGE_NAMES[lang]}."
    return PromptLayer(text=text, cache_eligible=True)


def select_examples(primary_interest: Optional[Interest]) -> PromptLayer:
    text = EXAMPLES_BY_INTEREST.get(primary_interest) if primary_interest else None
    return PromptLayer(text=text or EXAMPLES_BY_INTEREST[DEFAULT_INTEREST], cache_eligible=True)


def _value(value: Any, language: str, suffix: str = "") -> str:
    if value is None or value == "":
        return unknown(language)
    if hasattr(value, "value"):
        value = value.value
    return f"{value}{suffix}"


def _section(title: str, rows: list[tuple[str, str]]) -> str:
    lines = [f"  <{title}>"]
    lines.extend(f"    {label}: {value}" for label, value in rows)
    lines.append(f"  </{title}>")
    return "\n".join(lines)


def _profile_rows(context: AdviceRequestContext) -> list[tuple[str, str]]:
    lang = context.language
    profile = context.profile
    return [
        ("nickname", profile.nickname),
        ("age", _value(profile.age, lang)),
        ("gender", _value(profile.gender, lang)),
        ("weight", _value(profile.weight_kg, lang, "kg")),
        ("height", _value(profile.height_cm, lang, "cm")),
        ("occupation", _value(profile.occupation, lang)),
        ("lifestyle rhythm", _value(profile.lifestyle_rhythm, lang)),
        ("exercise frequency", _value(profile.exercise_frequency, lang)),
        ("alcohol frequency", _value(profile.alcohol_frequency, lang)),
        ("interests", ", ".join(interest.value for interest in profile.interests)),
    ]


def _health_rows(context: AdviceRequestContext) -> list[tuple[str, str]]:
    lang = context.language
    health = context.health
    sleep = health.sleep
    vitals = health.morning_vitals
    activity = health.yesterday_activity
    trends = health.week_trends
    return [
        ("date", health.date.isoformat()),
        ("bedtime", _value(sleep.bedtime if sleep else None, lang)),
        ("wake time", _value(sleep.wake_time if sleep else None, lang)),
        ("sleep duration", _value(sleep.duration_hours if sleep else None, lang, "h")),
        ("deep sleep", _value(sleep.deep_sleep_hours if sleep else None, lang, "h")),
        ("rem sleep", _value(sleep.rem_sleep_hours if sleep else None, lang, "h")),
        ("awakenings", _value(sleep.awakenings if sleep else None, lang)),
        ("avg sleeping heart rate", _value(sleep.avg_heart_rate if sleep else None, lang, "bpm")),
        ("resting heart rate", _value(vitals.resting_heart_rate if vitals else None, lang, "bpm")),
        ("hrv", _value(vitals.hrv_ms if vitals else None, lang, "ms")),
        ("blood oxygen", _value(vitals.blood_oxygen if vitals else None, lang, "%")),
        ("steps yesterday", _value(activity.steps if activity else None, lang)),
        ("workout yesterday", _value(activity.workout_type if activity else None, lang)),
        ("workout minutes yesterday", _value(activity.workout_minutes if activity else None, lang, "min")),
        ("calories burned yesterday", _value(activity.calories_burned if activity else None, lang, "kcal")),
        ("7-day avg sleep", _value(trends.avg_sleep_hours if trends else None, lang, "h")),
        ("7-day avg hrv", _value(trends.avg_hrv if trends else None, lang, "ms")),
        ("7-day avg resting heart rate", _value(trends.avg_resting_heart_rate if trends else None, lang, "bpm")),
        ("7-day avg steps", _value(trends.avg_steps if trends else None, lang)),
    ]


def _environment_rows(context: AdviceRequestContext) -> list[tuple[str, str]]:
    lang = context.language
    env = context.environment
    weather = env.current if env else None
    air = env.air_quality if env else None
    return [
        ("city", _value(context.city, lang)),
        ("available", YES_NO[lang][0] if env else YES_NO[lang][1]),
        ("condition", describe_weather_code(weather.condition_code, lang) if weather else unknown(lang)),
        ("temperature", _value(weather.temperature_c if weather else None, lang, "C")),
        ("max temperature", _value(weather.temp_max_c if weather else None, lang, "C")),
        ("min temperature", _value(weather.temp_min_c if weather else None, lang, "C")),
        ("humidity", _value(weather.humidity_percent if weather else None, lang, "%")),
        ("pressure", _value(weather.pressure_hpa if weather else None, lang, "hPa")),
        ("pressure trend", _value(env.pressure_trend if env else None, lang)),
        ("uv index", _value(weather.uv_index if weather else None, lang)),
        ("precipitation probability", _value(weather.precipitation_probability if weather else None, lang, "%")),
        ("aqi", _value(air.aqi if air else None, lang)),
        ("pm2.5", _value(air.pm25 if air else None, lang, "ug/m3")),
        ("pm10", _value(air.pm10 if air else None, lang, "ug/m3")),
    ]


def _context_rows(context: AdviceRequestContext) -> list[tuple[str, str]]:
    lang = context.language
    yes, no = YES_NO[lang]
    scores = ", ".join(f"{name}={value:g}" for name, value in context.scores)
    return [
        ("current time", context.now.isoformat()),
        ("day of week", weekday_name(context.day_of_week, lang)),
        ("monday", yes if context.is_monday else no),
        ("weekend", yes if context.is_weekend else no),
        ("scores", scores or unknown(lang)),
        ("recent topics", ", ".join(context.recent_topics) or NONE_PLACEHOLDER[lang]),
    ]


def build_user_data(context: AdviceRequestContext) -> str:
    sections = [
        _section("profile", _profile_rows(context)),
        _section("health_data", _health_rows(context)),
        _section("environment", _environment_rows(context)),
        _section("context", _context_rows(context)),
    ]
    body = "\n".join(sections)
    return f"<user_data>\n{body}\n</user_data>\n\nGenerate today's advisory as JSON based on the data above."


def build_prompt(context: AdviceRequestContext) -> LayeredPrompt:
    return LayeredPrompt(
        instructions=build_instructions(context.language),
        examples=select_examples(context.profile.primary_interest),
        user_data=build_user_data(context),
    )


def build_supplementary_prompt(
    main_advice: GeneratedAdvice, slot: DaySlot, nickname: str, language: str
) -> LayeredPrompt:
    lang = normalize_language(language)
    instructions = PromptLayer(
        text=f"{SUPPLEMENTARY_INSTRUCTIONS}\n\nWrite every text value in {LANGUAGE_NAMES[lang]}.",
        cache_eligible=True,
    )
    rows = [
        ("time of day", slot.value),
        ("user", nickname),
        ("morning greeting", main_advice.greeting),
        ("morning condition summary", main_advice.condition_summary),
        ("today's try", main_advice.daily_try.title),
    ]
    body = "\n".join(f"  {label}: {value}" for label, value in rows)
    user_data = (
        f"<context>\n{body}\n</context>\n\n"
        f"Generate a short {slot.value} follow-up for {nickname} as JSON, building on the morning advisory."
    )
    return LayeredPrompt(instructions=instructions, examples=None, user_data=user_data)
