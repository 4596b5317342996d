from typing import Optional

SUPPORTED_LANGUAGES = ("ja", "en")
DEFAULT_LANGUAGE = "ja"

UNKNOWN_PLACEHOLDER = {"ja": "不明", "en": "unknown"}
NONE_PLACEHOLDER = {"ja": "なし", "en": "none"}
YES_NO = {"ja": ("はい", "いいえ"), "en": ("yes", "no")}

WEEKDAY_NAMES = {
    "ja": ("月曜日", "火曜日", "水曜日", "木曜日", "金曜日", "土曜日", "日曜日"),
    "en": ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
}

GREETINGS = {
    "ja": {
        "morning": "{nickname}さん、おはようございます",
        "afternoon": "{nickname}さん、お疲れさまです",
        "evening": "{nickname}さん、お疲れさまでした",
    },
    "en": {
        "morning": "Good morning, {nickname}",
        "afternoon": "Good afternoon, {nickname}",
        "evening": "Good evening, {nickname}",
    },
}

# WMO weather interpretation codes, grouped.
WEATHER_CODE_LABELS = {
    "ja": {
        "clear": "晴れ",
        "cloudy": "くもり",
        "fog": "霧",
        "drizzle": "霧雨",
        "rain": "雨",
        "snow": "雪",
        "thunderstorm": "雷雨",
    },
    "en": {
        "clear": "clear",
        "cloudy": "cloudy",
        "fog": "fog",
        "drizzle": "drizzle",
        "rain": "rain",
        "snow": "snow",
        "thunderstorm": "thunderstorm",
    },
}


def normalize_language(language: Optional[str]) -> str:
    if language and language in SUPPORTED_LANGUAGES:
        return language
    return DEFAULT_LANGUAGE


def parse_accept_language(header: Optional[str]) -> str:
    if not header:
        return DEFAULT_LANGUAGE
    languages = [part.split(";")[0].strip().lower() for part in header.split(",")]
    languages = [lang for lang in languages if lang]
    for lang in languages:
        if lang in SUPPORTED_LANGUAGES:
            return lang
    for lang in languages:
        primary = lang.split("-")[0]
        if primary in SUPPORTED_LANGUAGES:
            return primary
    return DEFAULT_LANGUAGE


def unknown(language: str) -> str:
    return UNKNOWN_PLACEHOLDER[normalize_language(language)]


def weekday_name(weekday: int, language: str) -> str:
    return WEEKDAY_NAMES[normalize_language(language)][weekday]


def greeting_for(nickname: str, slot: str, language: str) -> str:
    return GREETINGS[normalize_language(language)][slot].format(nickname=nickname)


def weather_group(code: int) -> str:
    if code in (0, 1):
        return "clear"
    if code in (2, 3):
        return "cloudy"
    if code in (45, 48):
        return "fog"
    if 51 <= code <= 57:
        return "drizzle"
    if 61 <= code <= 67 or 80 <= code <= 82:
        return "rain"
    if 71 <= code <= 77 or code in (85, 86):
        return "snow"
    if code >= 95:
        return "thunderstorm"
    return "cloudy"


def describe_weather_code(code: int, language: str) -> str:
    return WEATHER_CODE_LABELS[normalize_language(language)][weather_group(code)]
