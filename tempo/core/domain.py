from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Interest(str, Enum):
    beauty = "beauty"
    fitness = "fitness"
    mental_health = "mental_health"
    work_performance = "work_performance"
    nutrition = "nutrition"
    sleep = "sleep"


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"
    not_specified = "not_specified"


class Occupation(str, Enum):
    it_engineer = "it_engineer"
    sales = "sales"
    standing_work = "standing_work"
    medical = "medical"
    creative = "creative"
    homemaker = "homemaker"
    student = "student"
    freelance = "freelance"
    other = "other"


class LifestyleRhythm(str, Enum):
    morning = "morning"
    night = "night"
    irregular = "irregular"


class ExerciseFrequency(str, Enum):
    daily = "daily"
    three_to_four = "three_to_four"
    one_to_two = "one_to_two"
    rarely = "rarely"


class AlcoholFrequency(str, Enum):
    never = "never"
    monthly = "monthly"
    one_to_two = "one_to_two"
    three_or_more = "three_or_more"


class DaySlot(str, Enum):
    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"


class PressureTrend(str, Enum):
    rising = "rising"
    stable = "stable"
    falling = "falling"


class UserProfile(CamelModel):
    nickname: str = Field(min_length=1, max_length=64)
    age: int = Field(ge=1, le=120)
    gender: Gender = Gender.not_specified
    weight_kg: float = Field(gt=0)
    height_cm: float = Field(gt=0)
    occupation: Optional[Occupation] = None
    lifestyle_rhythm: Optional[LifestyleRhythm] = None
    exercise_frequency: Optional[ExerciseFrequency] = None
    alcohol_frequency: Optional[AlcoholFrequency] = None
    interests: list[Interest] = Field(min_length=1)

    @property
    def primary_interest(self) -> Interest:
        return self.interests[0]


class SleepData(CamelModel):
    bedtime: Optional[str] = None
    wake_time: Optional[str] = None
    duration_hours: Optional[float] = Field(default=None, ge=0, le=24)
    deep_sleep_hours: Optional[float] = Field(default=None, ge=0, le=24)
    rem_sleep_hours: Optional[float] = Field(default=None, ge=0, le=24)
    awakenings: Optional[int] = Field(default=None, ge=0)
    avg_heart_rate: Optional[int] = Field(default=None, gt=0)


class MorningVitals(CamelModel):
    resting_heart_rate: Optional[int] = Field(default=None, gt=0)
    hrv_ms: Optional[float] = Field(default=None, gt=0)
    blood_oxygen: Optional[int] = Field(default=None, ge=70, le=100)


class ActivityData(CamelModel):
    steps: Optional[int] = Field(default=None, ge=0)
    workout_minutes: Optional[int] = Field(default=None, ge=0)
    workout_type: Optional[str] = None
    calories_burned: Optional[int] = Field(default=None, ge=0)


class WeekTrends(CamelModel):
    avg_sleep_hours: Optional[float] = Field(default=None, ge=0)
    avg_hrv: Optional[float] = Field(default=None, gt=0)
    avg_resting_heart_rate: Optional[int] = Field(default=None, gt=0)
    avg_steps: Optional[int] = Field(default=None, ge=0)
    total_workout_hours: Optional[float] = Field(default=None, ge=0)


class HealthData(CamelModel):
    date: date
    sleep: Optional[SleepData] = None
    morning_vitals: Optional[MorningVitals] = None
    yesterday_activity: Optional[ActivityData] = None
    week_trends: Optional[WeekTrends] = None


class Location(CamelModel):
    latitude: float
    longitude: float
    city: Optional[str] = Field(default=None, max_length=128)


class WeatherSnapshot(CamelModel):
    temperature_c: float
    humidity_percent: float
    pressure_hpa: float
    uv_index: float
    condition_code: int
    temp_max_c: Optional[float] = None
    temp_min_c: Optional[float] = None
    precipitation_probability: Optional[float] = None


class AirQualitySnapshot(CamelModel):
    aqi: int
    pm25: float
    pm10: Optional[float] = None


class EnvironmentSnapshot(CamelModel):
    current: WeatherSnapshot
    air_quality: Optional[AirQualitySnapshot] = None
    pressure_trend: PressureTrend = PressureTrend.stable


class ActionSuggestion(CamelModel):
    icon: str
    title: str
    detail: str


class TryContent(CamelModel):
    title: str
    summary: str
    detail: str


class EnvironmentTip(CamelModel):
    type: str
    message: str


class GeneratedAdvice(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    greeting: str = Field(min_length=1)
    condition_summary: str = Field(min_length=1)
    condition_detail: str = Field(min_length=1)
    daily_try: TryContent
    closing_message: str = Field(min_length=1)
    action_suggestions: list[ActionSuggestion] = Field(default_factory=list)
    weekly_try: Optional[TryContent] = None
    environment_tips: list[EnvironmentTip] = Field(default_factory=list)
    time_slot: Optional[DaySlot] = None
    generated_at: datetime


class SupplementaryAdvice(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    greeting: str = Field(min_length=1)
    message: str = Field(min_length=1)
    action_suggestion: Optional[ActionSuggestion] = None
    time_slot: DaySlot
    generated_at: datetime


class ServedFrom(str, Enum):
    cache = "cache"
    generated = "generated"
    fallback_cache = "fallbackCache"
    static_fallback = "staticFallback"


class AdviceResult(CamelModel):
    advice: GeneratedAdvice
    served_from: ServedFrom
    is_stale: bool = False
    stale_days: int = 0
    error_code: Optional[str] = None


class SupplementaryResult(CamelModel):
    available: bool
    reason: Optional[str] = None
    advice: Optional[SupplementaryAdvice] = None
