from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from tempo.core.domain import EnvironmentSnapshot, HealthData, UserProfile
from tempo.core.localization import normalize_language

RECENT_TOPIC_WINDOW = 14


@dataclass(frozen=True)
class AdviceRequestContext:
    profile: UserProfile
    health: HealthData
    environment: Optional[EnvironmentSnapshot]
    now: datetime
    recent_topics: tuple[str, ...] = ()
    scores: tuple[tuple[str, float], ...] = ()
    language: str = "ja"
    city: Optional[str] = None
    day_of_week: int = field(init=False)
    is_monday: bool = field(init=False)
    is_weekend: bool = field(init=False)

    def __post_init__(self) -> None:
        weekday = self.now.weekday()
        object.__setattr__(self, "day_of_week", weekday)
        object.__setattr__(self, "is_monday", weekday == 0)
        object.__setattr__(self, "is_weekend", weekday >= 5)


def _dedupe_topics(topics: Sequence[str]) -> tuple[str, ...]:
    seen: list[str] = []
    for topic in topics:
        cleaned = str(topic).strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return tuple(seen[-RECENT_TOPIC_WINDOW:])


def build_request_context(
    profile: UserProfile,
    health: HealthData,
    environment: Optional[EnvironmentSnapshot],
    now: datetime,
    recent_topics: Sequence[str] = (),
    scores: Optional[dict[str, float]] = None,
    language: Optional[str] = None,
    city: Optional[str] = None,
) -> AdviceRequestContext:
    ordered_scores = tuple(sorted((str(k), float(v)) for k, v in (scores or {}).items()))
    return AdviceRequestContext(
        profile=profile,
        health=health,
        environment=environment,
        now=now,
        recent_topics=_dedupe_topics(recent_topics),
        scores=ordered_scores,
        language=normalize_language(language),
        city=(city or "").strip() or None,
    )
