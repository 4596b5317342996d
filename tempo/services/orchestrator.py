import logging
import os
import threading
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from contextlib import contextmanager
from datetime import date, datetime
from typing import ClassVar, Optional, Sequence

from tempo.core.cache_store import AdviceCacheStore, CacheEntry
from tempo.core.context import build_request_context
from tempo.core.domain import (
    AdviceResult,
    DaySlot,
    EnvironmentSnapshot,
    GeneratedAdvice,
    HealthData,
    Location,
    ServedFrom,
    SupplementaryResult,
    UserProfile,
)
from tempo.core.errors import AdviceError, CredentialError, EnvironmentUnavailable, validate_coordinates
from tempo.core.localization import normalize_language
from tempo.core.prompt_builder import build_prompt, build_supplementary_prompt
from tempo.core.security import validate_credential
from tempo.core.static_advice import build_static_advice
from tempo.core.time_slot import SUPPLEMENTARY_SLOTS, classify_time_slot, supplementary_allowed
from tempo.core.validator import validate_advice, validate_supplementary
from tempo.services.environment import ENVIRONMENT_TIMEOUT_SECONDS, EnvironmentGateway, build_environment_tips
from tempo.services.health import HealthRecordProvider
from tempo.services.llm import AdviceClient

logger = logging.getLogger("uvicorn.error")

ENVIRONMENT_WAIT_SECONDS = float(os.getenv("ENVIRONMENT_WAIT_SECONDS", str(ENVIRONMENT_TIMEOUT_SECONDS)))
UNEXPECTED_ERROR_CODE = "UNEXPECTED_ERROR"


class AdviceOrchestrator:
    """Decides between cache, fresh generation, previous days and the static advisory.

    One orchestrator is built per request. The in-flight registry is shared by
    the whole process so two requests missing the cache for the same
    (user, date) produce a single provider call.
    """

    _inflight: ClassVar[dict[str, tuple[threading.Lock, int]]] = {}
    _inflight_guard: ClassVar[threading.Lock] = threading.Lock()

    def __init__(
        self,
        store: AdviceCacheStore,
        client: AdviceClient,
        gateway: EnvironmentGateway,
        health_provider: HealthRecordProvider,
        credential: Optional[str],
    ) -> None:
        self.store = store
        self.client = client
        self.gateway = gateway
        self.health_provider = health_provider
        self.credential = credential

    @classmethod
    @contextmanager
    def _key_lock(cls, key: str) -> Iterator[None]:
        with cls._inflight_guard:
            lock, holders = cls._inflight.get(key, (threading.Lock(), 0))
            cls._inflight[key] = (lock, holders + 1)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with cls._inflight_guard:
                lock, holders = cls._inflight[key]
                if holders <= 1:
                    del cls._inflight[key]
                else:
                    cls._inflight[key] = (lock, holders - 1)

    def _fresh_entry(self, user_id: str, advice_date: date, now: datetime) -> Optional[CacheEntry]:
        try:
            entry = self.store.get(user_id, advice_date)
        except Exception as exc:
            logger.exception("advice_cache_read_error user=%s date=%s detail=%s", user_id, advice_date, str(exc))
            return None
        if entry is not None and entry.is_fresh(now):
            return entry
        return None

    def get_advice(
        self,
        user_id: str,
        advice_date: date,
        now: datetime,
        profile: UserProfile,
        location: Location,
        scores: Optional[dict[str, float]] = None,
        client_topics: Sequence[str] = (),
        language: Optional[str] = None,
    ) -> AdviceResult:
        validate_coordinates(location.latitude, location.longitude)
        lang = normalize_language(language)
        slot = classify_time_slot(now)

        entry = self._fresh_entry(user_id, advice_date, now)
        if entry is not None:
            logger.info("advice_cache_hit user=%s date=%s", user_id, advice_date)
            return AdviceResult(advice=entry.advice, served_from=ServedFrom.cache)

        with self._key_lock(f"{user_id}:{advice_date.isoformat()}"):
            entry = self._fresh_entry(user_id, advice_date, now)
            if entry is not None:
                logger.info("advice_cache_hit_after_wait user=%s date=%s", user_id, advice_date)
                return AdviceResult(advice=entry.advice, served_from=ServedFrom.cache)

            try:
                advice = self._generate(
                    user_id, advice_date, now, slot, profile, location, scores or {}, client_topics, lang
                )
            except CredentialError as exc:
                logger.error("advice_credential_not_configured user=%s detail=%s", user_id, str(exc))
                return self._fallback(user_id, advice_date, now, profile.nickname, slot, lang, exc.code)
            except AdviceError as exc:
                logger.warning(
                    "advice_generation_failed user=%s date=%s code=%s detail=%s",
                    user_id,
                    advice_date,
                    exc.code,
                    str(exc),
                )
                return self._fallback(user_id, advice_date, now, profile.nickname, slot, lang, exc.code)
            except Exception as exc:
                logger.exception("advice_unhandled_error user=%s detail=%s", user_id, str(exc))
                return self._fallback(user_id, advice_date, now, profile.nickname, slot, lang, UNEXPECTED_ERROR_CODE)

            try:
                self.store.put(user_id, advice_date, advice)
            except Exception as exc:
                logger.exception(
                    "advice_cache_write_error user=%s date=%s detail=%s", user_id, advice_date, str(exc)
                )
            logger.info("advice_generated user=%s date=%s slot=%s", user_id, advice_date, slot.value)
            return AdviceResult(advice=advice, served_from=ServedFrom.generated)

    def _gather(
        self, user_id: str, advice_date: date, location: Location
    ) -> tuple[HealthData, Optional[EnvironmentSnapshot]]:
        pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="advice-fetch")
        try:
            health_future = pool.submit(self.health_provider.fetch, user_id, advice_date)
            environment_future = pool.submit(self.gateway.fetch, location.latitude, location.longitude)
            environment: Optional[EnvironmentSnapshot] = None
            try:
                environment = environment_future.result(timeout=ENVIRONMENT_WAIT_SECONDS)
            except FutureTimeout:
                logger.warning("environment_fetch_timeout user=%s wait=%.1fs", user_id, ENVIRONMENT_WAIT_SECONDS)
            except EnvironmentUnavailable as exc:
                logger.warning("environment_unavailable user=%s detail=%s", user_id, str(exc))
            except Exception as exc:
                logger.exception("environment_fetch_error user=%s detail=%s", user_id, str(exc))
            health = health_future.result()
        finally:
            # A slow environment call is abandoned, not awaited.
            pool.shutdown(wait=False)
        return health, environment

    def _generate(
        self,
        user_id: str,
        advice_date: date,
        now: datetime,
        slot: DaySlot,
        profile: UserProfile,
        location: Location,
        scores: dict[str, float],
        client_topics: Sequence[str],
        language: str,
    ) -> GeneratedAdvice:
        credential = validate_credential(self.credential)
        health, environment = self._gather(user_id, advice_date, location)
        topics = self._recent_topics(user_id, advice_date) + list(client_topics)
        context = build_request_context(
            profile=profile,
            health=health,
            environment=environment,
            now=now,
            recent_topics=topics,
            scores=scores,
            language=language,
            city=location.city,
        )
        raw = self.client.generate(build_prompt(context), credential)
        advice = validate_advice(raw, generated_at=now, time_slot=slot)
        if environment is not None and not advice.environment_tips:
            advice = advice.model_copy(update={"environment_tips": build_environment_tips(environment, language)})
        return advice

    def _recent_topics(self, user_id: str, advice_date: date) -> list[str]:
        try:
            return list(self.store.recent_topics(user_id, advice_date))
        except Exception as exc:
            logger.exception("advice_topic_read_error user=%s detail=%s", user_id, str(exc))
            return []

    def _fallback(
        self,
        user_id: str,
        advice_date: date,
        now: datetime,
        nickname: str,
        slot: DaySlot,
        language: str,
        error_code: Optional[str],
    ) -> AdviceResult:
        try:
            hit = self.store.get_fallback(user_id, advice_date)
        except Exception as exc:
            logger.exception("advice_fallback_lookup_error user=%s detail=%s", user_id, str(exc))
            hit = None
        if hit is not None:
            entry, days_back = hit
            logger.info("advice_served_stale user=%s date=%s days_back=%s", user_id, advice_date, days_back)
            return AdviceResult(
                advice=entry.advice,
                served_from=ServedFrom.fallback_cache,
                is_stale=True,
                stale_days=days_back,
                error_code=error_code,
            )
        logger.info("advice_served_static user=%s date=%s", user_id, advice_date)
        return AdviceResult(
            advice=build_static_advice(nickname, slot, language, now),
            served_from=ServedFrom.static_fallback,
            error_code=error_code,
        )

    def get_supplementary(
        self,
        user_id: str,
        advice_date: date,
        now: datetime,
        nickname: str,
        language: Optional[str] = None,
    ) -> SupplementaryResult:
        lang = normalize_language(language)
        slot = classify_time_slot(now)
        if slot not in SUPPLEMENTARY_SLOTS:
            return SupplementaryResult(available=False, reason="morning_slot")
        try:
            allowed = supplementary_allowed(self.store, user_id, advice_date, slot)
            entry = self.store.get(user_id, advice_date) if allowed else None
        except Exception as exc:
            logger.exception("supplementary_cache_read_error user=%s detail=%s", user_id, str(exc))
            return SupplementaryResult(available=False, reason=UNEXPECTED_ERROR_CODE)
        if not allowed:
            return SupplementaryResult(available=False, reason="already_shown")
        if entry is None:
            return SupplementaryResult(available=False, reason="no_main_advice")

        prompt = build_supplementary_prompt(entry.advice, slot, nickname, lang)
        try:
            raw = self.client.generate(prompt, self.credential)
            advice = validate_supplementary(raw, generated_at=now, time_slot=slot)
        except AdviceError as exc:
            logger.warning("supplementary_generation_failed user=%s slot=%s code=%s", user_id, slot.value, exc.code)
            return SupplementaryResult(available=False, reason=exc.code)
        except Exception as exc:
            logger.exception("supplementary_unhandled_error user=%s detail=%s", user_id, str(exc))
            return SupplementaryResult(available=False, reason=UNEXPECTED_ERROR_CODE)

        try:
            self.store.mark_slot_shown(user_id, advice_date, slot)
        except Exception as exc:
            logger.exception("supplementary_slot_write_error user=%s detail=%s", user_id, str(exc))
        return SupplementaryResult(available=True, advice=advice)
