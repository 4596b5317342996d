from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import Field
from sqlalchemy.orm import Session

from tempo.api.errors import advice_error_response
from tempo.core.cache_store import AdviceCacheStore, SqlKeyValueBackend
from tempo.core.domain import AdviceResult, CamelModel, HealthData, Location, SupplementaryResult, UserProfile
from tempo.core.errors import CoordinateOutOfRange
from tempo.core.localization import parse_accept_language
from tempo.db.session import get_db
from tempo.services.environment import EnvironmentGateway, get_environment_gateway
from tempo.services.health import RequestHealthRecordProvider
from tempo.services.llm import AdviceClient, default_credential, get_advice_client
from tempo.services.orchestrator import AdviceOrchestrator

router = APIRouter(prefix="/api/advice", tags=["advice"])


class RequestTiming(CamelModel):
    current_time: Optional[datetime] = None


class AdviceRequest(CamelModel):
    user_id: str = Field(min_length=1, max_length=128)
    user_profile: UserProfile
    health_data: Optional[HealthData] = None
    location: Location
    scores: Optional[dict[str, float]] = None
    recent_topics: list[str] = Field(default_factory=list, max_length=50)
    context: Optional[RequestTiming] = None


class SupplementaryRequest(CamelModel):
    user_id: str = Field(min_length=1, max_length=128)
    nickname: str = Field(min_length=1, max_length=64)
    context: Optional[RequestTiming] = None


def get_credential() -> Optional[str]:
    return default_credential()


def _request_now(timing: Optional[RequestTiming]) -> datetime:
    if timing and timing.current_time:
        return timing.current_time
    return datetime.now().astimezone()


def _advice_date(now: datetime) -> date:
    return now.date()


def _orchestrator(
    db: Session,
    client: AdviceClient,
    gateway: EnvironmentGateway,
    credential: Optional[str],
    health_data: Optional[HealthData] = None,
) -> AdviceOrchestrator:
    return AdviceOrchestrator(
        store=AdviceCacheStore(SqlKeyValueBackend(db)),
        client=client,
        gateway=gateway,
        health_provider=RequestHealthRecordProvider(health_data),
        credential=credential,
    )


@router.post("", response_model=AdviceResult)
def get_daily_advice(
    payload: AdviceRequest,
    accept_language: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    client: AdviceClient = Depends(get_advice_client),
    gateway: EnvironmentGateway = Depends(get_environment_gateway),
    credential: Optional[str] = Depends(get_credential),
):
    now = _request_now(payload.context)
    orchestrator = _orchestrator(db, client, gateway, credential, payload.health_data)
    try:
        return orchestrator.get_advice(
            user_id=payload.user_id,
            advice_date=_advice_date(now),
            now=now,
            profile=payload.user_profile,
            location=payload.location,
            scores=payload.scores,
            client_topics=payload.recent_topics,
            language=parse_accept_language(accept_language),
        )
    except CoordinateOutOfRange as exc:
        return advice_error_response(exc)


@router.post("/supplementary", response_model=SupplementaryResult)
def get_supplementary_advice(
    payload: SupplementaryRequest,
    accept_language: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    client: AdviceClient = Depends(get_advice_client),
    gateway: EnvironmentGateway = Depends(get_environment_gateway),
    credential: Optional[str] = Depends(get_credential),
) -> SupplementaryResult:
    now = _request_now(payload.context)
    orchestrator = _orchestrator(db, client, gateway, credential)
    return orchestrator.get_supplementary(
        user_id=payload.user_id,
        advice_date=_advice_date(now),
        now=now,
        nickname=payload.nickname,
        language=parse_accept_language(accept_language),
    )
