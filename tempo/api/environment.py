from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status

from tempo.api.errors import advice_error_response
from tempo.core.domain import CamelModel, EnvironmentSnapshot, EnvironmentTip, Location
from tempo.core.errors import CoordinateOutOfRange, EnvironmentUnavailable
from tempo.core.localization import parse_accept_language
from tempo.services.environment import EnvironmentGateway, build_environment_tips, get_environment_gateway

router = APIRouter(prefix="/api/environment", tags=["environment"])


class EnvironmentResponse(CamelModel):
    location: Location
    snapshot: EnvironmentSnapshot
    tips: list[EnvironmentTip]


@router.get("", response_model=EnvironmentResponse)
def get_environment(
    latitude: float = Query(...),
    longitude: float = Query(...),
    city: Optional[str] = Query(default=None, max_length=128),
    accept_language: Optional[str] = Header(default=None),
    gateway: EnvironmentGateway = Depends(get_environment_gateway),
):
    try:
        snapshot = gateway.fetch(latitude, longitude)
    except CoordinateOutOfRange as exc:
        return advice_error_response(exc)
    except EnvironmentUnavailable as exc:
        return advice_error_response(exc, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return EnvironmentResponse(
        location=Location(latitude=latitude, longitude=longitude, city=city),
        snapshot=snapshot,
        tips=build_environment_tips(snapshot, parse_accept_language(accept_language)),
    )
