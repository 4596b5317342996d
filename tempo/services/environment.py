import logging
import os
from typing import Any, Optional, Protocol

import httpx

from tempo.core.domain import AirQualitySnapshot, EnvironmentSnapshot, EnvironmentTip, PressureTrend, WeatherSnapshot
from tempo.core.errors import EnvironmentUnavailable, validate_coordinates
from tempo.core.localization import normalize_language

logger = logging.getLogger("uvicorn.error")

WEATHER_API_URL = os.getenv("WEATHER_API_URL", "https://api.open-meteo.com/v1/forecast")
AIR_QUALITY_API_URL = os.getenv("AIR_QUALITY_API_URL", "https://air-quality-api.open-meteo.com/v1/air-quality")
ENVIRONMENT_TIMEOUT_SECONDS = float(os.getenv("ENVIRONMENT_TIMEOUT_SECONDS", "5"))

PRESSURE_TREND_THRESHOLD_HPA = 2.0
MAX_ENVIRONMENT_TIPS = 3

TIP_MESSAGES = {
    "ja": {
        "air_quality_good": "大気質は良好。屋外運動に適しています",
        "air_quality_moderate": "大気質は普通です。敏感な方は長時間の屋外活動を控えめに",
        "air_quality_poor": "大気質が悪化しています。屋外での激しい運動は避けましょう",
        "temperature_cold": "気温が低めです。外出時は暖かい服装を",
        "temperature_hot": "気温が高めです。こまめな水分補給と日陰での休憩を",
        "uv_high": "UV指数が高めです。日焼け止めと帽子の着用を推奨します",
        "uv_moderate": "UV指数は中程度。長時間の外出には日焼け止めを",
        "pressure_falling": "気圧が下降中です。頭痛が出やすい方はお気をつけて",
        "humidity_dry": "乾燥しています。保湿と水分補給を心がけましょう",
        "humidity_humid": "湿度が高めです。熱中症に注意しましょう",
    },
    "en": {
        "air_quality_good": "Air quality is good and suits outdoor exercise.",
        "air_quality_moderate": "Air quality is moderate. Sensitive people should limit long outdoor activity.",
        "air_quality_poor": "Air quality is poor. Avoid intense outdoor exercise.",
        "temperature_cold": "It is cold. Dress warmly when you go out.",
        "temperature_hot": "It is hot. Drink water often and rest in the shade.",
        "uv_high": "UV is high. Sunscreen and a hat are recommended.",
        "uv_moderate": "UV is moderate. Use sunscreen for longer time outside.",
        "pressure_falling": "Pressure is falling. Take care if you are prone to headaches.",
        "humidity_dry": "The air is dry. Moisturize and stay hydrated.",
        "humidity_humid": "Humidity is high. Watch out for heat stress.",
    },
}


def calculate_pressure_trend(current_hpa: float, three_hours_ago_hpa: Optional[float]) -> PressureTrend:
    if three_hours_ago_hpa is None:
        return PressureTrend.stable
    diff = current_hpa - three_hours_ago_hpa
    if diff > PRESSURE_TREND_THRESHOLD_HPA:
        return PressureTrend.rising
    if diff < -PRESSURE_TREND_THRESHOLD_HPA:
        return PressureTrend.falling
    return PressureTrend.stable


def build_environment_tips(snapshot: EnvironmentSnapshot, language: str) -> list[EnvironmentTip]:
    """Rule-based tips in priority order: air quality, temperature, UV, pressure, humidity."""
    messages = TIP_MESSAGES[normalize_language(language)]
    weather = snapshot.current
    tips: list[EnvironmentTip] = []

    if snapshot.air_quality is not None:
        aqi = snapshot.air_quality.aqi
        if aqi <= 50:
            key = "air_quality_good"
        elif aqi <= 100:
            key = "air_quality_moderate"
        else:
            key = "air_quality_poor"
        tips.append(EnvironmentTip(type="air_quality", message=messages[key]))

    if weather.temperature_c < 10:
        tips.append(EnvironmentTip(type="temperature", message=messages["temperature_cold"]))
    elif weather.temperature_c > 30:
        tips.append(EnvironmentTip(type="temperature", message=messages["temperature_hot"]))

    if weather.uv_index >= 6:
        tips.append(EnvironmentTip(type="uv", message=messages["uv_high"]))
    elif weather.uv_index >= 3:
        tips.append(EnvironmentTip(type="uv", message=messages["uv_moderate"]))

    if snapshot.pressure_trend == PressureTrend.falling:
        tips.append(EnvironmentTip(type="pressure", message=messages["pressure_falling"]))

    if weather.humidity_percent < 30:
        tips.append(EnvironmentTip(type="humidity", message=messages["humidity_dry"]))
    elif weather.humidity_percent > 80:
        tips.append(EnvironmentTip(type="humidity", message=messages["humidity_humid"]))

    return tips[:MAX_ENVIRONMENT_TIPS]


def _first(values: Any) -> Optional[float]:
    if isinstance(values, list) and values and isinstance(values[0], (int, float)):
        return float(values[0])
    return None


def _get_json(url: str, params: dict[str, Any]) -> dict[str, Any]:
    response = httpx.get(url, params=params, timeout=ENVIRONMENT_TIMEOUT_SECONDS)
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError("response body is not an object")
    return data


def fetch_weather(latitude: float, longitude: float) -> tuple[WeatherSnapshot, Optional[float]]:
    """Return current weather and the surface pressure three hours ago, if reported."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": "temperature_2m,relative_humidity_2m,surface_pressure,uv_index,weather_code",
        "hourly": "surface_pressure",
        "past_hours": 3,
        "forecast_hours": 1,
        "daily": "temperature_2m_max,temperature_2m_min,precipitation_probability_max",
        "forecast_days": 1,
        "timezone": "auto",
    }
    try:
        data = _get_json(WEATHER_API_URL, params)
        current = data["current"]
        daily = data.get("daily") or {}
        hourly = data.get("hourly") or {}
        snapshot = WeatherSnapshot(
            temperature_c=float(current["temperature_2m"]),
            humidity_percent=float(current["relative_humidity_2m"]),
            pressure_hpa=float(current["surface_pressure"]),
            uv_index=float(current.get("uv_index") or 0.0),
            condition_code=int(current["weather_code"]),
            temp_max_c=_first(daily.get("temperature_2m_max")),
            temp_min_c=_first(daily.get("temperature_2m_min")),
            precipitation_probability=_first(daily.get("precipitation_probability_max")),
        )
        pressure_three_hours_ago = _first(hourly.get("surface_pressure"))
    except httpx.HTTPStatusError as exc:
        raise EnvironmentUnavailable(
            f"Weather API failed with status {exc.response.status_code}", status_code=exc.response.status_code
        ) from exc
    except httpx.HTTPError as exc:
        raise EnvironmentUnavailable(f"Weather API request failed: {type(exc).__name__}") from exc
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise EnvironmentUnavailable(f"Invalid weather API response: {exc}") from exc
    return snapshot, pressure_three_hours_ago


def fetch_air_quality(latitude: float, longitude: float) -> AirQualitySnapshot:
    params = {"latitude": latitude, "longitude": longitude, "current": "pm2_5,pm10,us_aqi"}
    try:
        data = _get_json(AIR_QUALITY_API_URL, params)
        current = data["current"]
        pm25 = current.get("pm2_5")
        aqi = current.get("us_aqi")
        pm10 = current.get("pm10")
    except httpx.HTTPStatusError as exc:
        raise EnvironmentUnavailable(
            f"Air Quality API returned {exc.response.status_code}", status_code=exc.response.status_code
        ) from exc
    except httpx.HTTPError as exc:
        raise EnvironmentUnavailable(f"Air Quality API request failed: {type(exc).__name__}") from exc
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise EnvironmentUnavailable(f"Invalid air quality API response: {exc}") from exc
    if not isinstance(pm25, (int, float)) or not isinstance(aqi, (int, float)):
        raise EnvironmentUnavailable("Invalid air quality API response: missing required fields")
    if pm25 < 0 or aqi < 0:
        raise EnvironmentUnavailable("Invalid air quality API response: negative values detected")
    return AirQualitySnapshot(
        aqi=int(round(aqi)),
        pm25=float(pm25),
        pm10=float(pm10) if isinstance(pm10, (int, float)) and pm10 >= 0 else None,
    )


class EnvironmentGateway(Protocol):
    def fetch(self, latitude: float, longitude: float) -> EnvironmentSnapshot:
        ...


class OpenMeteoGateway:
    def fetch(self, latitude: float, longitude: float) -> EnvironmentSnapshot:
        validate_coordinates(latitude, longitude)
        weather, pressure_three_hours_ago = fetch_weather(latitude, longitude)
        air_quality: Optional[AirQualitySnapshot] = None
        try:
            air_quality = fetch_air_quality(latitude, longitude)
        except EnvironmentUnavailable as exc:
            logger.warning("air_quality_unavailable lat=%s lon=%s detail=%s", latitude, longitude, str(exc))
        return EnvironmentSnapshot(
            current=weather,
            air_quality=air_quality,
            pressure_trend=calculate_pressure_trend(weather.pressure_hpa, pressure_three_hours_ago),
        )


def get_environment_gateway() -> EnvironmentGateway:
    return OpenMeteoGateway()
