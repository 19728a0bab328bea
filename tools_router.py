# backend/tools_router.py

import logging

import requests
from fastapi import APIRouter

from config import settings
from errors import ConfigError, UpstreamError, ValidationError
from schemas import WeatherOut, WeatherRequest

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/tools",
    tags=["tools"]
)


def get_weather(city: str) -> WeatherOut:
    if not city or not city.strip():
        raise ValidationError("City is required")
    if not settings.weather_api_key:
        raise ConfigError("WEATHER_API_KEY is not set in .env")

    try:
        r = requests.get(
            settings.weather_url,
            params={"q": city.strip(), "units": "metric", "appid": settings.weather_api_key},
            timeout=settings.upstream_timeout,
        )
        data = r.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error("Weather API error: %s", e)
        raise UpstreamError("Failed to fetch weather", status_code=500)

    if not r.ok:
        message = data.get("message") if isinstance(data, dict) else None
        raise UpstreamError(message or "Weather API error", status_code=r.status_code)

    if not isinstance(data, dict):
        raise UpstreamError("Weather API error")
    main = data.get("main")
    weather = (data.get("weather") or [{}])[0]
    if not isinstance(main, dict) or not isinstance(weather, dict):
        raise UpstreamError("Weather API error")
    return WeatherOut(
        city=data.get("name"),
        country=(data.get("sys") or {}).get("country"),
        temp=main.get("temp"),
        feels_like=main.get("feels_like"),
        humidity=main.get("humidity"),
        description=weather.get("description"),
        icon=weather.get("icon"),
    )


# ─── POST /api/tools/weather ───────────────────────────────────────────────────
@router.post("/weather", response_model=WeatherOut)
def weather_route(body: WeatherRequest):
    return get_weather(body.city)
