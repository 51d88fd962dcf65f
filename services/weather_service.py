import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests
from starlette.concurrency import run_in_threadpool

from core.config import settings
from models.matching import Matching

logger = logging.getLogger(__name__)


class PrecipitationType(str, Enum):
    NICE = "NICE"
    RAIN = "RAIN"
    RAIN_SNOW = "RAIN_SNOW"
    SNOW = "SNOW"
    SHOWER = "SHOWER"

    @property
    def message(self) -> str:
        return PRECIPITATION_MESSAGES[self]


PRECIPITATION_MESSAGES = {
    PrecipitationType.NICE: "без осадков",
    PrecipitationType.RAIN: "дождь",
    PrecipitationType.RAIN_SNOW: "дождь со снегом",
    PrecipitationType.SNOW: "снег",
    PrecipitationType.SHOWER: "ливень",
}


class WeatherUnavailableError(Exception):
    """Прогноз не получен или не разобран."""


@dataclass(frozen=True)
class WeatherForecast:
    precipitation_type: PrecipitationType
    precipitation_probability: int

    @property
    def is_precipitation(self) -> bool:
        return self.precipitation_type != PrecipitationType.NICE


def classify(
    rain: float, showers: float, snowfall: float, probability: int
) -> PrecipitationType:
    if snowfall > 0 and (rain > 0 or showers > 0):
        return PrecipitationType.RAIN_SNOW
    if snowfall > 0:
        return PrecipitationType.SNOW
    if showers > 0:
        return PrecipitationType.SHOWER
    if rain > 0 or probability >= settings.RAIN_PROBABILITY_THRESHOLD:
        return PrecipitationType.RAIN
    return PrecipitationType.NICE


def _fetch(lat: float, lon: float, day: str, hour: int) -> WeatherForecast:
    params = {
        "latitude": lat,
        "longitude": lon,
        "hourly": "precipitation_probability,rain,showers,snowfall",
        "start_date": day,
        "end_date": day,
        "timezone": settings.TIMEZONE,
    }
    proxies: Optional[dict[str, str]] = None
    if settings.PROXY:
        proxies = {"http": settings.PROXY, "https": settings.PROXY}
    try:
        resp = requests.get(
            settings.WEATHER_API_URL,
            params=params,
            proxies=proxies,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        hourly = resp.json()["hourly"]
        idx = min(hour, len(hourly["time"]) - 1)
        probability = int(hourly["precipitation_probability"][idx] or 0)
        forecast = WeatherForecast(
            precipitation_type=classify(
                float(hourly["rain"][idx] or 0),
                float(hourly["showers"][idx] or 0),
                float(hourly["snowfall"][idx] or 0),
                probability,
            ),
            precipitation_probability=probability,
        )
    except (requests.RequestException, KeyError, IndexError, TypeError, ValueError) as e:
        raise WeatherUnavailableError(f"weather forecast failed: {e}") from e
    return forecast


async def forecast_for(matching: Matching) -> WeatherForecast:
    """Прогноз осадков на место и час начала матча."""
    return await run_in_threadpool(
        _fetch,
        matching.lat,
        matching.lon,
        matching.date.isoformat(),
        matching.start_time.hour,
    )
