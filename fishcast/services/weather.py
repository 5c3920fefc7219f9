"""Open-Meteo forecast + marine client producing merged conditions reports."""

import asyncio
import logging
from datetime import datetime, timezone

from fishcast.config import get_settings
from fishcast.models.schemas import ConditionsReport, CurrentConditions, HourlySeries, LocationPoint
from fishcast.services.cache import VersionedCache, get_cache
from fishcast.services.cache_keys import weather_key
from fishcast.services.http import fetch_with_retry, get_http_client
from fishcast.services.timeseries import (
    aggregate_daily,
    build_current_conditions,
    merge_current,
    merge_hourly,
    parse_current,
    parse_hourly,
    resolve_current_index,
    slice_window,
)

logger = logging.getLogger(__name__)

NEXT_HOURS_WINDOW = 24

# Open-Meteo field name -> HourlySeries field name
WEATHER_HOURLY_FIELDS = {
    "temperature_2m": "temperature",
    "wind_speed_10m": "wind_speed",
    "wind_direction_10m": "wind_direction",
    "wind_gusts_10m": "wind_gusts",
    "weather_code": "weather_code",
    "precipitation_probability": "precipitation_probability",
    "precipitation": "precipitation_amount",
    "visibility": "visibility",
}

MARINE_HOURLY_FIELDS = {
    "wave_height": "wave_height",
    "wave_direction": "wave_direction",
    "swell_wave_height": "swell_height",
    "swell_wave_direction": "swell_direction",
    "swell_wave_period": "swell_period",
}

WEATHER_CURRENT_FIELDS = {
    "time": "time",
    "temperature_2m": "temperature",
    "apparent_temperature": "apparent_temperature",
    "is_day": "is_day",
    "precipitation": "precipitation",
    "weather_code": "weather_code",
    "wind_speed_10m": "wind_speed",
    "wind_direction_10m": "wind_direction",
    "wind_gusts_10m": "wind_gusts",
}

MARINE_CURRENT_FIELDS = {"time": "time", **MARINE_HOURLY_FIELDS}

WEATHER_DAILY_FIELDS = (
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "wind_speed_10m_max",
)


class WeatherUnavailableError(Exception):
    """The required weather (forecast) endpoint could not be fetched."""


def _base_params(location: LocationPoint) -> dict:
    settings = get_settings()
    params = {
        "latitude": location.latitude,
        "longitude": location.longitude,
        "timezone": settings.open_meteo_timezone,
        "forecast_days": settings.open_meteo_forecast_days,
    }
    if settings.open_meteo_api_key:
        params["apikey"] = settings.open_meteo_api_key
    return params


def _weather_params(location: LocationPoint) -> dict:
    return {
        **_base_params(location),
        "current": ",".join(k for k in WEATHER_CURRENT_FIELDS if k != "time"),
        "hourly": ",".join(WEATHER_HOURLY_FIELDS),
        "daily": ",".join(WEATHER_DAILY_FIELDS),
        "wind_speed_unit": "kmh",
    }


def _marine_params(location: LocationPoint) -> dict:
    return {
        **_base_params(location),
        "current": ",".join(k for k in MARINE_CURRENT_FIELDS if k != "time"),
        "hourly": ",".join(MARINE_HOURLY_FIELDS),
    }


async def _fetch_json(url: str, params: dict) -> dict:
    settings = get_settings()
    client = await get_http_client()
    response = await fetch_with_retry(
        client,
        "GET",
        url,
        max_retries=settings.fetch_max_retries,
        initial_delay=settings.fetch_initial_delay,
        params=params,
    )
    return response.json()


def build_report(
    location: LocationPoint,
    weather_json: dict,
    marine_json: dict | None,
    now: datetime,
) -> ConditionsReport:
    """
    Turn the two upstream payloads into a ConditionsReport.

    Args:
        location: Location the payloads were fetched for.
        weather_json: Forecast endpoint payload (required).
        marine_json: Marine endpoint payload, or None when unavailable.
        now: Wall-clock time used to resolve the current hour.

    Returns:
        ConditionsReport with merged series, current conditions and daily
        summaries.
    """
    weather_series = parse_hourly(weather_json.get("hourly"), WEATHER_HOURLY_FIELDS)
    marine_series: HourlySeries | None = None
    marine_current = None
    if marine_json is not None:
        marine_series = parse_hourly(marine_json.get("hourly"), MARINE_HOURLY_FIELDS)
        marine_current = parse_current(marine_json.get("current"), MARINE_CURRENT_FIELDS)

    hourly = merge_hourly(weather_series, marine_series)
    current = merge_current(
        parse_current(weather_json.get("current"), WEATHER_CURRENT_FIELDS),
        marine_current,
    )

    offset = int(weather_json.get("utc_offset_seconds") or 0)
    current_index = resolve_current_index(hourly.time, now, offset)
    window = slice_window(hourly, current_index, NEXT_HOURS_WINDOW)

    return ConditionsReport(
        location=location,
        hourly=hourly,
        current=build_current_conditions(current, window),
        current_index=current_index,
        next_24_hours=window,
        daily=aggregate_daily(hourly),
        marine_available=marine_series is not None,
        fetched_at=now,
    )


async def fetch_conditions(location: LocationPoint, now: datetime | None = None) -> ConditionsReport:
    """
    Fetch forecast and marine data in parallel and merge them.

    Marine data is optional: a marine failure is logged and the report
    carries None for every marine field. Weather data is required.

    Raises:
        WeatherUnavailableError: If the forecast endpoint fails.
    """
    settings = get_settings()
    weather_result, marine_result = await asyncio.gather(
        _fetch_json(settings.open_meteo_forecast_url, _weather_params(location)),
        _fetch_json(settings.open_meteo_marine_url, _marine_params(location)),
        return_exceptions=True,
    )

    # Cancellation and other non-Exception signals must propagate
    for result in (weather_result, marine_result):
        if isinstance(result, BaseException) and not isinstance(result, Exception):
            raise result

    if isinstance(weather_result, Exception):
        logger.error(f"Weather fetch failed for {location.label}: {weather_result}")
        raise WeatherUnavailableError(f"Weather data unavailable for {location.name}") from weather_result

    marine_json: dict | None = None
    if isinstance(marine_result, Exception):
        logger.warning(f"Marine fetch failed for {location.label}, continuing without it: {marine_result}")
    else:
        marine_json = marine_result

    return build_report(location, weather_result, marine_json, now or datetime.now(timezone.utc))


async def get_conditions(
    location: LocationPoint,
    cache: VersionedCache | None = None,
) -> ConditionsReport:
    """Cache-through wrapper around fetch_conditions."""
    cache = cache or get_cache()
    settings = get_settings()
    key = weather_key(location, cache.now().date())

    cached = cache.get_as(key, ConditionsReport.model_validate)
    if cached is not None:
        logger.debug("Weather cache hit", extra={"cache_key": key})
        return cached

    report = await fetch_conditions(location)
    cache.set(key, report.model_dump(mode="json"), settings.weather_cache_ttl, rollover=True)
    return report


async def get_current_conditions(
    location: LocationPoint,
    cache: VersionedCache | None = None,
) -> CurrentConditions:
    """Current-hour projection for a location."""
    report = await get_conditions(location, cache)
    return report.current
