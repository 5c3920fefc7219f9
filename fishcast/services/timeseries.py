"""Merging, windowing and aggregation of hourly weather and marine series."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fishcast.models.schemas import (
    HOURLY_FIELDS,
    MARINE_FIELDS,
    CurrentConditions,
    CurrentSnapshot,
    DailySummary,
    HourlySeries,
)
from fishcast.services.scoring import score_fishing_conditions

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24


def parse_hourly(block: dict | None, field_map: dict[str, str]) -> HourlySeries:
    """
    Build an HourlySeries from an upstream "hourly" block.

    Arrays are padded with None or truncated to the length of `time`, so
    every populated field shares the same index-to-time mapping.

    Args:
        block: Upstream hourly block (may be None or empty).
        field_map: Upstream field name -> HourlySeries field name.

    Returns:
        HourlySeries with only the mapped fields populated.
    """
    if not block:
        return HourlySeries()

    times = [str(t) for t in block.get("time") or []]
    data: dict[str, list | None] = {"time": times}
    for upstream_name, field in field_map.items():
        values = block.get(upstream_name)
        if values is None:
            continue
        data[field] = _fit(values, len(times))
    return HourlySeries(**data)


def parse_current(block: dict | None, field_map: dict[str, str]) -> CurrentSnapshot | None:
    """Build a CurrentSnapshot from an upstream "current" block."""
    if not block:
        return None
    data = {
        field: block[upstream_name]
        for upstream_name, field in field_map.items()
        if block.get(upstream_name) is not None
    }
    return CurrentSnapshot(**data)


def merge_hourly(weather: HourlySeries, marine: HourlySeries | None) -> HourlySeries:
    """
    Index-align the marine arrays onto the weather time backbone.

    Marine index i maps to weather index i. Trailing hours beyond the marine
    arrays, and every hour when marine data is missing, get None marine
    fields. Timestamps are not reconciled; a differing start time is only
    logged.

    Args:
        weather: Weather series (time backbone).
        marine: Marine series, or None when the marine fetch failed.

    Returns:
        Combined HourlySeries with the weather series' length.
    """
    length = len(weather.time)

    if marine is not None and marine.time and weather.time:
        if marine.time[0] != weather.time[0]:
            logger.warning(
                f"Marine series starts at {marine.time[0]} but weather series "
                f"starts at {weather.time[0]}; merging by index"
            )

    data = weather.model_dump()
    for field in MARINE_FIELDS:
        values = getattr(marine, field) if marine is not None else None
        data[field] = [
            values[i] if values is not None and i < len(values) else None
            for i in range(length)
        ]
    return HourlySeries(**data)


def merge_current(
    weather_current: CurrentSnapshot | None,
    marine_current: CurrentSnapshot | None,
) -> CurrentSnapshot | None:
    """Union the two "current" blocks; a missing side contributes None fields."""
    if weather_current is None and marine_current is None:
        return None

    merged: dict = {}
    if marine_current is not None:
        merged.update(marine_current.model_dump(exclude_none=True))
    if weather_current is not None:
        merged.update(weather_current.model_dump(exclude_none=True))
    return CurrentSnapshot(**merged)


def parse_time(value: str, utc_offset_seconds: int = 0) -> datetime | None:
    """
    Parse an upstream timestamp into an aware datetime.

    Accepts unix seconds or ISO-8601. Naive ISO values are interpreted in the
    upstream's reported UTC offset.
    """
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except ValueError:
        pass

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone(timedelta(seconds=utc_offset_seconds)))
    return parsed


def resolve_current_index(
    times: list[str],
    now: datetime,
    utc_offset_seconds: int = 0,
) -> int:
    """
    Find the index whose timestamp is closest to `now`.

    Linear scan; ties resolve to the earliest index. Unparseable timestamps
    are skipped. An empty series resolves to 0.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    best_index = 0
    best_delta: float | None = None
    for index, raw in enumerate(times):
        moment = parse_time(raw, utc_offset_seconds)
        if moment is None:
            continue
        delta = abs((moment - now).total_seconds())
        if best_delta is None or delta < best_delta:
            best_index = index
            best_delta = delta
    return best_index


def slice_window(series: HourlySeries, start: int, size: int) -> HourlySeries:
    """Fixed-size window from `start`; shorter at the end, never wraps or pads."""
    end = start + size
    data: dict = {"time": series.time[start:end]}
    for field in HOURLY_FIELDS:
        values = getattr(series, field)
        data[field] = values[start:end] if values is not None else None
    return HourlySeries(**data)


def aggregate_daily(series: HourlySeries) -> list[DailySummary]:
    """
    Partition the series into 24-hour chunks from absolute index 0.

    Averaged fields use the mean of known values; temperature uses min/max.
    A chunk with no known values for a field yields None for it.
    """
    summaries: list[DailySummary] = []

    for start in range(0, len(series.time), HOURS_PER_DAY):
        chunk = slice_window(series, start, HOURS_PER_DAY)
        temperatures = _known(chunk.temperature)
        wind_mean = _mean(chunk.wind_speed)
        wave_mean = _mean(chunk.wave_height)
        swell_period_mean = _mean(chunk.swell_period)

        summaries.append(
            DailySummary(
                date=chunk.time[0][:10],
                temperature_min=min(temperatures) if temperatures else None,
                temperature_max=max(temperatures) if temperatures else None,
                wind_speed_mean=wind_mean,
                wave_height_mean=wave_mean,
                swell_height_mean=_mean(chunk.swell_height),
                swell_period_mean=swell_period_mean,
                precipitation_probability_mean=_mean(chunk.precipitation_probability),
                fishing_conditions=score_fishing_conditions(
                    wave_mean, wind_mean, swell_period_mean
                ),
            )
        )
    return summaries


def build_current_conditions(
    current: CurrentSnapshot | None,
    window: HourlySeries,
) -> CurrentConditions:
    """
    Project the merged snapshot into CurrentConditions.

    Each field prefers the upstream "current" value and falls back to
    index 0 of the hourly window (the resolved "now" hour).
    """

    def pick(field: str) -> float | None:
        value = getattr(current, field) if current is not None else None
        if value is None and field in HOURLY_FIELDS:
            value = window.value_at(field, 0)
        return value

    wave_height = pick("wave_height")
    wind_speed = pick("wind_speed")
    swell_period = pick("swell_period")
    code = pick("weather_code")
    weather_code = int(code) if code is not None else None

    return CurrentConditions(
        temperature=pick("temperature"),
        apparent_temperature=current.apparent_temperature if current else None,
        wind_speed=wind_speed,
        wind_direction=pick("wind_direction"),
        wind_gusts=pick("wind_gusts"),
        wave_height=wave_height,
        wave_direction=pick("wave_direction"),
        swell_height=pick("swell_height"),
        swell_direction=pick("swell_direction"),
        swell_period=swell_period,
        weather_code=weather_code,
        condition=weather_condition_label(weather_code),
        fishing_conditions=score_fishing_conditions(wave_height, wind_speed, swell_period),
    )


def weather_condition_label(code: int | None) -> str:
    """Map a WMO weather code to a display label (codes 0-2 merge to "Clear sky")."""
    if code is None:
        return "Unknown"
    if code in (0, 1, 2):
        return "Clear sky"
    if code == 3:
        return "Overcast"
    if 45 <= code <= 49:
        return "Fog"
    if 51 <= code <= 55:
        return "Drizzle"
    if 56 <= code <= 57:
        return "Freezing Drizzle"
    if 61 <= code <= 65:
        return "Rain"
    if 66 <= code <= 67:
        return "Freezing Rain"
    if 71 <= code <= 77:
        return "Snow"
    if 80 <= code <= 82:
        return "Rain showers"
    if 85 <= code <= 86:
        return "Snow showers"
    if 95 <= code <= 99:
        return "Thunderstorm"
    return "Unknown"


def _fit(values: list, length: int) -> list:
    if len(values) >= length:
        return list(values[:length])
    return list(values) + [None] * (length - len(values))


def _known(values: list | None) -> list[float]:
    return [v for v in values or [] if v is not None]


def _mean(values: list | None) -> float | None:
    known = _known(values)
    return sum(known) / len(known) if known else None
