"""Fishing-condition scoring and condition descriptions."""

from fishcast.models.schemas import FishingRating


def _wave_points(wave_height: float) -> int:
    if wave_height < 0.3:
        return 5
    if wave_height < 0.7:
        return 4
    if wave_height < 1.2:
        return 3
    if wave_height < 2.0:
        return 2
    if wave_height < 3.0:
        return 1
    return 0


def _wind_points(wind_speed: float) -> int:
    # Moderate wind scores highest: some chop helps, strong wind is a hazard
    if wind_speed < 5:
        return 3
    if wind_speed < 15:
        return 5
    if wind_speed < 25:
        return 3
    if wind_speed < 35:
        return 1
    return 0


def _swell_points(swell_period: float) -> int:
    if swell_period > 10:
        return 5
    if swell_period > 8:
        return 4
    if swell_period > 6:
        return 3
    if swell_period > 4:
        return 2
    return 1


def score_fishing_conditions(
    wave_height: float | None,
    wind_speed: float | None,
    swell_period: float | None,
) -> FishingRating:
    """
    Rate fishing conditions from wave height (m), wind speed (km/h) and
    swell period (s).

    Each known factor contributes banded points; the rating is the mean of
    the points of the known factors only.

    Args:
        wave_height: Significant wave height in meters, or None.
        wind_speed: 10m wind speed in km/h, or None.
        swell_period: Swell wave period in seconds, or None.

    Returns:
        FishingRating (Unknown when wave height and wind are both unknown).
    """
    if wave_height is None and wind_speed is None:
        return FishingRating.UNKNOWN

    points: list[int] = []
    if wave_height is not None:
        points.append(_wave_points(wave_height))
    if wind_speed is not None:
        points.append(_wind_points(wind_speed))
    if swell_period is not None:
        points.append(_swell_points(swell_period))

    mean = sum(points) / len(points)
    if mean >= 4.5:
        return FishingRating.EXCELLENT
    if mean >= 3.5:
        return FishingRating.GOOD
    if mean >= 2.5:
        return FishingRating.FAIR
    return FishingRating.POOR


def marine_advice(wave_height: float | None, wind_speed: float | None) -> str:
    """Return a short boating/fishing advisory for the given conditions."""
    parts: list[str] = []

    if wave_height is not None:
        if wave_height < 0.5:
            parts.append("Calm seas with minimal waves. Excellent for small vessels.")
        elif wave_height < 1.0:
            parts.append("Light chop with small waves. Good for most boats.")
        elif wave_height < 2.0:
            parts.append("Moderate waves. Use caution with smaller vessels.")
        elif wave_height < 3.0:
            parts.append("Rough seas with significant waves. Small craft advisory.")
        else:
            parts.append("Dangerous wave conditions. Consider postponing trip.")

    if wind_speed is not None:
        if wind_speed < 10:
            parts.append("Light winds favorable for fishing.")
        elif wind_speed < 20:
            parts.append("Moderate winds may affect casting and boat positioning.")
        elif wind_speed < 30:
            parts.append("Strong winds will make fishing challenging.")
        else:
            parts.append("High winds create unsafe boating conditions.")

    if not parts:
        return "Marine data not available"
    return " ".join(parts)


def wind_direction_label(degrees: float | None) -> str:
    """Convert degrees to an 8-point compass direction."""
    if degrees is None:
        return ""
    directions = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]
    return directions[int(degrees % 360 / 45 + 0.5) % 8]


def season_for(latitude: float, month: int) -> str:
    """Meteorological season for a month, flipped south of the equator."""
    if 3 <= month <= 5:
        north, south = "spring", "autumn"
    elif 6 <= month <= 8:
        north, south = "summer", "winter"
    elif 9 <= month <= 11:
        north, south = "autumn", "spring"
    else:
        north, south = "winter", "summer"
    return north if latitude >= 0 else south
