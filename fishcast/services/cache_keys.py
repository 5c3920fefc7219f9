"""Versioned cache key builders.

Bumping a version tag in CACHE_VERSIONS invalidates every entry of that
dataset without a migration step: old keys are simply never read again and
expire on their own TTL.
"""

import hashlib
from datetime import date
from typing import Iterable

from fishcast.models.schemas import LocationPoint
from fishcast.services.regions import location_slug, month_year_bucket, sea_name_for

CACHE_VERSIONS: dict[str, str] = {
    "weather": "v2",
    "gear": "v1",
    "tips": "v1",
    "species": "v3",
    "toxic_species": "v5",
}


def _prefix(dataset: str, location: LocationPoint) -> str:
    sea = location_slug(sea_name_for(location.name))
    return f"{dataset}_{CACHE_VERSIONS[dataset]}_{location_slug(location.name)}_{sea}"


def _coords(location: LocationPoint) -> str:
    return f"{location.latitude:.3f}_{location.longitude:.3f}"


def weather_key(location: LocationPoint, today: date) -> str:
    """Key for the merged conditions report of a location."""
    return f"{_prefix('weather', location)}_{month_year_bucket(today)}_{_coords(location)}"


def gear_key(location: LocationPoint, gear_ids: Iterable[str], today: date) -> str:
    """Day-scoped key for a gear analysis of a location and gear set."""
    digest = hashlib.sha1(",".join(sorted(set(gear_ids))).encode()).hexdigest()[:12]
    return f"{_prefix('gear', location)}_{today.isoformat()}_{_coords(location)}_{digest}"


def tips_key(location: LocationPoint, today: date) -> str:
    """Day-scoped key for AI fishing tips."""
    return f"{_prefix('tips', location)}_{today.isoformat()}"


def species_key(location: LocationPoint, today: date, page: int = 1) -> str:
    """Monthly key for one page of local species data."""
    return f"{_prefix('species', location)}_{month_year_bucket(today)}_page_{page}"


def toxic_species_key(location: LocationPoint, today: date) -> str:
    """Monthly key for toxic species data, pinned to rounded coordinates."""
    return f"{_prefix('toxic_species', location)}_{month_year_bucket(today)}_{_coords(location)}"


def location_keys(location: LocationPoint, today: date) -> list[str]:
    """
    Keys for `today` that are pruned when the user moves away.

    Only the current day and month buckets and the first species page are
    listed. Tips from earlier days and later species pages of the old
    location are left to expire on their own TTL.
    """
    return [
        weather_key(location, today),
        tips_key(location, today),
        species_key(location, today),
        toxic_species_key(location, today),
    ]
