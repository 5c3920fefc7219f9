"""Pytest configuration and fixtures for fishcast tests."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Generator
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

import fishcast.services.ai as ai_module
from fishcast.main import app
from fishcast.models.schemas import CurrentConditions, FishingRating, GearItem, LocationPoint
from fishcast.services.cache import InMemoryKeyValueStore, VersionedCache, clear_cache
from fishcast.services.session import clear_sessions

START = datetime(2024, 6, 15, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock for cache tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


def hourly_times(count: int, start: datetime = START) -> list[str]:
    """Open-Meteo style local ISO timestamps, one per hour."""
    return [(start + timedelta(hours=i)).strftime("%Y-%m-%dT%H:%M") for i in range(count)]


def create_mock_httpx_response(
    status_code: int = 200,
    json_data: dict | None = None,
) -> MagicMock:
    """Helper to create mock httpx responses."""
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    if json_data is not None:
        response.json.return_value = json_data
    return response


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Fresh cache, session registry and AI provider for every test."""
    clear_cache()
    clear_sessions()
    ai_module._ai_provider = None
    yield
    clear_cache()
    clear_sessions()
    ai_module._ai_provider = None


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create test client for FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at noon UTC on 2024-06-15."""
    return FakeClock(datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def memory_cache(clock: FakeClock) -> VersionedCache:
    """In-memory cache driven by the fake clock."""
    return VersionedCache(InMemoryKeyValueStore(maxsize=100), clock=clock)


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for mock httpx responses."""
    return create_mock_httpx_response


@pytest.fixture
def make_times() -> Callable[..., list[str]]:
    """Factory for hourly timestamp arrays."""
    return hourly_times


@pytest.fixture
def sample_location() -> LocationPoint:
    """Create a sample coastal location."""
    return LocationPoint(latitude=35.8989, longitude=14.5146, name="Valletta, Malta")


@pytest.fixture
def other_location() -> LocationPoint:
    """Create a second, distinct location."""
    return LocationPoint(latitude=36.1408, longitude=-5.3536, name="Tarifa, Spain")


@pytest.fixture
def sample_gear() -> list[GearItem]:
    """Create a small gear collection."""
    return [
        GearItem(
            id="lure-1",
            name="Silver Spoon",
            category="lure",
            technique="casting",
            target_species="mackerel",
            depth_range="0-5m",
        ),
        GearItem(id="rod-1", name="Light Spinning Rod", category="rod"),
    ]


@pytest.fixture
def sample_conditions() -> CurrentConditions:
    """Create sample current conditions."""
    return CurrentConditions(
        temperature=24.5,
        apparent_temperature=25.1,
        wind_speed=12.0,
        wind_direction=200.0,
        wind_gusts=20.0,
        wave_height=0.4,
        wave_direction=190.0,
        swell_height=0.3,
        swell_direction=200.0,
        swell_period=9.0,
        weather_code=1,
        condition="Clear sky",
        fishing_conditions=FishingRating.EXCELLENT,
    )


@pytest.fixture
def sample_forecast_payload() -> dict:
    """Open-Meteo forecast response with 48 hours of data."""
    hours = 48
    return {
        "latitude": 35.9,
        "longitude": 14.5,
        "utc_offset_seconds": 0,
        "timezone": "GMT",
        "current": {
            "time": "2024-06-15T12:00",
            "interval": 900,
            "temperature_2m": 24.5,
            "apparent_temperature": 25.1,
            "is_day": 1,
            "precipitation": 0.0,
            "weather_code": 1,
            "wind_speed_10m": 12.0,
            "wind_direction_10m": 200,
            "wind_gusts_10m": 20.0,
        },
        "hourly": {
            "time": hourly_times(hours),
            "temperature_2m": [20.0 + (i % 24) / 2 for i in range(hours)],
            "wind_speed_10m": [10.0] * hours,
            "wind_direction_10m": [180] * hours,
            "wind_gusts_10m": [18.0] * hours,
            "weather_code": [1] * hours,
            "precipitation_probability": [10] * hours,
            "precipitation": [0.0] * hours,
            "visibility": [24000.0] * hours,
        },
    }


@pytest.fixture
def sample_marine_payload() -> dict:
    """Open-Meteo marine response with only 24 hours of data."""
    hours = 24
    return {
        "latitude": 35.9,
        "longitude": 14.5,
        "utc_offset_seconds": 0,
        "current": {
            "time": "2024-06-15T12:00",
            "wave_height": 0.4,
            "wave_direction": 190,
            "swell_wave_height": 0.3,
            "swell_wave_direction": 200,
            "swell_wave_period": 9.0,
        },
        "hourly": {
            "time": hourly_times(hours),
            "wave_height": [0.5] * hours,
            "wave_direction": [190] * hours,
            "swell_wave_height": [0.3] * hours,
            "swell_wave_direction": [200] * hours,
            "swell_wave_period": [8.5] * hours,
        },
    }


@pytest.fixture
def mock_ai_provider() -> MagicMock:
    """Create mock AI provider."""
    provider = MagicMock()
    provider.ai_enabled = True
    provider.score_gear = AsyncMock(return_value=[])
    provider.generate_fishing_tips = AsyncMock(return_value=None)
    provider.generate_fishing_advice = AsyncMock()
    provider.generate_species = AsyncMock(return_value=None)
    provider.generate_toxic_species = AsyncMock(return_value=None)
    return provider
