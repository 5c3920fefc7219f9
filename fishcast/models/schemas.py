"""Pydantic models for locations, time series and derived conditions."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Hourly fields populated from the forecast (weather) endpoint
WEATHER_FIELDS = (
    "temperature",
    "wind_speed",
    "wind_direction",
    "wind_gusts",
    "weather_code",
    "precipitation_probability",
    "precipitation_amount",
    "visibility",
)

# Hourly fields populated from the marine endpoint
MARINE_FIELDS = (
    "wave_height",
    "wave_direction",
    "swell_height",
    "swell_direction",
    "swell_period",
)

HOURLY_FIELDS = WEATHER_FIELDS + MARINE_FIELDS


class FishingRating(str, Enum):
    """Categorical fishing suitability."""

    UNKNOWN = "Unknown"
    POOR = "Poor"
    FAIR = "Fair"
    GOOD = "Good"
    EXCELLENT = "Excellent"


class LocationPoint(BaseModel):
    """A user-selected location. Replaced wholesale, never patched."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    name: str

    @property
    def identity(self) -> tuple[float, float, str]:
        """Cache identity: coordinates rounded to 3 decimals plus name."""
        return (round(self.latitude, 3), round(self.longitude, 3), self.name)

    @property
    def label(self) -> str:
        """Short human-readable label for logs."""
        return f"{self.name} ({self.latitude:.3f}, {self.longitude:.3f})"


class HourlySeries(BaseModel):
    """Parallel hourly arrays sharing the index-to-time mapping of `time`."""

    time: list[str] = Field(default_factory=list)
    temperature: Optional[list[Optional[float]]] = None
    wind_speed: Optional[list[Optional[float]]] = None
    wind_direction: Optional[list[Optional[float]]] = None
    wind_gusts: Optional[list[Optional[float]]] = None
    weather_code: Optional[list[Optional[float]]] = None
    precipitation_probability: Optional[list[Optional[float]]] = None
    precipitation_amount: Optional[list[Optional[float]]] = None
    visibility: Optional[list[Optional[float]]] = None
    wave_height: Optional[list[Optional[float]]] = None
    wave_direction: Optional[list[Optional[float]]] = None
    swell_height: Optional[list[Optional[float]]] = None
    swell_direction: Optional[list[Optional[float]]] = None
    swell_period: Optional[list[Optional[float]]] = None

    def __len__(self) -> int:
        return len(self.time)

    def value_at(self, field: str, index: int) -> float | None:
        """Return a field value at an index, or None when unknown."""
        values = getattr(self, field)
        if values is None or index >= len(values):
            return None
        return values[index]


class CurrentSnapshot(BaseModel):
    """Union of the upstream "current" blocks, before projection."""

    time: Optional[str] = None
    temperature: Optional[float] = None
    apparent_temperature: Optional[float] = None
    is_day: Optional[int] = None
    precipitation: Optional[float] = None
    weather_code: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    wind_gusts: Optional[float] = None
    wave_height: Optional[float] = None
    wave_direction: Optional[float] = None
    swell_height: Optional[float] = None
    swell_direction: Optional[float] = None
    swell_period: Optional[float] = None


class CurrentConditions(BaseModel):
    """Single-hour projection of the merged conditions."""

    temperature: Optional[float] = None
    apparent_temperature: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    wind_gusts: Optional[float] = None
    wave_height: Optional[float] = None
    wave_direction: Optional[float] = None
    swell_height: Optional[float] = None
    swell_direction: Optional[float] = None
    swell_period: Optional[float] = None
    weather_code: Optional[int] = None
    condition: str = "Unknown"
    fishing_conditions: FishingRating = FishingRating.UNKNOWN


class DailySummary(BaseModel):
    """Aggregate of one 24-hour chunk of the merged series."""

    date: str
    temperature_min: Optional[float] = None
    temperature_max: Optional[float] = None
    wind_speed_mean: Optional[float] = None
    wave_height_mean: Optional[float] = None
    swell_height_mean: Optional[float] = None
    swell_period_mean: Optional[float] = None
    precipitation_probability_mean: Optional[float] = None
    fishing_conditions: FishingRating = FishingRating.UNKNOWN


class ConditionsReport(BaseModel):
    """Everything the weather, marine and forecast cards render."""

    location: LocationPoint
    hourly: HourlySeries
    current: CurrentConditions
    current_index: int = 0
    next_24_hours: HourlySeries
    daily: list[DailySummary] = Field(default_factory=list)
    marine_available: bool = False
    fetched_at: datetime


class GearItem(BaseModel):
    """A gear item from the user's collection."""

    id: str
    name: str
    category: str = "other"
    technique: Optional[str] = None
    target_species: Optional[str] = None
    depth_range: Optional[str] = None
    brand: Optional[str] = None


class AnalysisPhase(str, Enum):
    """Phases of the gear analysis pipeline."""

    IDLE = "idle"
    LOADING_WEATHER = "loading_weather"
    ANALYZING_GEAR = "analyzing_gear"
    COMPLETE = "complete"
    ERROR = "error"


class GearCollectionRequest(BaseModel):
    """Request body replacing a session's gear collection."""

    gear: list[GearItem] = Field(default_factory=list)


class SessionStatus(BaseModel):
    """Conditions state of one client session."""

    session_id: str
    location: Optional[LocationPoint] = None
    loading: bool = False
    last_fetched_at: Optional[datetime] = None
    report: Optional[ConditionsReport] = None
    error: Optional[str] = None
