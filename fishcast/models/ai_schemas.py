"""Pydantic models for AI contracts and analysis state."""

import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fishcast.models.schemas import AnalysisPhase, CurrentConditions


class GearScore(BaseModel):
    """AI score for one gear item under the current conditions."""

    model_config = ConfigDict(populate_by_name=True)

    gear_id: str = Field(alias="gearId")
    score: int = Field(ge=0, le=100)
    reasoning: str = ""
    suitability_for_conditions: str = Field(
        default="", alias="suitabilityForConditions"
    )

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, value: object) -> int:
        """Coerce numeric scores and clamp them into 0..100."""
        if isinstance(value, bool):
            raise ValueError("score must be numeric")
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError, OverflowError):
            raise ValueError(f"score must be numeric, got {value!r}") from None
        if not math.isfinite(number):
            raise ValueError(f"score must be finite, got {value!r}")
        return max(0, min(100, round(number)))


class GearRecommendationPayload(BaseModel):
    """Strict JSON contract expected from the AI gear scorer."""

    recommendations: list[dict] = Field(default_factory=list)


class AnalysisState(BaseModel):
    """State of one (location, gear set) analysis."""

    model_config = ConfigDict(populate_by_name=True)

    phase: AnalysisPhase = AnalysisPhase.IDLE
    weather_conditions: Optional[CurrentConditions] = Field(
        default=None, alias="weatherConditions"
    )
    recommendations: list[GearScore] = Field(default_factory=list)
    error: Optional[str] = None


class ChatMessage(BaseModel):
    """Role-tagged message sent to the AI endpoint."""

    role: str  # system, user or assistant
    content: str


class FishingTip(BaseModel):
    """A short educational fishing tip."""

    title: str
    content: str
    category: str = "General"


class FishingAdvice(BaseModel):
    """Inshore and offshore advice for the current conditions."""

    inshore: str
    offshore: str


class TipsResponse(BaseModel):
    """Tips for a session, optionally with inshore/offshore advice."""

    tips: list[FishingTip]
    is_fallback: bool = False
    advice: Optional[FishingAdvice] = None


class FishSpecies(BaseModel):
    """A fish species found near a location."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = "Unknown Fish"
    scientific_name: str = Field(alias="scientificName")
    habitat: str = "Unknown"
    difficulty: str = "Intermediate"  # Easy, Intermediate, Hard, Advanced or Expert
    season: str = "Year-round"
    is_toxic: bool = Field(default=False, alias="isToxic")
    danger_type: Optional[str] = Field(default=None, alias="dangerType")
    probability_score: Optional[float] = Field(default=None, alias="probabilityScore", ge=0, le=1)
