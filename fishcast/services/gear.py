"""Gear recommendation analysis pipeline.

Phases: idle -> loading_weather -> analyzing_gear -> complete, with a cache
hit jumping straight from idle to complete. Weather and AI failures degrade
(fallback conditions, empty recommendations); only unexpected exceptions or
the overall ceiling reach the error phase.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from fishcast.config import get_settings
from fishcast.models.ai_schemas import AnalysisState, GearScore
from fishcast.models.schemas import AnalysisPhase, CurrentConditions, GearItem, LocationPoint
from fishcast.services.ai import GroqProvider, get_ai_provider
from fishcast.services.cache import VersionedCache, get_cache
from fishcast.services.cache_keys import gear_key
from fishcast.services.concurrency import CancellationToken, with_timeout
from fishcast.services.scoring import score_fishing_conditions
from fishcast.services.weather import WeatherUnavailableError, get_current_conditions

logger = logging.getLogger(__name__)

ConditionsLoader = Callable[[LocationPoint], Awaitable[CurrentConditions]]

# Neutral conditions scored against when weather cannot be loaded
FALLBACK_CONDITIONS = CurrentConditions(
    temperature=20.0,
    apparent_temperature=20.0,
    wind_speed=10.0,
    wind_direction=180.0,
    wave_height=0.5,
    swell_height=0.5,
    swell_period=8.0,
    weather_code=0,
    condition="Clear sky",
    fishing_conditions=score_fishing_conditions(0.5, 10.0, 8.0),
)


class GearAnalysisPipeline:
    """Phased analysis for one (location, gear set) pair."""

    def __init__(
        self,
        cache: VersionedCache | None = None,
        conditions_loader: ConditionsLoader | None = None,
        ai_provider: GroqProvider | None = None,
        timeout: float | None = None,
        session_id: str | None = None,
    ) -> None:
        settings = get_settings()
        self._cache = cache or get_cache()
        self._load_conditions = conditions_loader or get_current_conditions
        self._ai = ai_provider or get_ai_provider()
        self._timeout = settings.pipeline_timeout if timeout is None else timeout
        self._ttl = settings.gear_cache_ttl
        self._log_extra = {"session_id": session_id} if session_id else {}

        self.state = AnalysisState()
        self.transitions: list[AnalysisPhase] = []
        self.location: LocationPoint | None = None
        self.gear: list[GearItem] = []
        self._token: CancellationToken | None = None
        self._task: asyncio.Task | None = None

    @property
    def phase(self) -> AnalysisPhase:
        return self.state.phase

    def sync(self, location: LocationPoint | None, gear: list[GearItem]) -> asyncio.Task | None:
        """
        Feed the latest location and gear collection.

        Resets to idle when the location identity or the gear-id set
        changed, then starts a run if the pipeline is idle and both inputs
        are present.

        Returns:
            The started run, or None when nothing was started.
        """
        old_identity = self.location.identity if self.location else None
        new_identity = location.identity if location else None
        changed = old_identity != new_identity or _gear_ids(self.gear) != _gear_ids(gear)

        self.location = location
        self.gear = list(gear)
        if changed:
            self._reset()
        return self._maybe_start()

    def retry(self) -> asyncio.Task | None:
        """User-initiated retry: reset to idle and re-run the normal rules."""
        self._reset()
        return self._maybe_start()

    async def settle(self) -> None:
        """Wait for the latest run to finish."""
        if self._task is not None:
            await self._task

    def _reset(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
        if self.state.phase != AnalysisPhase.IDLE:
            self.transitions.append(AnalysisPhase.IDLE)
        self.state = AnalysisState()

    def _maybe_start(self) -> asyncio.Task | None:
        if self.state.phase != AnalysisPhase.IDLE:
            return None
        if self.location is None or not self.gear:
            return None
        if self._token is not None:
            # A run for the current inputs is already scheduled
            return None

        token = CancellationToken(f"gear:{self.location.label}")
        self._token = token
        self._task = asyncio.create_task(self._run(token, self.location, list(self.gear)))
        return self._task

    def _enter(self, token: CancellationToken, phase: AnalysisPhase, **changes) -> bool:
        if token.cancelled:
            return False
        self.state = self.state.model_copy(update={"phase": phase, **changes})
        self.transitions.append(phase)
        return True

    async def _run(self, token: CancellationToken, location: LocationPoint, gear: list[GearItem]) -> None:
        try:
            await with_timeout(self._analyze(token, location, gear), self._timeout, label="Gear analysis")
        except Exception as e:
            if token.cancelled:
                return
            logger.error(f"Gear analysis failed for {location.label}: {e}", extra=self._log_extra)
            self._enter(token, AnalysisPhase.ERROR, error=str(e) or e.__class__.__name__)

    async def _analyze(self, token: CancellationToken, location: LocationPoint, gear: list[GearItem]) -> None:
        key = gear_key(location, [item.id for item in gear], self._cache.now().date())

        restored = self._cache.get_as(key, AnalysisState.model_validate)
        if restored is not None:
            logger.info("Gear analysis cache hit", extra={**self._log_extra, "cache_key": key})
            self._enter(
                token,
                AnalysisPhase.COMPLETE,
                weather_conditions=restored.weather_conditions,
                recommendations=restored.recommendations,
            )
            return

        if not self._enter(token, AnalysisPhase.LOADING_WEATHER):
            return

        try:
            conditions = await self._load_conditions(location)
        except WeatherUnavailableError as e:
            logger.warning(f"Using fallback conditions for gear analysis: {e}", extra=self._log_extra)
            conditions = FALLBACK_CONDITIONS

        if not self._enter(token, AnalysisPhase.ANALYZING_GEAR, weather_conditions=conditions):
            return

        recommendations = await self._ai.score_gear(gear, conditions, location)
        if token.cancelled:
            return

        self._cache.set(key, _cache_payload(conditions, recommendations), self._ttl)
        self._enter(token, AnalysisPhase.COMPLETE, recommendations=recommendations)


def _gear_ids(gear: list[GearItem]) -> frozenset[str]:
    return frozenset(item.id for item in gear)


def _cache_payload(conditions: CurrentConditions, recommendations: list[GearScore]) -> dict:
    return {
        "weatherConditions": conditions.model_dump(mode="json"),
        "recommendations": [r.model_dump(mode="json", by_alias=True) for r in recommendations],
    }
