"""Location-change orchestration: debounce, coalescing and stale-result dropping."""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from pydantic import ValidationError

from fishcast.config import get_settings
from fishcast.models.schemas import ConditionsReport, LocationPoint
from fishcast.services.cache import VersionedCache, get_cache
from fishcast.services.cache_keys import location_keys, weather_key
from fishcast.services.concurrency import CancellationToken
from fishcast.services.weather import fetch_conditions

logger = logging.getLogger(__name__)

ConditionsFetcher = Callable[[LocationPoint], Awaitable[ConditionsReport]]


class LocationOrchestrator:
    """
    Drives the conditions fetch for one client view as its location changes.

    Only the run started under the most recently issued token may write
    `report`, `error` or the cache; earlier runs finish silently.
    """

    def __init__(
        self,
        fetcher: ConditionsFetcher | None = None,
        cache: VersionedCache | None = None,
        debounce_seconds: float | None = None,
        freshness_seconds: float | None = None,
        session_id: str | None = None,
    ) -> None:
        settings = get_settings()
        self._fetcher = fetcher or fetch_conditions
        self._cache = cache or get_cache()
        self._debounce = (
            settings.location_debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self._freshness = (
            settings.location_freshness_seconds if freshness_seconds is None else freshness_seconds
        )
        self._ttl = settings.weather_cache_ttl
        self._log_extra = {"session_id": session_id} if session_id else {}

        self.current_location: LocationPoint | None = None
        self.last_fetched_at: datetime | None = None
        self.report: ConditionsReport | None = None
        self.error: str | None = None
        self._token: CancellationToken | None = None
        self._task: asyncio.Task | None = None

    @property
    def token(self) -> CancellationToken | None:
        """Token of the most recently issued run."""
        return self._token

    @property
    def loading(self) -> bool:
        return self._task is not None and not self._task.done()

    def update_location(self, point: LocationPoint) -> asyncio.Task | None:
        """
        Accept a new location from the location provider.

        Args:
            point: The new location (replaces the current one wholesale).

        Returns:
            The scheduled fetch task, or None when the location is unchanged.
        """
        previous = self.current_location
        if previous is not None and previous.identity == point.identity:
            return None

        if self._token is not None:
            self._token.cancel()

        if previous is not None:
            stale_keys = location_keys(previous, self._cache.now().date())
            self._cache.delete_many(stale_keys)
            logger.info(
                f"Location changed from {previous.label} to {point.label}, "
                f"pruned {len(stale_keys)} cache keys",
                extra=self._log_extra,
            )

        token = CancellationToken(point.label)
        self._token = token
        self.current_location = point
        self._task = asyncio.create_task(self._run(point, token))
        return self._task

    async def settle(self) -> None:
        """Wait for the latest scheduled run to finish."""
        if self._task is not None:
            await self._task

    async def _run(self, point: LocationPoint, token: CancellationToken) -> None:
        await asyncio.sleep(self._debounce)
        if token.cancelled:
            logger.debug(f"Debounced away fetch for {point.label}", extra=self._log_extra)
            return

        key = weather_key(point, self._cache.now().date())
        entry = self._cache.get_entry(key)
        if entry is not None and entry.age_seconds(self._cache.now()) < self._freshness:
            try:
                cached = ConditionsReport.model_validate(entry.value)
            except ValidationError as e:
                self._cache.discard(key, e)
                cached = None
            if cached is not None and cached.location.identity == point.identity:
                logger.debug(
                    f"Reusing fresh conditions for {point.label}",
                    extra={**self._log_extra, "cache_key": key},
                )
                self._apply(cached, entry.stored_at)
                return

        try:
            report = await self._fetcher(point)
        except Exception as e:
            if token.cancelled:
                logger.debug(f"Dropping stale error for {point.label}: {e}", extra=self._log_extra)
                return
            logger.warning(f"Conditions fetch failed for {point.label}: {e}", extra=self._log_extra)
            self.error = str(e)
            return

        if token.cancelled:
            logger.debug(f"Dropping stale result for {point.label}", extra=self._log_extra)
            return

        self._cache.set(key, report.model_dump(mode="json"), self._ttl, rollover=True)
        self._apply(report, self._cache.now())

    def _apply(self, report: ConditionsReport, fetched_at: datetime) -> None:
        self.report = report
        self.last_fetched_at = fetched_at
        self.error = None
