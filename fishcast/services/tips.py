"""Day-scoped AI fishing tips with fixed fallback tips."""

import logging

from pydantic import TypeAdapter

from fishcast.config import get_settings
from fishcast.models.ai_schemas import FishingAdvice, FishingTip
from fishcast.models.schemas import CurrentConditions, LocationPoint
from fishcast.services.ai import GroqProvider, get_ai_provider
from fishcast.services.cache import VersionedCache, get_cache
from fishcast.services.cache_keys import tips_key
from fishcast.services.concurrency import CancellationToken

logger = logging.getLogger(__name__)

_TIPS_ADAPTER = TypeAdapter(list[FishingTip])

FALLBACK_TIPS = [
    FishingTip(
        title="Early Morning Success",
        content=(
            "Fish are most active during dawn and dusk when water temperatures are cooler. "
            "Plan your fishing trips around these golden hours for better results."
        ),
        category="Timing",
    ),
    FishingTip(
        title="Weather Awareness",
        content=(
            "Overcast days often provide excellent fishing conditions as fish feel more "
            "secure and venture into shallower waters to feed."
        ),
        category="Weather",
    ),
    FishingTip(
        title="Bait Selection",
        content=(
            "Match your bait to local prey species. Live bait typically outperforms "
            "artificial lures, especially when fish are being selective."
        ),
        category="Bait",
    ),
    FishingTip(
        title="Structure Fishing",
        content=(
            "Focus on underwater structures like reefs, drop-offs, and weed beds where "
            "fish congregate for shelter and feeding opportunities."
        ),
        category="Location",
    ),
    FishingTip(
        title="Patience and Persistence",
        content=(
            "Stay quiet and patient. Fish can be easily spooked by noise and sudden "
            "movements, especially in shallow or clear water."
        ),
        category="Technique",
    ),
]


class FishingTipsService:
    """Tips pipeline with its own cancellation token and cache namespace."""

    def __init__(
        self,
        cache: VersionedCache | None = None,
        ai_provider: GroqProvider | None = None,
        session_id: str | None = None,
    ) -> None:
        self._cache = cache or get_cache()
        self._ai = ai_provider or get_ai_provider()
        self._ttl = get_settings().tips_cache_ttl
        self._log_extra = {"session_id": session_id} if session_id else {}
        self._token: CancellationToken | None = None
        self.tips: list[FishingTip] = []
        self.is_fallback = False

    async def load(
        self,
        location: LocationPoint,
        conditions: CurrentConditions | None = None,
    ) -> list[FishingTip]:
        """
        Load today's tips for a location.

        Cached tips are served for the rest of the day. When AI is disabled
        or its output is unusable the fallback tips are returned and not
        cached, so a later call can still produce real tips.

        Args:
            location: Location to generate tips for.
            conditions: Current conditions to include in the prompt.

        Returns:
            The tips for this call. Shared state is only updated when no
            newer load was started in the meantime.
        """
        if self._token is not None:
            self._token.cancel()
        token = CancellationToken(f"tips:{location.label}")
        self._token = token

        today = self._cache.now().date()
        key = tips_key(location, today)

        tips = self._cache.get_as(key, _TIPS_ADAPTER.validate_python)
        if tips is not None:
            self._publish(token, tips, is_fallback=False)
            return tips

        tips = await self._ai.generate_fishing_tips(location, conditions, today)
        if tips is None:
            logger.info(f"Using fallback fishing tips for {location.label}", extra=self._log_extra)
            self._publish(token, FALLBACK_TIPS, is_fallback=True)
            return list(FALLBACK_TIPS)

        if token.cancelled:
            return tips

        self._cache.set(key, [tip.model_dump() for tip in tips], self._ttl)
        self._publish(token, tips, is_fallback=False)
        return tips

    async def advice(self, location: LocationPoint, conditions: CurrentConditions) -> FishingAdvice:
        """Inshore and offshore advice for the current conditions."""
        today = self._cache.now().date()
        return await self._ai.generate_fishing_advice(location, conditions, today)

    def _publish(self, token: CancellationToken, tips: list[FishingTip], is_fallback: bool) -> None:
        if token.cancelled:
            return
        self.tips = list(tips)
        self.is_fallback = is_fallback
