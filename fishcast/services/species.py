"""Local and toxic species lists, generated by AI and cached per month."""

import logging

from pydantic import TypeAdapter

from fishcast.config import get_settings
from fishcast.models.ai_schemas import FishSpecies
from fishcast.models.schemas import LocationPoint
from fishcast.services.ai import GroqProvider, get_ai_provider
from fishcast.services.cache import VersionedCache, get_cache
from fishcast.services.cache_keys import species_key, toxic_species_key
from fishcast.services.regions import sea_name_for

logger = logging.getLogger(__name__)

_SPECIES_ADAPTER = TypeAdapter(list[FishSpecies])


class SpeciesService:
    """Cache-through access to AI-generated species lists."""

    def __init__(
        self,
        cache: VersionedCache | None = None,
        ai_provider: GroqProvider | None = None,
    ) -> None:
        settings = get_settings()
        self._cache = cache or get_cache()
        self._ai = ai_provider or get_ai_provider()
        self._ttl = settings.species_cache_ttl
        self._page_size = settings.species_page_size

    async def local_species(self, location: LocationPoint, page: int = 1) -> list[FishSpecies]:
        """
        One page of native species for the location's sea this month.

        Args:
            location: Location the list is generated for.
            page: 1-based page number.

        Returns:
            Species; empty when AI is unavailable. Empty results are not
            cached.
        """
        today = self._cache.now().date()
        key = species_key(location, today, page)

        cached = self._cache.get_as(key, _SPECIES_ADAPTER.validate_python)
        if cached is not None:
            return cached

        species = await self._ai.generate_species(
            location, sea_name_for(location.name), today, page=page, page_size=self._page_size
        )
        if not species:
            logger.info(f"No species generated for {location.label} page {page}")
            return []

        self._store(key, species)
        return species

    async def toxic_species(self, location: LocationPoint) -> list[FishSpecies]:
        """Toxic species near the location, most likely encounters first."""
        today = self._cache.now().date()
        key = toxic_species_key(location, today)

        cached = self._cache.get_as(key, _SPECIES_ADAPTER.validate_python)
        if cached is not None:
            return cached

        species = await self._ai.generate_toxic_species(location, sea_name_for(location.name), today)
        if not species:
            logger.info(f"No toxic species generated for {location.label}")
            return []

        species.sort(key=lambda fish: fish.probability_score or 0.0, reverse=True)
        self._store(key, species)
        return species

    def _store(self, key: str, species: list[FishSpecies]) -> None:
        payload = [fish.model_dump(by_alias=True) for fish in species]
        self._cache.set(key, payload, self._ttl, rollover=True)
