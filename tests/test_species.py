"""Tests for the species service."""

import pytest

from fishcast.models.ai_schemas import FishSpecies
from fishcast.services.cache_keys import species_key, toxic_species_key
from fishcast.services.species import SpeciesService


def _species(*names: str, toxic: bool = False) -> list[FishSpecies]:
    return [
        FishSpecies(name=name, scientific_name=f"Genus {name.lower()}", is_toxic=toxic)
        for name in names
    ]


class TestLocalSpecies:
    """Tests for SpeciesService.local_species."""

    @pytest.mark.asyncio
    async def test_generated_page_is_cached(self, memory_cache, mock_ai_provider, sample_location) -> None:
        """Should cache a generated page under its page key."""
        mock_ai_provider.generate_species.return_value = _species("Bream", "Dentex")
        service = SpeciesService(memory_cache, mock_ai_provider)

        first = await service.local_species(sample_location, page=2)
        second = await service.local_species(sample_location, page=2)

        assert first == second == _species("Bream", "Dentex")
        assert mock_ai_provider.generate_species.await_count == 1
        assert memory_cache.get(species_key(sample_location, memory_cache.now().date(), 2)) is not None
        kwargs = mock_ai_provider.generate_species.await_args.kwargs
        assert kwargs["page"] == 2

    @pytest.mark.asyncio
    async def test_prompt_uses_sea_name(self, memory_cache, mock_ai_provider, sample_location) -> None:
        """Should pass the location's sea to the generator."""
        service = SpeciesService(memory_cache, mock_ai_provider)

        await service.local_species(sample_location)

        assert mock_ai_provider.generate_species.await_args.args[1] == "Mediterranean Sea"

    @pytest.mark.asyncio
    async def test_no_output_is_empty_and_not_cached(self, memory_cache, mock_ai_provider, sample_location) -> None:
        """Should return an empty list without caching it."""
        service = SpeciesService(memory_cache, mock_ai_provider)

        assert await service.local_species(sample_location) == []
        assert memory_cache.get(species_key(sample_location, memory_cache.now().date())) is None

    @pytest.mark.asyncio
    async def test_wrong_shape_cache_entry_is_regenerated(
        self, memory_cache, mock_ai_provider, sample_location
    ) -> None:
        """Should treat a cached value of the wrong shape as a miss."""
        key = species_key(sample_location, memory_cache.now().date())
        memory_cache.set(key, {"species": "oops"}, 3600)
        mock_ai_provider.generate_species.return_value = _species("Bream")
        service = SpeciesService(memory_cache, mock_ai_provider)

        species = await service.local_species(sample_location)

        assert [s.name for s in species] == ["Bream"]
        assert mock_ai_provider.generate_species.await_count == 1


class TestToxicSpecies:
    """Tests for SpeciesService.toxic_species."""

    @pytest.mark.asyncio
    async def test_sorted_by_probability_and_cached(self, memory_cache, mock_ai_provider, sample_location) -> None:
        """Should order by encounter probability and cache under the coordinate key."""
        rare, common = _species("Stargazer", "Weever", toxic=True)
        rare.probability_score = 0.1
        common.probability_score = 0.7
        mock_ai_provider.generate_toxic_species.return_value = [rare, common]
        service = SpeciesService(memory_cache, mock_ai_provider)

        species = await service.toxic_species(sample_location)

        assert [s.name for s in species] == ["Weever", "Stargazer"]
        assert memory_cache.get(toxic_species_key(sample_location, memory_cache.now().date())) is not None
