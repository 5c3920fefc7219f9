"""Tests for AI service (gear scoring, tips, advice and species)."""

import asyncio
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fishcast.models.ai_schemas import GearScore
from fishcast.services.ai import (
    GroqProvider,
    build_gear_messages,
    clean_scientific_name,
    extract_json_payload,
    get_ai_provider,
    parse_fishing_tips,
    parse_gear_scores,
    parse_species,
)


def _completion(text: str) -> MagicMock:
    completion = MagicMock()
    completion.choices = [MagicMock()]
    completion.choices[0].message.content = text
    return completion


def _enabled_provider(*responses) -> GroqProvider:
    provider = GroqProvider()
    provider.ai_enabled = True
    provider.client = MagicMock()
    provider.client.chat.completions.create = AsyncMock(side_effect=list(responses))
    return provider


class TestExtractJsonPayload:
    """Tests for boundary-scanning JSON extraction."""

    def test_object_with_surrounding_prose(self) -> None:
        """Should cut the object out of prose."""
        text = 'Sure! Here you go: {"recommendations": []} Hope that helps.'
        assert extract_json_payload(text) == '{"recommendations": []}'

    def test_array_inside_code_fence(self) -> None:
        """Should strip markdown fences."""
        text = '```json\n[{"title": "a"}]\n```'
        assert extract_json_payload(text, "array") == '[{"title": "a"}]'

    def test_nested_brackets_use_last_closing(self) -> None:
        """Should use the last closing bracket."""
        text = 'x {"a": {"b": 1}} y'
        assert extract_json_payload(text) == '{"a": {"b": 1}}'

    def test_no_payload(self) -> None:
        """Should return None without brackets."""
        assert extract_json_payload("no json here") is None
        assert extract_json_payload("} backwards {") is None


class TestParseGearScores:
    """Tests for the gear scoring contract."""

    def test_valid_payload(self) -> None:
        """Should parse camelCase entries."""
        text = (
            'Result: {"recommendations": [{"gearId": "g1", "score": 82, '
            '"reasoning": "Good", "suitabilityForConditions": "Excellent"}]}'
        )

        scores = parse_gear_scores(text, {"g1"})

        assert scores == [
            GearScore(gear_id="g1", score=82, reasoning="Good", suitability_for_conditions="Excellent")
        ]

    def test_unparsable_output_is_empty(self) -> None:
        """Should return an empty list for malformed JSON."""
        assert parse_gear_scores("{recommendations: [oops}", {"g1"}) == []
        assert parse_gear_scores("I cannot help with that.", {"g1"}) == []

    def test_drops_unknown_and_malformed_entries(self) -> None:
        """Should keep only valid entries for known gear."""
        text = (
            '{"recommendations": ['
            '{"gearId": "g1", "score": 70},'
            '{"gearId": "ghost", "score": 90},'
            '{"gearId": "g2", "score": "high"},'
            '{"score": 50}'
            "]}"
        )

        scores = parse_gear_scores(text, {"g1", "g2"})

        assert [s.gear_id for s in scores] == ["g1"]

    def test_scores_are_clamped(self) -> None:
        """Should clamp and round scores into 0..100."""
        text = '{"recommendations": [{"gearId": "g1", "score": 140}, {"gearId": "g2", "score": 49.6}]}'

        scores = parse_gear_scores(text, {"g1", "g2"})

        assert [s.score for s in scores] == [100, 50]

    def test_non_finite_scores_are_dropped(self) -> None:
        """Should drop infinite and NaN scores."""
        text = (
            '{"recommendations": ['
            '{"gearId": "g1", "score": 1e999},'
            '{"gearId": "g2", "score": "1e999"},'
            '{"gearId": "g3", "score": "nan"},'
            '{"gearId": "g4", "score": 75}'
            "]}"
        )

        scores = parse_gear_scores(text, {"g1", "g2", "g3", "g4"})

        assert [s.gear_id for s in scores] == ["g4"]


class TestParseFishingTips:
    """Tests for tips parsing."""

    def test_fills_missing_fields(self) -> None:
        """Should default missing titles and categories."""
        tips = parse_fishing_tips('Here: [{"content": "Fish at dawn"}, {"title": "T", "content": "C", "category": "Bait"}]')

        assert tips[0].title == "Fishing Tip 1"
        assert tips[0].category == "General"
        assert tips[1].category == "Bait"

    def test_invalid_output(self) -> None:
        """Should return None for unusable output."""
        assert parse_fishing_tips("no tips today") is None
        assert parse_fishing_tips("[not, json]") is None
        assert parse_fishing_tips("[]") is None


class TestBuildGearMessages:
    """Tests for the gear prompt."""

    def test_enumerates_gear_and_conditions(self, sample_gear, sample_conditions, sample_location) -> None:
        """Should include every gear item and the conditions."""
        messages = build_gear_messages(sample_gear, sample_conditions, sample_location)

        assert [m.role for m in messages] == ["system", "user"]
        user = messages[1].content
        assert "id=lure-1" in user
        assert "technique=casting" in user
        assert "id=rod-1" in user
        assert "Wave height: 0.4m" in user
        assert "Valletta, Malta" in user


class TestScoreGear:
    """Tests for GroqProvider.score_gear."""

    @pytest.mark.asyncio
    async def test_disabled_returns_empty(self, sample_gear, sample_conditions, sample_location) -> None:
        """Should return no scores without credentials."""
        provider = GroqProvider()
        provider.ai_enabled = False

        assert await provider.score_gear(sample_gear, sample_conditions, sample_location) == []

    @pytest.mark.asyncio
    async def test_scores_from_completion(self, sample_gear, sample_conditions, sample_location) -> None:
        """Should parse the completion into scores."""
        provider = _enabled_provider(
            _completion('{"recommendations": [{"gearId": "rod-1", "score": 64, "reasoning": "ok"}]}')
        )

        scores = await provider.score_gear(sample_gear, sample_conditions, sample_location)

        assert [s.gear_id for s in scores] == ["rod-1"]
        kwargs = provider.client.chat.completions.create.await_args.kwargs
        assert kwargs["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_timeout_returns_empty(self, sample_gear, sample_conditions, sample_location) -> None:
        """Should degrade to no scores when the AI call times out."""

        async def never_finishes(**kwargs):
            await asyncio.sleep(10)

        provider = GroqProvider()
        provider.ai_enabled = True
        provider.timeout = 0.05
        provider.client = MagicMock()
        provider.client.chat.completions.create = never_finishes

        assert await provider.score_gear(sample_gear, sample_conditions, sample_location) == []


class TestFishingTipsAndAdvice:
    """Tests for tips and advice generation."""

    @pytest.mark.asyncio
    async def test_tips_disabled_returns_none(self, sample_location) -> None:
        """Should signal fallback when AI is disabled."""
        provider = GroqProvider()
        provider.ai_enabled = False

        assert await provider.generate_fishing_tips(sample_location, None, date(2024, 6, 15)) is None

    @pytest.mark.asyncio
    async def test_tips_prompt_mentions_season(self, sample_location, sample_conditions) -> None:
        """Should build the prompt with season and month."""
        provider = _enabled_provider(_completion('[{"title": "T", "content": "C"}]'))

        tips = await provider.generate_fishing_tips(sample_location, sample_conditions, date(2024, 6, 15))

        assert len(tips) == 1
        user = provider.client.chat.completions.create.await_args.kwargs["messages"][1]["content"]
        assert "summer (June)" in user

    @pytest.mark.asyncio
    async def test_advice_runs_both_prompts(self, sample_location, sample_conditions) -> None:
        """Should generate inshore and offshore advice."""
        provider = _enabled_provider(_completion("Inshore text"), _completion("Offshore text"))

        advice = await provider.generate_fishing_advice(sample_location, sample_conditions, date(2024, 6, 15))

        assert {advice.inshore, advice.offshore} == {"Inshore text", "Offshore text"}
        assert provider.client.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_advice_disabled_uses_marine_advice(self, sample_location, sample_conditions) -> None:
        """Should fall back to the marine advisory text."""
        provider = GroqProvider()
        provider.ai_enabled = False

        advice = await provider.generate_fishing_advice(sample_location, sample_conditions, date(2024, 6, 15))

        assert "Calm seas" in advice.inshore
        assert advice.inshore == advice.offshore


class TestParseSpecies:
    """Tests for species parsing."""

    def test_clean_scientific_name(self) -> None:
        """Should reduce names to a binomial."""
        assert clean_scientific_name("Sparus aurata") == "Sparus aurata"
        assert clean_scientific_name("Sparus cf. aurata Linnaeus") == "Sparus aurata"
        assert clean_scientific_name("Thunnus spp.") == ""
        assert clean_scientific_name("Unknown species") == ""
        assert clean_scientific_name("") == ""

    def test_drops_entries_without_binomial(self) -> None:
        """Should keep only species with a usable scientific name."""
        text = (
            "Here you go: ["
            '{"name": "Gilthead Bream", "scientificName": "Sparus aurata", "difficulty": "Easy"},'
            '{"name": "Tuna", "scientificName": "Thunnus spp."},'
            '{"name": "Mystery"},'
            '"not an object"'
            "]"
        )

        species = parse_species(text)

        assert [s.scientific_name for s in species] == ["Sparus aurata"]
        assert species[0].season == "Year-round"
        assert species[0].is_toxic is False

    def test_toxic_only_filter(self) -> None:
        """Should keep toxic species only."""
        text = (
            '[{"name": "Weever", "scientificName": "Trachinus draco", "isToxic": true, '
            '"dangerType": "Venomous spines", "probabilityScore": 0.6},'
            '{"name": "Bream", "scientificName": "Sparus aurata", "isToxic": false}]'
        )

        species = parse_species(text, toxic_only=True)

        assert [s.name for s in species] == ["Weever"]
        assert species[0].danger_type == "Venomous spines"

    def test_invalid_output(self) -> None:
        """Should return None for unusable output."""
        assert parse_species("no fish") is None
        assert parse_species('[{"name": "Tuna", "scientificName": "Thunnus"}]') is None


class TestGenerateSpecies:
    """Tests for species generation."""

    @pytest.mark.asyncio
    async def test_disabled_returns_none(self, sample_location) -> None:
        """Should return None without credentials."""
        provider = GroqProvider()
        provider.ai_enabled = False

        assert await provider.generate_species(sample_location, "Mediterranean Sea", date(2024, 6, 15)) is None

    @pytest.mark.asyncio
    async def test_prompt_names_sea_month_and_page(self, sample_location) -> None:
        """Should ask for native species of the sea in the current month."""
        provider = _enabled_provider(_completion('[{"name": "Bream", "scientificName": "Sparus aurata"}]'))

        species = await provider.generate_species(
            sample_location, "Mediterranean Sea", date(2024, 6, 15), page=2, page_size=20
        )

        assert len(species) == 1
        user = provider.client.chat.completions.create.await_args.kwargs["messages"][1]["content"]
        assert "exactly 20 fish species" in user
        assert "Mediterranean Sea" in user
        assert "June" in user
        assert "page 2" in user


class TestGetAIProvider:
    """Tests for the provider singleton."""

    @patch("fishcast.services.ai.get_settings")
    def test_singleton(self, mock_get_settings: MagicMock) -> None:
        """Should return the same provider."""
        mock_get_settings.return_value = MagicMock(groq_api_key=None, groq_model="m", ai_timeout=45.0)

        assert get_ai_provider() is get_ai_provider()
