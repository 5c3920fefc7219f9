"""AI service with Groq integration for gear scoring, tips, advice and species."""

import asyncio
import json
import logging
import re
from datetime import date

from groq import APIError, AsyncGroq
from pydantic import ValidationError

from fishcast.config import get_settings
from fishcast.models.ai_schemas import (
    ChatMessage,
    FishingAdvice,
    FishSpecies,
    FishingTip,
    GearRecommendationPayload,
    GearScore,
)
from fishcast.models.schemas import CurrentConditions, GearItem, LocationPoint
from fishcast.services.concurrency import with_timeout
from fishcast.services.scoring import marine_advice, season_for, wind_direction_label

logger = logging.getLogger(__name__)

GEAR_SYSTEM_PROMPT = """You are an expert fishing guide who ranks an angler's gear for today's conditions.
Respond with ONLY valid JSON in exactly this shape, with one entry per gear item:
{"recommendations": [{"gearId": "<id>", "score": <integer 0-100>, "reasoning": "<one or two sentences>", "suitabilityForConditions": "<short label>"}]}
No markdown, no extra text."""

TIPS_SYSTEM_PROMPT = (
    "You are an expert fishing instructor. Create educational, actionable fishing guidance "
    "that teaches anglers WHY and HOW to fish effectively. Be direct, specific, and "
    "instructional. You must respond with ONLY a valid JSON array. No explanations, "
    "markdown, or extra text."
)

SPECIES_SYSTEM_PROMPT = (
    "You are a marine biology expert. You must respond with ONLY a valid JSON array. "
    "Do not include explanations, markdown or code blocks. Start with [ and end with ]."
)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def extract_json_payload(text: str, kind: str = "object") -> str | None:
    """
    Cut the JSON payload out of free text.

    Markdown fences are removed, then the text between the first opening
    and last closing bracket of the requested kind is returned, so prose
    around the JSON does not break parsing.

    Args:
        text: Raw model output.
        kind: "object" for {...} or "array" for [...].

    Returns:
        The candidate JSON string, or None when no bracket pair is found.
    """
    opening, closing = ("[", "]") if kind == "array" else ("{", "}")
    cleaned = _FENCE_RE.sub("", text)
    start = cleaned.find(opening)
    end = cleaned.rfind(closing)
    if start == -1 or end <= start:
        return None
    return cleaned[start:end + 1]


def describe_conditions(conditions: CurrentConditions) -> list[str]:
    """Bullet lines describing conditions for prompts; unknown values say so."""

    def fmt(value: float | None, template: str) -> str:
        return template.format(value) if value is not None else "Unknown"

    wind = fmt(conditions.wind_speed, "{:.0f} km/h")
    if conditions.wind_speed is not None and conditions.wind_direction is not None:
        wind = f"{wind} {wind_direction_label(conditions.wind_direction)}"

    return [
        f"- Temperature: {fmt(conditions.temperature, '{:.0f}°C')}",
        f"- Wind: {wind}",
        f"- Wave height: {fmt(conditions.wave_height, '{:.1f}m')}",
        f"- Swell height: {fmt(conditions.swell_height, '{:.1f}m')}",
        f"- Swell period: {fmt(conditions.swell_period, '{:.1f}s')}",
        f"- Weather: {conditions.condition}",
        f"- Fishing conditions: {conditions.fishing_conditions.value}",
    ]


def build_gear_messages(
    gear: list[GearItem],
    conditions: CurrentConditions,
    location: LocationPoint,
) -> list[ChatMessage]:
    """Structured prompt enumerating each gear item and the current conditions."""
    gear_lines = []
    for item in gear:
        line = f"- id={item.id}; name={item.name}; category={item.category}"
        if item.technique:
            line += f"; technique={item.technique}"
        if item.target_species:
            line += f"; target={item.target_species}"
        if item.depth_range:
            line += f"; depth={item.depth_range}"
        gear_lines.append(line)

    user_prompt = (
        f"Location: {location.name}\n"
        "Current conditions:\n" + "\n".join(describe_conditions(conditions)) + "\n\n"
        "Gear:\n" + "\n".join(gear_lines) + "\n\n"
        "Score every gear item from 0 to 100 for these conditions."
    )
    return [
        ChatMessage(role="system", content=GEAR_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user_prompt),
    ]


def parse_gear_scores(text: str, gear_ids: set[str]) -> list[GearScore]:
    """
    Parse the gear-scoring contract out of model output.

    Unparsable output yields an empty list. Individual malformed entries and
    entries for unknown gear ids are dropped.
    """
    payload_text = extract_json_payload(text, "object")
    if payload_text is None:
        logger.warning("No JSON object found in gear scoring response")
        return []

    try:
        payload = GearRecommendationPayload.model_validate_json(payload_text)
    except ValidationError as e:
        logger.warning(f"Failed to parse gear scoring JSON: {e.error_count()} errors")
        return []

    scores: list[GearScore] = []
    for item in payload.recommendations:
        try:
            score = GearScore.model_validate(item)
        except ValidationError as e:
            logger.warning(f"Skipping malformed gear score: {e.error_count()} errors")
            continue
        if score.gear_id not in gear_ids:
            logger.warning(f"Skipping score for unknown gear id {score.gear_id}")
            continue
        scores.append(score)
    return scores


def parse_fishing_tips(text: str) -> list[FishingTip] | None:
    """Parse a JSON array of tips; None when the output is unusable."""
    payload_text = extract_json_payload(text, "array")
    if payload_text is None:
        return None

    try:
        data = json.loads(payload_text)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse fishing tips JSON: {e}")
        return None

    if not isinstance(data, list):
        return None

    tips = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            continue
        tips.append(
            FishingTip(
                title=str(item.get("title") or f"Fishing Tip {index + 1}"),
                content=str(item.get("content") or "No content available"),
                category=str(item.get("category") or "General"),
            )
        )
    return tips or None


_QUALIFIER_RE = re.compile(r"\s+(?:spp?|cf|aff)\.?(?=\s|$)", re.IGNORECASE)


def clean_scientific_name(value: str) -> str:
    """
    Reduce a scientific name to its binomial.

    Qualifiers like "spp." or "cf." are removed and anything after the
    species epithet is dropped. Returns "" when no binomial remains.
    """
    parts = _QUALIFIER_RE.sub("", value or "").split()
    if len(parts) < 2 or parts[0].lower() == "unknown":
        return ""
    return f"{parts[0]} {parts[1]}"


def parse_species(text: str, toxic_only: bool = False) -> list[FishSpecies] | None:
    """Parse a JSON array of species; entries without a binomial are dropped."""
    payload_text = extract_json_payload(text, "array")
    if payload_text is None:
        return None

    try:
        data = json.loads(payload_text)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse species JSON: {e}")
        return None

    if not isinstance(data, list):
        return None

    species = []
    for item in data:
        if not isinstance(item, dict):
            continue
        scientific_name = clean_scientific_name(str(item.get("scientificName") or ""))
        if not scientific_name:
            continue
        try:
            fish = FishSpecies.model_validate(
                {
                    **{k: v for k, v in item.items() if v is not None},
                    "name": str(item.get("name") or "Unknown Fish"),
                    "scientificName": scientific_name,
                    "isToxic": bool(item.get("isToxic")),
                }
            )
        except ValidationError as e:
            logger.warning(f"Skipping invalid species {scientific_name}: {e.error_count()} errors")
            continue
        if toxic_only and not fish.is_toxic:
            continue
        species.append(fish)
    return species or None


class GroqProvider:
    """Groq AI provider for fishing recommendations."""

    def __init__(self) -> None:
        """Initialize Groq client if API key is available."""
        settings = get_settings()
        self.client: AsyncGroq | None = None
        self.ai_enabled = False
        if settings.groq_api_key:
            self.client = AsyncGroq(api_key=settings.groq_api_key)
            self.ai_enabled = True
        self.model = settings.groq_model
        self.timeout = settings.ai_timeout

    async def _complete(
        self,
        messages: list[ChatMessage],
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Run one chat completion, bounded by the AI timeout."""
        chat_completion = await with_timeout(
            self.client.chat.completions.create(
                messages=[m.model_dump() for m in messages],
                model=self.model,
                temperature=temperature,
                max_tokens=max_tokens,
            ),
            self.timeout,
            label="AI completion",
        )
        return (chat_completion.choices[0].message.content or "").strip()

    async def score_gear(
        self,
        gear: list[GearItem],
        conditions: CurrentConditions,
        location: LocationPoint,
    ) -> list[GearScore]:
        """
        Score gear items for the current conditions.

        Args:
            gear: Gear items to score.
            conditions: Current conditions to score against.
            location: Location used in the prompt.

        Returns:
            Gear scores; empty when AI is disabled, fails or returns
            unparsable output.
        """
        if not self.ai_enabled:
            logger.info("AI disabled, returning no gear recommendations")
            return []

        try:
            text = await self._complete(
                build_gear_messages(gear, conditions, location),
                temperature=0.3,
                max_tokens=2000,
            )
        except (APIError, TimeoutError) as e:
            logger.warning(f"Gear scoring failed: {e}")
            return []

        return parse_gear_scores(text, {item.id for item in gear})

    async def generate_fishing_tips(
        self,
        location: LocationPoint,
        conditions: CurrentConditions | None,
        today: date,
    ) -> list[FishingTip] | None:
        """
        Generate five educational tips for a location and day.

        Returns:
            Tips, or None when AI is disabled, fails or the output is
            unusable.
        """
        if not self.ai_enabled:
            return None

        season = season_for(location.latitude, today.month)
        month = today.strftime("%B")
        weather_context = ""
        if conditions is not None:
            weather_context = "Current conditions:\n" + "\n".join(describe_conditions(conditions))

        user_prompt = (
            f"Generate exactly 5 educational fishing tips for {location.name} in {season} ({month}).\n"
            f"{weather_context}\n\n"
            "Each tip should explain WHY a technique works in these conditions and WHAT to do, "
            "include specific numbers in metric units, and stay under 150 characters.\n"
            'Format: [{"title":"Tip title","content":"Guidance","category":"Weather|Technique|Bait|Timing|Location"}]'
        )

        try:
            text = await self._complete(
                [
                    ChatMessage(role="system", content=TIPS_SYSTEM_PROMPT),
                    ChatMessage(role="user", content=user_prompt),
                ],
                temperature=0.7,
                max_tokens=1500,
            )
        except (APIError, TimeoutError) as e:
            logger.warning(f"Fishing tips generation failed: {e}")
            return None

        return parse_fishing_tips(text)

    async def generate_fishing_advice(
        self,
        location: LocationPoint,
        conditions: CurrentConditions,
        today: date,
    ) -> FishingAdvice:
        """Inshore and offshore advice, generated concurrently."""
        fallback = marine_advice(conditions.wave_height, conditions.wind_speed)
        if not self.ai_enabled:
            return FishingAdvice(inshore=fallback, offshore=fallback)

        season = season_for(location.latitude, today.month)
        lines = "\n".join(describe_conditions(conditions))
        inshore_prompt = (
            f"You are an expert fishing guide. Based on these conditions at {location.name}, "
            f"provide brief, practical inshore fishing advice (max 3 sentences):\n{lines}\n"
            f"- Season: {season}\n\n"
            'Focus on inshore tactics, general location types (like "sheltered bays"), '
            "and suitable species."
        )
        offshore_prompt = (
            f"You are an expert fishing guide. Based on these conditions at {location.name}, "
            f"provide brief, practical offshore fishing advice (max 3 sentences):\n{lines}\n"
            f"- Season: {season}\n\n"
            "Focus on offshore tactics, suitable depths, and target species."
        )

        inshore, offshore = await asyncio.gather(
            self._advice(inshore_prompt, "inshore"),
            self._advice(offshore_prompt, "offshore"),
        )
        return FishingAdvice(inshore=inshore or fallback, offshore=offshore or fallback)

    async def _advice(self, prompt: str, kind: str) -> str | None:
        try:
            return await self._complete(
                [ChatMessage(role="user", content=prompt)],
                temperature=0.7,
                max_tokens=150,
            )
        except (APIError, TimeoutError) as e:
            logger.warning(f"{kind.capitalize()} advice generation failed: {e}")
            return None

    async def generate_species(
        self,
        location: LocationPoint,
        sea_name: str,
        today: date,
        page: int = 1,
        page_size: int = 50,
    ) -> list[FishSpecies] | None:
        """
        Generate one page of native species for a location and month.

        Returns:
            Species, or None when AI is disabled, fails or the output is
            unusable.
        """
        if not self.ai_enabled:
            return None

        month = today.strftime("%B")
        user_prompt = (
            f"Generate a JSON array with exactly {page_size} fish species that are NATIVE and "
            f"commonly found in the {sea_name} near {location.name} during {month}. "
            f"This is page {page}; do not repeat species from earlier pages.\n"
            "Every fish MUST have a complete binomial scientific name (Genus species), never "
            "spp., sp., cf. or aff. Leave out any fish you cannot name that way. "
            "Do not include tropical, exotic or non-native species.\n"
            'Format: [{"name":"Fish Name","scientificName":"Genus species","habitat":"Habitat",'
            '"difficulty":"Easy|Intermediate|Hard|Advanced|Expert","season":"Season info","isToxic":false}]'
        )
        return await self._species(user_prompt, f"Species page {page}", toxic_only=False)

    async def generate_toxic_species(
        self,
        location: LocationPoint,
        sea_name: str,
        today: date,
    ) -> list[FishSpecies] | None:
        """Toxic or venomous species an angler may catch near a location."""
        if not self.ai_enabled:
            return None

        month = today.strftime("%B")
        user_prompt = (
            f"List the toxic or venomous fish species an angler could catch in the {sea_name} "
            f"near {location.name} ({location.latitude:.3f}, {location.longitude:.3f}) during {month}.\n"
            "Every fish MUST have a complete binomial scientific name (Genus species).\n"
            "probabilityScore is the likelihood (0 to 1) of encountering the fish there.\n"
            'Format: [{"name":"Fish Name","scientificName":"Genus species","habitat":"Habitat",'
            '"difficulty":"Intermediate","season":"Season info","isToxic":true,'
            '"dangerType":"Venomous spines|Ciguatoxin|Tetrodotoxin|...","probabilityScore":0.4}]'
        )
        return await self._species(user_prompt, "Toxic species", toxic_only=True)

    async def _species(self, user_prompt: str, kind: str, toxic_only: bool) -> list[FishSpecies] | None:
        try:
            text = await self._complete(
                [
                    ChatMessage(role="system", content=SPECIES_SYSTEM_PROMPT),
                    ChatMessage(role="user", content=user_prompt),
                ],
                temperature=0.1,
                max_tokens=2000,
            )
        except (APIError, TimeoutError) as e:
            logger.warning(f"{kind} generation failed: {e}")
            return None

        return parse_species(text, toxic_only=toxic_only)


# Singleton instance
_ai_provider: GroqProvider | None = None


def get_ai_provider() -> GroqProvider:
    """Get or create the AI provider instance."""
    global _ai_provider
    if _ai_provider is None:
        _ai_provider = GroqProvider()
    return _ai_provider
