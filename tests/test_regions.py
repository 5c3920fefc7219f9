"""Tests for region and location-name helpers."""

from datetime import date

from fishcast.services.regions import (
    DEFAULT_SEA,
    country_from_name,
    location_slug,
    month_year_bucket,
    sea_name_for,
)


class TestCountryFromName:
    """Tests for country extraction."""

    def test_last_segment(self) -> None:
        """Should use the last comma-separated segment."""
        assert country_from_name("Valletta, Malta") == "malta"

    def test_multi_word_country(self) -> None:
        """Should match multi-word countries."""
        assert country_from_name("Cape Town, South Africa") == "south africa"

    def test_country_code_expansion(self) -> None:
        """Should expand two-letter country codes."""
        assert country_from_name("Sliema, MT") == "malta"
        assert country_from_name("Brighton UK") == "united kingdom"

    def test_empty_name(self) -> None:
        """Should return an empty string for an empty name."""
        assert country_from_name("   ") == ""


class TestSeaNameFor:
    """Tests for sea mapping."""

    def test_known_countries(self) -> None:
        """Should map countries to their sea or ocean."""
        assert sea_name_for("Valletta, Malta") == "Mediterranean Sea"
        assert sea_name_for("Accra, Ghana") == "Atlantic Ocean"
        assert sea_name_for("Odesa, Ukraine") == "Black Sea"

    def test_unknown_country(self) -> None:
        """Should fall back to regional waters."""
        assert sea_name_for("Lake Town, Nowhere") == DEFAULT_SEA


class TestLocationSlug:
    """Tests for slug normalization."""

    def test_normalizes_punctuation_and_case(self) -> None:
        """Should lowercase and collapse separators."""
        assert location_slug("  St. Julian's, Malta ") == "st-julian-s-malta"

    def test_empty_slug(self) -> None:
        """Should never return an empty slug."""
        assert location_slug("!!!") == "unknown"


class TestMonthYearBucket:
    """Tests for the monthly bucket."""

    def test_zero_padded(self) -> None:
        """Should zero-pad the month."""
        assert month_year_bucket(date(2026, 3, 9)) == "2026-03"
