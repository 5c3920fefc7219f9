"""Region, sea and location-name helpers used to build cache keys."""

import re
from datetime import date

DEFAULT_SEA = "Regional Waters"

COUNTRY_CODES: dict[str, str] = {
    "mt": "Malta", "us": "United States", "uk": "United Kingdom",
    "gb": "United Kingdom", "ca": "Canada", "au": "Australia",
    "nz": "New Zealand", "fr": "France", "es": "Spain", "it": "Italy",
    "gr": "Greece", "tr": "Turkey", "eg": "Egypt", "ma": "Morocco",
    "tn": "Tunisia", "ly": "Libya", "hr": "Croatia", "me": "Montenegro",
    "al": "Albania", "cy": "Cyprus", "lb": "Lebanon", "sy": "Syria",
    "il": "Israel", "jo": "Jordan", "sa": "Saudi Arabia", "ae": "UAE",
    "qa": "Qatar", "kw": "Kuwait", "bh": "Bahrain", "om": "Oman",
    "ye": "Yemen", "dz": "Algeria", "pt": "Portugal", "mc": "Monaco",
    "si": "Slovenia", "ba": "Bosnia and Herzegovina", "rs": "Serbia",
    "bg": "Bulgaria", "ro": "Romania", "ua": "Ukraine", "ru": "Russia",
    "ge": "Georgia", "gh": "Ghana", "ng": "Nigeria", "za": "South Africa",
    "in": "India", "jp": "Japan", "ph": "Philippines",
}

COUNTRY_TO_SEA: dict[str, str] = {
    # Mediterranean Sea
    "malta": "Mediterranean Sea", "spain": "Mediterranean Sea",
    "france": "Mediterranean Sea", "italy": "Mediterranean Sea",
    "greece": "Mediterranean Sea", "turkey": "Mediterranean Sea",
    "cyprus": "Mediterranean Sea", "croatia": "Mediterranean Sea",
    "montenegro": "Mediterranean Sea", "albania": "Mediterranean Sea",
    "slovenia": "Mediterranean Sea", "lebanon": "Mediterranean Sea",
    "syria": "Mediterranean Sea", "israel": "Mediterranean Sea",
    "egypt": "Mediterranean Sea", "libya": "Mediterranean Sea",
    "tunisia": "Mediterranean Sea", "algeria": "Mediterranean Sea",
    "morocco": "Mediterranean Sea", "monaco": "Mediterranean Sea",
    "bosnia and herzegovina": "Mediterranean Sea",
    # Atlantic Ocean
    "united states": "Atlantic Ocean", "florida": "Atlantic Ocean",
    "canada": "Atlantic Ocean", "united kingdom": "Atlantic Ocean",
    "portugal": "Atlantic Ocean", "ireland": "Atlantic Ocean",
    "iceland": "Atlantic Ocean", "norway": "Atlantic Ocean",
    "brazil": "Atlantic Ocean", "argentina": "Atlantic Ocean",
    "south africa": "Atlantic Ocean", "namibia": "Atlantic Ocean",
    "senegal": "Atlantic Ocean", "ghana": "Atlantic Ocean",
    "nigeria": "Atlantic Ocean",
    # Pacific Ocean
    "australia": "Pacific Ocean", "new zealand": "Pacific Ocean",
    "japan": "Pacific Ocean", "philippines": "Pacific Ocean",
    "indonesia": "Pacific Ocean", "thailand": "Pacific Ocean",
    "vietnam": "Pacific Ocean", "california": "Pacific Ocean",
    "hawaii": "Pacific Ocean", "chile": "Pacific Ocean",
    "peru": "Pacific Ocean",
    # Indian Ocean
    "india": "Indian Ocean", "sri lanka": "Indian Ocean",
    "maldives": "Indian Ocean", "seychelles": "Indian Ocean",
    "mauritius": "Indian Ocean", "madagascar": "Indian Ocean",
    "kenya": "Indian Ocean", "tanzania": "Indian Ocean",
    # Red Sea
    "saudi arabia": "Red Sea", "jordan": "Red Sea", "sudan": "Red Sea",
    "eritrea": "Red Sea", "yemen": "Red Sea",
    # Persian Gulf
    "uae": "Persian Gulf", "qatar": "Persian Gulf", "kuwait": "Persian Gulf",
    "bahrain": "Persian Gulf", "oman": "Persian Gulf", "iran": "Persian Gulf",
    # Black Sea
    "ukraine": "Black Sea", "russia": "Black Sea", "georgia": "Black Sea",
    "bulgaria": "Black Sea", "romania": "Black Sea",
}

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def country_from_name(name: str) -> str:
    """
    Extract the country part of a "Place, Country" style name.

    Two-letter trailing tokens are expanded from ISO country codes.
    Multi-word countries ("South Africa") are matched on the last
    comma-separated segment before falling back to the last word.
    """
    cleaned = name.strip()
    if not cleaned:
        return ""

    segment = cleaned.split(",")[-1].strip().lower()
    if segment in COUNTRY_TO_SEA:
        return segment

    last_word = re.split(r"[,\s]+", cleaned)[-1].lower()
    if len(last_word) == 2 and last_word in COUNTRY_CODES:
        return COUNTRY_CODES[last_word].lower()
    return last_word


def sea_name_for(name: str) -> str:
    """Map a location name to its sea/ocean, or "Regional Waters"."""
    return COUNTRY_TO_SEA.get(country_from_name(name), DEFAULT_SEA)


def location_slug(name: str) -> str:
    """Normalize a location name into a key-safe identifier."""
    slug = _SLUG_RE.sub("-", name.strip().lower()).strip("-")
    return slug or "unknown"


def month_year_bucket(day: date) -> str:
    """Month-year bucket used by monthly datasets, e.g. "2026-10"."""
    return f"{day.year:04d}-{day.month:02d}"
