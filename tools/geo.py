"""Location name -> country geo code and search region."""

from typing import Dict

import structlog

logger = structlog.get_logger(__name__)

COUNTRY_CODES: Dict[str, str] = {
    "Turkey": "TR",
    "Türkiye": "TR",
    "United States": "US",
    "USA": "US",
    "Germany": "DE",
    "Deutschland": "DE",
    "Japan": "JP",
    "France": "FR",
    "United Kingdom": "GB",
    "UK": "GB",
    "Italy": "IT",
    "Spain": "ES",
    "Canada": "CA",
    "Australia": "AU",
    "Brazil": "BR",
    "Netherlands": "NL",
    "Switzerland": "CH",
    "Austria": "AT",
    "Belgium": "BE",
    "Sweden": "SE",
    "Norway": "NO",
    "Denmark": "DK",
    "Finland": "FI",
    "Poland": "PL",
    "Russia": "RU",
    "China": "CN",
    "India": "IN",
    "South Korea": "KR",
    "Mexico": "MX",
    "Argentina": "AR",
    "Chile": "CL",
    "Colombia": "CO",
    "Peru": "PE",
    "Global": "",
}

DEFAULT_LOCALE = "us-en"
TURKISH_LOCALE = "tr-tr"


def geo_code(location: str) -> str:
    """
    Two-letter country code for *location*, or ``""`` for global.

    Lookup order: exact name, case-insensitive name, then partial match in
    either direction ("Istanbul, Turkey" -> "TR").
    """
    location = (location or "").strip()
    if not location:
        return ""

    if location in COUNTRY_CODES:
        return COUNTRY_CODES[location]

    lowered = location.lower()
    for country, code in COUNTRY_CODES.items():
        if country.lower() == lowered:
            return code

    for country, code in COUNTRY_CODES.items():
        name = country.lower()
        if name in lowered or lowered in name:
            return code

    logger.debug("geo.unknown_location", location=location)
    return ""


def search_locale(location: str) -> str:
    """Search engine region hint: ``tr-tr`` for Turkish locations, ``us-en`` otherwise."""
    if "tur" in (location or "").lower() or geo_code(location) == "TR":
        return TURKISH_LOCALE
    return DEFAULT_LOCALE
