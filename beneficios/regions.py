"""
Region resolution through an ordered chain of fallback strategies.

Chain, stopping at the first positive hit:
  1. structural title patterns ("Name. City – Region", "Name (City, Region)", ...)
  2. the extracted region candidate via alias, exact name, then fuzzy match
     (and the extracted city via the city table)
  3. aliases, region names and cities found anywhere in the title
  4. nationwide wording, region names and cities in structured location
     text plus the detail body
  5. region names and cities in the URL slug
  6. region names and cities in OCR text
  7. unknown
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from rapidfuzz.distance import DamerauLevenshtein

from .dictionaries import (
    ALIAS_KEYS,
    CITY_KEYS,
    CITY_REGIONS,
    NATIONWIDE_PATTERN,
    REGION_ALIASES,
    REGION_FULL_NAMES,
    REGION_SCAN_ORDER,
    REGIONS,
)
from .models import ListingSignals, NATIONWIDE, UNKNOWN_REGION
from .utils import contains_term, normalize_text

logger = logging.getLogger(__name__)

FUZZY_MAX_DISTANCE = 1
# Shorter candidates are one edit away from too many unrelated words
FUZZY_MIN_LENGTH = 5

_DASH = "–—-"
TITLE_PATTERNS = (
    # "Name. City – Region" / "Name. City-Region"
    re.compile(rf"^(.+?)\.\s*([^,{_DASH}]+?)\s*[{_DASH}]\s*(.+)$"),
    # "Name. City, Region"
    re.compile(r"^(.+?)\.\s*([^,]+?)\s*,\s*(.+)$"),
    # "Name – City – Region"
    re.compile(rf"^(.+?)\s*[{_DASH}]\s*([^,{_DASH}]+?)\s*[{_DASH}]\s*(.+)$"),
    # "Name. Region"
    re.compile(r"^(.+?)\.\s*(.+)$"),
    # "Name | City, Region"
    re.compile(r"^(.+?)\s*\|\s*([^,|]+?)\s*,\s*(.+)$"),
    # "Name (City, Region)"
    re.compile(r"^(.+?)\s*\(\s*([^,()]+?)\s*,\s*([^)]+?)\s*\)$"),
)


@dataclass
class TitleParts:
    business_name: str
    city: Optional[str]
    region: Optional[str]


def parse_title(title: str) -> Optional[TitleParts]:
    """Split a listing title into business name, city and region candidates."""
    t = (title or "").strip()
    if not t:
        return None
    for pattern in TITLE_PATTERNS:
        m = pattern.match(t)
        if not m:
            continue
        groups = [g.strip() if g else None for g in m.groups()]
        if len(groups) == 3:
            return TitleParts(business_name=groups[0], city=groups[1], region=groups[2])
        return TitleParts(business_name=groups[0], city=None, region=groups[1])
    return None


def canonical_region_name(candidate: str) -> Optional[str]:
    """Alias table lookup, then exact (normalized) region name."""
    n = normalize_text(candidate)
    if not n:
        return None
    if n in REGION_ALIASES:
        return REGION_ALIASES[n]
    for region in REGIONS:
        if normalize_text(region) == n:
            return region
    return None


def fuzzy_find_region(candidate: str, max_distance: int = FUZZY_MAX_DISTANCE) -> Optional[str]:
    """Closest region name or alias within `max_distance` edits (transpositions count as one)."""
    n = normalize_text(candidate)
    if len(n) < FUZZY_MIN_LENGTH:
        return None
    for region in REGIONS:
        if DamerauLevenshtein.distance(n, normalize_text(region), score_cutoff=max_distance) <= max_distance:
            return region
    for alias, region in REGION_ALIASES.items():
        if DamerauLevenshtein.distance(n, alias, score_cutoff=max_distance) <= max_distance:
            return region
    return None


def resolve_region_name(candidate: Optional[str]) -> Optional[str]:
    """Resolve a free-text region candidate: alias, exact name, fuzzy."""
    if not candidate:
        return None
    return canonical_region_name(candidate) or fuzzy_find_region(candidate)


def lookup_city(city: Optional[str], context: str = "") -> Optional[str]:
    """
    Region of a known city.

    Ambiguous cities resolve only when one of their regions also appears in
    `context` (normalized text).
    """
    regions = CITY_REGIONS.get(normalize_text(city))
    if not regions:
        return None
    if len(regions) == 1:
        return regions[0]
    for region in regions:
        if contains_term(context, normalize_text(region)):
            return region
    logger.debug(f"Ambiguous city '{city}' ({', '.join(regions)}) without region literal")
    return None


def scan_aliases(text: str) -> Optional[str]:
    for alias in ALIAS_KEYS:
        if contains_term(text, alias):
            return REGION_ALIASES[alias]
    return None


def scan_regions(text: str) -> Optional[str]:
    for region in REGION_SCAN_ORDER:
        names = (normalize_text(region),) + REGION_FULL_NAMES.get(region, ())
        if any(contains_term(text, name) for name in names):
            return region
    return None


def scan_cities(text: str) -> Optional[str]:
    for city in CITY_KEYS:
        if not contains_term(text, city):
            continue
        region = lookup_city(city, text)
        if region:
            return region
    return None


def scan_names_then_cities(text: str) -> Optional[str]:
    if not text:
        return None
    return scan_regions(text) or scan_cities(text)


def region_from_title(title: str) -> Optional[str]:
    """Aliases, then region names, then cities found anywhere in the title."""
    t = normalize_text(title)
    if not t:
        return None
    return scan_aliases(t) or scan_regions(t) or scan_cities(t)


def region_from_parsed_title(title: str) -> Optional[str]:
    parts = parse_title(title)
    if not parts:
        return None
    region = resolve_region_name(parts.region)
    if region:
        return region
    if parts.city:
        region = resolve_region_name(parts.city) or lookup_city(parts.city, normalize_text(title))
    return region


def resolve_region(signals: ListingSignals, include_ocr: bool = True) -> str:
    """
    Best-effort region for a listing.

    Never raises; returns a region name, the nationwide sentinel or the
    unknown sentinel. OCR text only upgrades a nationwide or unknown result.
    """
    region = _resolve_without_ocr(signals)
    if region not in (NATIONWIDE, UNKNOWN_REGION):
        return region

    if include_ocr and signals.ocr_text:
        from_ocr = scan_names_then_cities(normalize_text(signals.ocr_text))
        if from_ocr:
            logger.debug(f"Region via OCR: {from_ocr}")
            return from_ocr
    return region


def _resolve_without_ocr(signals: ListingSignals) -> str:
    title = signals.title or ""

    region = region_from_parsed_title(title) or region_from_title(title)
    if region:
        return region

    combined = normalize_text(f"{signals.structured_location_text or ''} {signals.detail_text or ''}")
    if NATIONWIDE_PATTERN.search(combined):
        return NATIONWIDE
    region = scan_names_then_cities(combined)
    if region:
        return region

    slug = re.sub(r"[-_/.:?=&#]+", " ", normalize_text(signals.url)).strip()
    region = scan_names_then_cities(slug)
    if region:
        return region

    return UNKNOWN_REGION
