"""
Category classification from weighted multi-channel evidence.
"""
import re
from typing import Dict, List, Optional, Tuple

from .dictionaries import (
    BRAND_RULES,
    CATEGORY_KEYWORDS,
    CATEGORY_ORDER,
    DETAIL_BLACKLIST,
    DISCOUNT_PATTERN,
    LODGING_HINT_PATTERN,
    PACKAGE_LODGING_PATTERN,
    PACKAGE_NIGHTS_PATTERN,
    PACKAGE_TITLE_PATTERN,
    PACKAGE_TOURS_PATTERN,
    PACKAGE_TRANSFER_PATTERN,
    SCHEMA_TYPE_RULES,
    SITE_CATEGORY_MAP,
    STRUCTURE_RULES,
)
from .models import ClassificationResult, ListingSignals, UNKNOWN_CATEGORY
from .utils import keyword_pattern, normalize_text


# Channel weights
W_STRUCTURE = 5.0
W_SCHEMA = 4.5
W_BRAND = 4.0
W_TITLE = 3.0
W_BADGE = 2.5
W_SITE_TAXONOMY = 2.5
W_DETAIL = 1.5
W_IMAGE_ALT = 1.5
W_IMAGE_FILENAME = 1.5
W_URL = 1.5
W_OCR = 1.5

# Package rule: weight apportioned per secondary signal
W_PACKAGE_LODGING = 3.0
W_PACKAGE_TOURS = 2.5
W_PACKAGE_TRANSFER = 1.5

MAX_REASONS = 20


class EvidenceScore:
    """Running per-category score with its reason trace."""

    def __init__(self):
        self.scores: Dict[str, float] = {}
        self.reasons: List[str] = []

    def add(self, category: str, points: float, why: str):
        self.scores[category] = self.scores.get(category, 0.0) + points
        self.reasons.append(f"[+{points:g}] {category}: {why}")

    def ranked(self) -> List[Tuple[str, float]]:
        """Categories by score descending, ties broken by the fixed label order."""
        entries = [(cat, pts) for cat, pts in self.scores.items() if pts > 0]
        entries.sort(key=lambda e: (-e[1], CATEGORY_ORDER.index(e[0])))
        return entries


def score_keywords(text: str, channel: str, weight: float, evidence: EvidenceScore):
    """Scan normalized channel text against every category's keyword list."""
    if not text:
        return
    for cat in CATEGORY_ORDER:
        for kw in CATEGORY_KEYWORDS[cat]:
            if channel == "detalle" and kw in DETAIL_BLACKLIST:
                continue
            if keyword_pattern(kw).search(text):
                evidence.add(cat, weight, f'{channel}: "{kw}"')


def score_brands(text: str, evidence: EvidenceScore, weight: float = W_BRAND):
    for pattern, cat in BRAND_RULES:
        if pattern.search(text):
            evidence.add(cat, weight, "marca/entidad")


def detect_category_from_structure(title: str) -> Optional[Tuple[str, float]]:
    """Direct category vote from lodging/gastronomy/package wording in the title."""
    t = normalize_text(title)
    if not t:
        return None
    for pattern, cat, confidence in STRUCTURE_RULES:
        if pattern.search(t):
            return cat, confidence
    if DISCOUNT_PATTERN.search(t) and LODGING_HINT_PATTERN.search(t):
        return "Alojamiento", 0.7
    return None


def score_package(title: str, detail: str, evidence: EvidenceScore):
    """
    Bundle language in the title spreads weight over lodging, tours and
    transport depending on what the detail body mentions.
    """
    t = normalize_text(title)
    if not PACKAGE_TITLE_PATTERN.search(t):
        return
    d = normalize_text(detail)
    if PACKAGE_NIGHTS_PATTERN.search(d) or PACKAGE_LODGING_PATTERN.search(d):
        evidence.add("Alojamiento", W_PACKAGE_LODGING, "paquete: alojamiento/noches")
    if PACKAGE_TOURS_PATTERN.search(d):
        evidence.add("Excursiones y Actividades", W_PACKAGE_TOURS, "paquete: tours/entradas")
    if PACKAGE_TRANSFER_PATTERN.search(d):
        evidence.add("Transporte", W_PACKAGE_TRANSFER, "paquete: traslados")


def score_schema_types(types: List[str], evidence: EvidenceScore):
    for t in types or []:
        n = (t or "").lower()
        for pattern, cat in SCHEMA_TYPE_RULES:
            if pattern.search(n):
                evidence.add(cat, W_SCHEMA, f"schema.org @type={t}")
                break


def score_site_taxonomy(badges: List[str], evidence: EvidenceScore):
    """Badges that are site taxonomy slugs vote for their mapped category."""
    seen = set()
    for badge in badges or []:
        for token in re.split(r"[\s,;]+", normalize_text(badge)):
            cat = SITE_CATEGORY_MAP.get(token)
            if cat and token not in seen:
                seen.add(token)
                evidence.add(cat, W_SITE_TAXONOMY, f"taxonomía del sitio: {token}")


def compute_confidence(top: float, second: float) -> float:
    """Margin of the winner over the runner-up, in [0, 1]."""
    denom = max(1.0, top + second)
    c = round((top - second) / denom, 3)
    return max(0.0, min(1.0, c))


def url_slug_text(url: str) -> str:
    """Normalized URL with separators turned into spaces."""
    return re.sub(r"[-_/.:?=&#]+", " ", normalize_text(url)).strip()


def classify(signals: ListingSignals, include_ocr: bool = True) -> ClassificationResult:
    """
    Classify a listing into one of the fixed categories.

    Never raises: a listing without evidence gets the unknown category and
    zero confidence.
    """
    evidence = EvidenceScore()
    title = signals.title or ""
    detail = signals.detail_text or ""

    struct = detect_category_from_structure(title)
    if struct:
        cat, conf = struct
        evidence.add(cat, W_STRUCTURE, f"estructura del título (conf {conf})")

    images = signals.images or []
    score_keywords(normalize_text(title), "título", W_TITLE, evidence)
    score_keywords(normalize_text(detail), "detalle", W_DETAIL, evidence)
    score_keywords(normalize_text(" ".join(img.alt for img in images)), "imagen.alt", W_IMAGE_ALT, evidence)
    score_keywords(
        normalize_text(" ".join(re.sub(r"[-_.]+", " ", img.filename) for img in images)),
        "imagen.filename", W_IMAGE_FILENAME, evidence,
    )
    score_keywords(url_slug_text(signals.url), "url", W_URL, evidence)

    if signals.badges:
        score_keywords(normalize_text(" ".join(signals.badges)), "badge", W_BADGE, evidence)
        score_site_taxonomy(signals.badges, evidence)

    score_schema_types(signals.schema_types, evidence)
    score_brands(f"{title} {detail} {signals.url or ''}", evidence)
    score_package(title, detail, evidence)

    if include_ocr and signals.ocr_text:
        score_keywords(normalize_text(signals.ocr_text), "ocr", W_OCR, evidence)

    ranked = evidence.ranked()
    if not ranked:
        return ClassificationResult(category=UNKNOWN_CATEGORY, confidence=0.0, reasons=[], raw_scores={})

    top_cat, top = ranked[0]
    second = ranked[1][1] if len(ranked) > 1 else 0.0
    return ClassificationResult(
        category=top_cat,
        confidence=compute_confidence(top, second),
        reasons=evidence.reasons[:MAX_REASONS],
        raw_scores=dict(evidence.scores),
    )
