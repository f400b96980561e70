"""
Rule-based correction of known classifier mistakes and region consistency checks.
"""
import logging
from dataclasses import replace
from typing import List, Tuple

from .classifier import MAX_REASONS
from .dictionaries import CORRECTION_FLOOR, CORRECTION_RULES
from .models import ClassificationResult, UNKNOWN_REGION
from .regions import region_from_title

logger = logging.getLogger(__name__)


def apply_corrections(title: str, result: ClassificationResult) -> ClassificationResult:
    """
    Force the correct category for titles the keyword scoring gets wrong.

    Rules run in table order and may fire one after another; the input
    result is left untouched. Correction traces replace the trailing evidence
    so the reasons list stays within MAX_REASONS.
    """
    category = result.category
    confidence = result.confidence
    traces: List[str] = []

    for pattern, overridable, correct in CORRECTION_RULES:
        if pattern.search(title or "") and category in overridable:
            traces.append(f"[CORREGIDO] De {category} a {correct} por validación")
            category = correct
            confidence = max(CORRECTION_FLOOR, confidence)

    if category == result.category and confidence == result.confidence:
        return result
    traces = traces[-MAX_REASONS:]
    reasons = list(result.reasons)[:MAX_REASONS - len(traces)] + traces
    return replace(result, category=category, confidence=confidence, reasons=reasons)


def region_warnings(title: str, region: str) -> List[str]:
    """Flag a title-derived region that disagrees with the resolved one. Never corrects."""
    title_region = region_from_title(title)
    if title_region and region != UNKNOWN_REGION and title_region != region:
        msg = f"Provincia inconsistente: título sugiere {title_region} pero se detectó {region}"
        logger.warning(f"{msg} ({title})")
        return [msg]
    return []


def validate_and_correct(
    title: str, result: ClassificationResult, region: str
) -> Tuple[ClassificationResult, List[str]]:
    """Run the correction table and the region consistency check."""
    return apply_corrections(title, result), region_warnings(title, region)
