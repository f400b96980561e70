"""
Two-phase classification of listings: classify, optionally enrich with OCR, reclassify.
"""
import asyncio
import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from .classifier import classify
from .models import ListingOutcome, ListingSignals
from .ocr import (
    DEFAULT_MAX_IMAGES,
    OcrCache,
    OcrEngine,
    collect_ocr_text,
    merge_after_ocr,
    needs_ocr,
)
from .reconcile import MalformedListing, check_signals, is_aggregator
from .regions import resolve_region
from .validation import validate_and_correct

__all__ = ["MalformedListing", "check_signals", "process_listing", "process_batch"]


async def process_listing(
    signals: ListingSignals,
    ocr: Optional[OcrEngine] = None,
    cache: Optional[OcrCache] = None,
    max_ocr_images: int = DEFAULT_MAX_IMAGES,
    ocr_timeout: Optional[float] = None,
) -> ListingOutcome:
    """
    Classify one listing.

    The first pass ignores OCR text. When the category or region is still
    weak, OCR text is collected (or taken from the signals if the scraper
    already supplied it) and both resolvers run again; the re-run only
    replaces weak fields. Corrections and region warnings come last.

    Raises MalformedListing when the title or URL is missing.
    """
    check_signals(signals)

    preliminary = classify(signals, include_ocr=False)
    region = resolve_region(signals, include_ocr=False)
    classification = preliminary
    ocr_used = False

    if needs_ocr(preliminary, region):
        text = signals.ocr_text
        if not text and ocr is not None:
            text = await collect_ocr_text(signals, ocr, cache, max_ocr_images, ocr_timeout)
        if text:
            signals = replace(signals, ocr_text=text)
            rerun = classify(signals, include_ocr=True)
            rerun_region = resolve_region(signals, include_ocr=True)
            classification, region = merge_after_ocr(preliminary, rerun, region, rerun_region)
            ocr_used = True

    classification, warnings = validate_and_correct(signals.title, classification, region)
    return ListingOutcome(
        signals=signals,
        classification=classification,
        region=region,
        ocr_used=ocr_used,
        warnings=warnings,
    )


async def process_batch(
    signals_list: Iterable[ListingSignals],
    ocr: Optional[OcrEngine] = None,
    concurrency: int = 4,
    max_items: Optional[int] = None,
    max_ocr_images: int = DEFAULT_MAX_IMAGES,
    ocr_timeout: Optional[float] = None,
    logger=None,
) -> List[ListingOutcome]:
    """
    Classify a batch concurrently, one task per listing.

    Aggregator wrappers are dropped and malformed listings are logged and
    skipped, through the module logger when no `logger` is given. All tasks
    share one OCR cache; results keep input order.
    """
    skip_log = logger or logging.getLogger(__name__)
    items = list(signals_list)
    if max_items:
        items = items[:max_items]
    total = len(items)

    cache = OcrCache()
    sem = asyncio.Semaphore(max(1, concurrency))

    async def worker(idx: int, signals: ListingSignals) -> Optional[ListingOutcome]:
        if is_aggregator(signals.title):
            skip_log.info(f">>> [{idx}/{total}] Aggregator skipped: {signals.title}")
            return None
        async with sem:
            try:
                outcome = await process_listing(signals, ocr, cache, max_ocr_images, ocr_timeout)
            except MalformedListing as e:
                skip_log.warning(f">>> [{idx}/{total}] Skipping listing: {e}")
                return None
        if logger:
            c = outcome.classification
            logger.info(
                f">>> [{idx}/{total}] {outcome.signals.title} -> {c.category} ({c.confidence}) / {outcome.region}"
                + (" [OCR]" if outcome.ocr_used else "")
            )
        return outcome

    results = await asyncio.gather(*(worker(i, s) for i, s in enumerate(items, 1)))
    if logger:
        logger.info(f">>> OCR images processed: {len(cache)}")
    return [r for r in results if r is not None]
