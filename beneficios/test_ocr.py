#!/usr/bin/env python3
"""
Tests for the OCR trigger policy, image selection and per-run cache.
"""
import asyncio

import pytest

from beneficios.models import (
    ClassificationResult,
    ImageDescriptor,
    ListingSignals,
    NATIONWIDE,
    UNKNOWN_CATEGORY,
    UNKNOWN_REGION,
)
from beneficios.ocr import (
    HINT_BONUS,
    OcrCache,
    collect_ocr_text,
    image_score,
    merge_after_ocr,
    needs_ocr,
    recognize_safely,
    select_ocr_images,
)


class StubOcr:
    """Returns canned text per image source and records every call."""

    def __init__(self, texts=None, delay=0.0, error=None):
        self.texts = texts or {}
        self.delay = delay
        self.error = error
        self.calls = []

    async def recognize(self, src: str) -> str:
        self.calls.append(src)
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.texts.get(src, "")


def strong(category="Alojamiento", confidence=0.8):
    return ClassificationResult(category=category, confidence=confidence)


@pytest.mark.parametrize("result,region,expected", [
    (strong(), "Mendoza", False),
    (strong(confidence=0.29), "Mendoza", True),
    (strong(confidence=0.3), "Mendoza", False),
    (ClassificationResult(category=UNKNOWN_CATEGORY, confidence=0.0), "Mendoza", True),
    (strong(), UNKNOWN_REGION, True),
    (strong(), NATIONWIDE, True),
])
def test_needs_ocr(result, region, expected):
    assert needs_ocr(result, region) is expected


def test_image_score_hint_bonus():
    flyer = ImageDescriptor(src="https://x.org/promo-verano.jpg", width=10, height=10)
    plain = ImageDescriptor(src="https://x.org/foto.jpg", alt="Vista", width=10, height=10)
    assert image_score(flyer) == 100 + HINT_BONUS
    assert image_score(plain) == 100


def test_select_ocr_images_ranks_and_limits():
    images = [
        ImageDescriptor(src="https://x.org/a.jpg", width=100, height=100),
        ImageDescriptor(src="https://x.org/b.jpg", width=800, height=600),
        ImageDescriptor(src="https://x.org/c.jpg", alt="Condiciones del beneficio", width=50, height=50),
        ImageDescriptor(src="", width=2000, height=2000),
        ImageDescriptor(src="https://x.org/d.jpg", width=100, height=100),
    ]
    picked = select_ocr_images(images, limit=3)
    assert [img.src for img in picked] == ["https://x.org/c.jpg", "https://x.org/b.jpg", "https://x.org/a.jpg"]
    assert select_ocr_images(images, limit=0) == []


def test_collect_ocr_text_joins_selected_images():
    signals = ListingSignals(
        title="Beneficio", detail_text="", url="https://x.org/b",
        images=[
            ImageDescriptor(src="https://x.org/1.jpg", width=100, height=100),
            ImageDescriptor(src="https://x.org/2.jpg", width=200, height=200),
        ],
    )
    engine = StubOcr({"https://x.org/1.jpg": " Hotel ", "https://x.org/2.jpg": "Mendoza\n"})
    text = asyncio.run(collect_ocr_text(signals, engine, limit=2))
    assert text == "Mendoza Hotel"


def test_collect_ocr_text_falls_back_to_listing_image():
    signals = ListingSignals(title="B", detail_text="", url="u", list_image="https://x.org/thumb.jpg")
    engine = StubOcr({"https://x.org/thumb.jpg": "Salta"})
    assert asyncio.run(collect_ocr_text(signals, engine)) == "Salta"


def test_cache_shares_in_flight_requests():
    engine = StubOcr({"img": "texto"}, delay=0.01)
    cache = OcrCache()

    async def run():
        return await asyncio.gather(*[
            cache.get("img", lambda: recognize_safely(engine, "img", None)) for _ in range(5)
        ])

    assert asyncio.run(run()) == ["texto"] * 5
    assert engine.calls == ["img"]
    assert "img" in cache
    assert len(cache) == 1


def test_failures_yield_empty_text():
    failing = StubOcr(error=RuntimeError("tesseract exploded"))
    assert asyncio.run(recognize_safely(failing, "img", None)) == ""

    slow = StubOcr({"img": "late"}, delay=1.0)
    assert asyncio.run(recognize_safely(slow, "img", 0.01)) == ""


def test_merge_after_ocr_only_replaces_weak_fields():
    weak = ClassificationResult(category=UNKNOWN_CATEGORY, confidence=0.0)
    confident = strong("Gastronomía", 0.9)
    rerun = strong("Alojamiento", 1.0)

    assert merge_after_ocr(weak, rerun, UNKNOWN_REGION, "Salta") == (rerun, "Salta")
    assert merge_after_ocr(confident, rerun, "Mendoza", "Salta") == (confident, "Mendoza")
    # an unknown re-run never clears a weak-but-known first pass
    low = strong("Salud", 0.1)
    unknown = ClassificationResult(category=UNKNOWN_CATEGORY, confidence=0.0)
    assert merge_after_ocr(low, unknown, NATIONWIDE, UNKNOWN_REGION) == (low, NATIONWIDE)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
