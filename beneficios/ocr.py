"""
OCR trigger policy, image selection and the Tesseract-backed OCR collaborator.

OCR is advisory: any download, recognition or timeout failure is logged and
the listing keeps whatever evidence it already had.
"""
import asyncio
import io
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

import pytesseract
import requests
from PIL import Image, ImageEnhance, ImageOps

from .dictionaries import OCR_HINT_PATTERN
from .models import (
    ClassificationResult,
    ImageDescriptor,
    ListingSignals,
    NATIONWIDE,
    UNKNOWN_CATEGORY,
    UNKNOWN_REGION,
)

logger = logging.getLogger(__name__)

WEAK_CONFIDENCE = 0.3
HINT_BONUS = 500_000
DEFAULT_MAX_IMAGES = 3


class OcrEngine(Protocol):
    """Anything that turns an image reference into recognized text."""

    async def recognize(self, src: str) -> str:
        ...


def category_is_weak(result: ClassificationResult) -> bool:
    return result.category == UNKNOWN_CATEGORY or result.confidence < WEAK_CONFIDENCE


def region_is_weak(region: Optional[str]) -> bool:
    return not region or region in (UNKNOWN_REGION, NATIONWIDE)


def needs_ocr(result: ClassificationResult, region: Optional[str]) -> bool:
    """OCR only pays off when the category or the region is still weak."""
    return category_is_weak(result) or region_is_weak(region)


def image_score(img: ImageDescriptor) -> int:
    """Pixel area plus a bonus when the file name or alt text hints at a flyer."""
    meta = f"{img.alt or ''} {img.filename}"
    return img.area + (HINT_BONUS if OCR_HINT_PATTERN.search(meta) else 0)


def select_ocr_images(images: List[ImageDescriptor], limit: int = DEFAULT_MAX_IMAGES) -> List[ImageDescriptor]:
    """Top `limit` images by score; the sort is stable so ties keep page order."""
    candidates = [img for img in images or [] if img.src]
    return sorted(candidates, key=image_score, reverse=True)[:max(0, limit)]


class OcrCache:
    """
    Per-run OCR results keyed by image source.

    Concurrent listings asking for the same image share one in-flight task.
    All access happens on one event loop, so the check-and-set below has no
    await in between.
    """

    def __init__(self):
        self._tasks: Dict[str, asyncio.Future] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    async def get(self, key: str, fetch: Callable[[], Awaitable[str]]) -> str:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(fetch())
            self._tasks[key] = task
        # A cancelled waiter must not cancel the shared fetch
        return await asyncio.shield(task)


async def recognize_safely(engine: OcrEngine, src: str, timeout: Optional[float]) -> str:
    """Run one OCR request; failures and timeouts yield empty text."""
    try:
        text = await asyncio.wait_for(engine.recognize(src), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"OCR timed out after {timeout}s: {src}")
        return ""
    except Exception as e:
        logger.warning(f"OCR error for {src}: {e}")
        return ""
    return text or ""


async def collect_ocr_text(
    signals: ListingSignals,
    engine: OcrEngine,
    cache: Optional[OcrCache] = None,
    limit: int = DEFAULT_MAX_IMAGES,
    timeout: Optional[float] = None,
) -> str:
    """OCR the most promising images of a listing and join the recognized text."""
    images = list(signals.images or [])
    if not images and signals.image_url:
        images = [ImageDescriptor(src=signals.image_url)]

    cache = cache if cache is not None else OcrCache()
    texts = []
    for img in select_ocr_images(images, limit):
        text = await cache.get(img.src, lambda src=img.src: recognize_safely(engine, src, timeout))
        if text.strip():
            texts.append(text.strip())
    return " ".join(texts)


def merge_after_ocr(
    preliminary: ClassificationResult,
    rerun: ClassificationResult,
    region: str,
    rerun_region: str,
) -> Tuple[ClassificationResult, str]:
    """
    Keep OCR re-run results only for the fields they can improve.

    A category the first pass already resolved with confidence stays; a
    specific region is never replaced.
    """
    category = preliminary
    if category_is_weak(preliminary) and rerun.category != UNKNOWN_CATEGORY:
        category = rerun

    final_region = region
    if region_is_weak(region) and not region_is_weak(rerun_region):
        final_region = rerun_region
    return category, final_region


class TesseractOcr:
    """
    OCR collaborator backed by pytesseract.

    Images are downloaded with requests, upscaled, converted to greyscale and
    contrast-boosted before recognition. Blocking work runs in a worker
    thread so the event loop keeps serving other listings.
    """

    def __init__(
        self,
        lang: str = "spa+eng",
        psm: int = 3,
        target_width: int = 1600,
        http_timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.lang = lang
        self.config = f"--psm {psm}"
        self.target_width = target_width
        self.http_timeout = http_timeout
        self.session = session or requests.Session()

    async def recognize(self, src: str) -> str:
        return await asyncio.to_thread(self._recognize_sync, src)

    def fetch_image(self, src: str) -> Image.Image:
        resp = self.session.get(src, timeout=self.http_timeout)
        resp.raise_for_status()
        return Image.open(io.BytesIO(resp.content))

    def preprocess(self, img: Image.Image) -> Image.Image:
        try:
            ratio = self.target_width / float(img.width or 1)
            img = img.resize((self.target_width, max(1, int(img.height * ratio))))
            img = ImageOps.grayscale(img)
            return ImageEnhance.Contrast(img).enhance(1.2)
        except (OSError, ValueError) as e:
            logger.debug(f"OCR preprocessing skipped: {e}")
            return img

    def _recognize_sync(self, src: str) -> str:
        img = self.preprocess(self.fetch_image(src))
        return pytesseract.image_to_string(img, lang=self.lang, config=self.config)
