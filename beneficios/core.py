"""
Core scraping orchestration and browser management.
"""
import asyncio
import os
import random
from typing import List, Optional

from playwright.async_api import async_playwright

from .models import ListingSignals
from .reconcile import is_aggregator
from .scraper import build_signals, ensure_page_ready, scrape_detail, scrape_list


async def run_scrape(
    start_url: str,
    max_items: Optional[int],
    headless: bool,
    logger=None,
) -> List[ListingSignals]:
    """
    Main scraping orchestration function.

    Manages browser lifecycle, collects the listing index and visits every
    detail page. A listing whose detail page fails is logged and skipped.
    """
    is_headless = bool(headless) or os.getenv("HEADLESS", "").strip().lower() in ("1", "true")

    launch_args = ["--disable-blink-features=AutomationControlled"]
    if is_headless:
        launch_args += ["--disable-dev-shm-usage", "--no-sandbox", "--disable-gpu"]

    results: List[ListingSignals] = []

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=is_headless, args=launch_args)
        if logger:
            logger.info(f">>> Headless mode: {is_headless}")

        context = await browser.new_context(
            viewport={"width": 1280, "height": 900},
            user_agent=(
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/124.0.0.0 Safari/537.36"
            ),
            locale="es-AR",
        )
        context.set_default_timeout(30_000)
        context.set_default_navigation_timeout(45_000)

        try:
            page = await context.new_page()
            if logger:
                logger.info(f">>> Opening index: {start_url}")
            await page.goto(start_url, timeout=120_000, wait_until="domcontentloaded")

            ready = await ensure_page_ready(page, timeout_ms=15_000)
            if not ready and logger:
                logger.warning(">>> No listing links visible yet; scrolling anyway")

            cards = [c for c in await scrape_list(page) if not is_aggregator(c.get("title"))]
            if max_items:
                cards = cards[:max_items]
            if logger:
                logger.info(f">>> Collected {len(cards)} listing cards")

            for i, card in enumerate(cards, 1):
                url = card.get("url", "")
                if logger:
                    logger.info(f">>> [{i}/{len(cards)}] {card.get('title')}")
                try:
                    detail = await scrape_detail(page, url)
                except Exception as e:
                    if logger:
                        logger.warning(f">>> Detail failed for {url}: {e}")
                    if page.is_closed():
                        page = await context.new_page()
                    continue
                results.append(build_signals(card, detail))
                await asyncio.sleep(random.uniform(0.4, 0.9))
        finally:
            await context.close()
            await browser.close()

    return results
