"""
Playwright-based extraction of benefit listings.
"""
import asyncio
import json
import random
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

from playwright.async_api import TimeoutError as PlaywrightTimeout

from .models import ImageDescriptor, ListingSignals
from .utils import clean_text, unique


LIST_WAIT_SEL = "a[href*='/beneficios/']"
SCROLL_STEP_PX = 600
SCROLL_INTERVAL_MS = 200

# Page chrome removed before reading the main text
NOISE_SELECTORS = [
    "header", "nav", ".menu", ".navbar", ".navigation", ".nav",
    "footer", ".footer", ".copyright",
    ".sidebar", ".widget", ".breadcrumb", ".breadcrumbs",
    ".share", ".social", ".related", ".comments",
]
CONTENT_SELECTORS = [
    ".entry-content", ".post-content", "article .content", "main article",
    "[role='main']", ".beneficio-detalle", "article",
]

_AUTO_SCROLL_JS = """
([step, interval]) => new Promise(resolve => {
  let total = 0;
  const timer = setInterval(() => {
    window.scrollBy(0, step); total += step;
    if (total >= document.body.scrollHeight) { clearInterval(timer); resolve(); }
  }, interval);
})
"""

_LIST_JS = """
() => {
  const out = []; const seen = new Set();
  document.querySelectorAll("a[href*='/beneficios/']").forEach(link => {
    const href = link.href;
    if (!href || href.endsWith('/beneficios/') || seen.has(href)) return;
    seen.add(href);
    const box = link.closest('article') || link.closest('.elementor-post')
      || link.closest("div[class*='beneficio']") || link.parentElement;
    const titleEl = box && box.querySelector('h2, h3, h4, .elementor-post__title');
    const descEl = box && box.querySelector('.elementor-post__excerpt, p');
    const imgEl = box && box.querySelector('img');
    const badges = Array.from(box ? box.querySelectorAll(
      '.elementor-post__badge, .elementor-post__terms a, .post-categories a') : [])
      .map(el => (el.textContent || '').trim()).filter(Boolean);
    out.push({
      title: ((titleEl && titleEl.textContent) || link.textContent || '').trim(),
      url: href,
      description: ((descEl && descEl.textContent) || '').trim(),
      image: imgEl ? (imgEl.getAttribute('data-src') || imgEl.getAttribute('data-lazy-src') || imgEl.src || '') : '',
      badges,
    });
  });
  return out;
}
"""

_DETAIL_JS = """
([noise, content]) => {
  const clone = document.body.cloneNode(true);
  noise.forEach(sel => clone.querySelectorAll(sel).forEach(el => el.remove()));
  let mainText = '';
  for (const sel of content) {
    const el = clone.querySelector(sel);
    if (el) { mainText = el.innerText || el.textContent || ''; break; }
  }
  if (!mainText) mainText = clone.innerText || clone.textContent || '';
  const texts = sel => Array.from(document.querySelectorAll(sel))
    .map(el => (el.textContent || '').trim()).filter(Boolean);
  const meta = sel => { const m = document.querySelector(sel); return m ? (m.getAttribute('content') || '') : ''; };
  const h1 = document.querySelector('h1');
  const map = document.querySelector("iframe[src*='google.com/maps']");
  return {
    title: h1 ? (h1.textContent || '').trim() : '',
    mainText,
    ogImage: meta("meta[property='og:image']"),
    metaDescription: meta("meta[name='description']"),
    images: Array.from(document.querySelectorAll('article img, .entry-content img, main img')).map(img => ({
      src: img.getAttribute('src') || img.getAttribute('data-src') || '',
      alt: img.getAttribute('alt') || '',
      width: img.naturalWidth || 0,
      height: img.naturalHeight || 0,
    })).filter(x => x.src),
    captions: texts('figure figcaption, .wp-caption-text'),
    tags: texts("a[rel='tag'], .post-categories a"),
    breadcrumbs: texts("[class*='breadcrumb'] a, nav[aria-label*='breadcrumb'] a"),
    jsonld: Array.from(document.querySelectorAll("script[type='application/ld+json']")).map(s => s.textContent || ''),
    mapSrc: map ? map.src : '',
  };
}
"""


async def ensure_page_ready(page, timeout_ms: int = 15000) -> bool:
    """Dismiss cookie banners and wait for listing links to show up."""
    selectors = [
        "button:has-text('Aceptar')",
        "button:has-text('Aceptar todo')",
        "button:has-text('Accept all')",
        "div[role='dialog'] button:has-text('OK')",
    ]
    for sel in selectors:
        try:
            if await page.locator(sel).first.is_visible():
                await page.locator(sel).first.click(timeout=2000)
                break
        except Exception:
            pass

    try:
        await page.wait_for_selector(LIST_WAIT_SEL, timeout=timeout_ms, state="attached")
        return True
    except PlaywrightTimeout:
        return False


async def auto_scroll(page) -> None:
    """Scroll to the bottom so lazy-loaded cards render."""
    await page.evaluate(_AUTO_SCROLL_JS, [SCROLL_STEP_PX, SCROLL_INTERVAL_MS])


async def scrape_list(page) -> List[Dict]:
    """Collect listing cards (title, url, description, image, badges) from the index page."""
    await auto_scroll(page)
    rows = await page.evaluate(_LIST_JS)
    results = []
    for row in rows or []:
        row["title"] = clean_text(row.get("title"))
        row["description"] = clean_text(row.get("description"))
        row["badges"] = unique(b for b in (clean_text(x) for x in row.get("badges") or []) if b)
        results.append(row)
    return results


def parse_jsonld(blocks: List[str]) -> Tuple[List[str], List[str]]:
    """
    Pull schema.org `@type`s and location pieces out of JSON-LD blocks.

    Location pieces are address region/locality, names and areaServed.
    Unparseable blocks are ignored.
    """
    types: List[str] = []
    pieces: List[str] = []

    def dig(obj):
        if isinstance(obj, list):
            for x in obj:
                dig(x)
            return
        if not isinstance(obj, dict):
            return
        t = obj.get("@type")
        if isinstance(t, list):
            types.extend(str(x) for x in t)
        elif t:
            types.append(str(t))
        location = obj.get("location")
        addr = obj.get("address") or (location.get("address") if isinstance(location, dict) else None)
        if isinstance(addr, dict):
            for key in ("addressRegion", "addressLocality"):
                if addr.get(key):
                    pieces.append(str(addr[key]))
        for key in ("name", "areaServed"):
            if isinstance(obj.get(key), str):
                pieces.append(obj[key])
        for value in obj.values():
            dig(value)

    for raw in blocks or []:
        try:
            dig(json.loads(raw or "{}"))
        except ValueError:
            continue
    return unique(types), pieces


def map_query(src: Optional[str]) -> str:
    """The `q` (or `query`) parameter of an embedded map iframe."""
    if not src:
        return ""
    params = parse_qs(urlsplit(src).query)
    for key in ("q", "query"):
        if params.get(key):
            return unquote(params[key][0])
    return ""


async def scrape_detail(page, url: str, timeout_ms: int = 45_000) -> Dict:
    """Open a listing page and extract its text, images and structured location hints."""
    await page.goto(url, timeout=timeout_ms, wait_until="networkidle")
    await asyncio.sleep(random.uniform(0.3, 0.6))
    raw = await page.evaluate(_DETAIL_JS, [NOISE_SELECTORS, CONTENT_SELECTORS])

    types, pieces = parse_jsonld(raw.get("jsonld") or [])
    pieces.extend(raw.get("breadcrumbs") or [])
    q = map_query(raw.get("mapSrc"))
    if q:
        pieces.append(q)

    return {
        "title": clean_text(raw.get("title")),
        "main_text": clean_text(raw.get("mainText")),
        "og_image": raw.get("ogImage") or "",
        "meta_description": clean_text(raw.get("metaDescription")),
        "images": raw.get("images") or [],
        "captions": " ".join(raw.get("captions") or []),
        "tags": " ".join(raw.get("tags") or []),
        "schema_types": types,
        "structured_location_text": clean_text(" ".join(p for p in pieces if p)),
    }


def build_signals(card: Dict, detail: Optional[Dict] = None) -> ListingSignals:
    """Merge a list card and its (optional) detail page into ListingSignals."""
    detail = detail or {}
    detail_text = clean_text(" ".join([
        card.get("description", ""),
        detail.get("main_text", ""),
        detail.get("meta_description", ""),
        detail.get("tags", ""),
        detail.get("captions", ""),
    ]))
    images = [
        ImageDescriptor(
            src=img.get("src", ""),
            alt=clean_text(img.get("alt")),
            width=int(img.get("width") or 0),
            height=int(img.get("height") or 0),
        )
        for img in detail.get("images", [])
        if img.get("src")
    ]
    return ListingSignals(
        title=detail.get("title") or card.get("title", ""),
        detail_text=detail_text,
        url=card.get("url", ""),
        images=images,
        badges=list(card.get("badges") or []),
        schema_types=list(detail.get("schema_types") or []),
        structured_location_text=detail.get("structured_location_text", ""),
        description=card.get("description", ""),
        list_image=card.get("image", ""),
        og_image=detail.get("og_image", ""),
    )
