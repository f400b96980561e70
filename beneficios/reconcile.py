"""
Canonical identity, de-duplication and incremental sync against a prior snapshot.
"""
import hashlib
import json
import logging
import re
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .dictionaries import AGGREGATOR_PATTERN, REGION_FIXES, TRACKING_PARAM_PATTERN
from .models import (
    CanonicalListing,
    ListingOutcome,
    ListingSignals,
    NATIONWIDE,
    PROVENANCE,
    PruneCandidate,
    SyncPlan,
    UNKNOWN_CATEGORY,
    UNKNOWN_REGION,
)
from .utils import clean_text, normalize_text, slugify

logger = logging.getLogger(__name__)

# Trailing "-2", "-3" ... that the CMS appends to re-posted slugs
DUP_SUFFIX = re.compile(r"(?:-\d{1,2})+$")
ID_HASH_LENGTH = 16
DEFAULT_SLUG = "beneficio"


class MalformedListing(ValueError):
    """A listing without the title or URL needed to identify it."""


def check_signals(signals: ListingSignals) -> None:
    """Raise MalformedListing when a listing cannot be identified."""
    title = clean_text(signals.title)
    url = clean_text(signals.url)
    if not title or not url:
        raise MalformedListing(f'Invalid listing: missing title or url. Title="{title}" Url="{url}"')


def is_aggregator(title: Optional[str]) -> bool:
    """Generic promotional wrappers ("Disfrutá ...") are not real listings."""
    return bool(AGGREGATOR_PATTERN.search(normalize_text(title)))


def _strip_path(path: str) -> str:
    while True:
        stripped = DUP_SUFFIX.sub("", path.rstrip("/"))
        if stripped == path:
            return path
        path = stripped


def _strip_host(host: str) -> str:
    """Lowercased host without leading "www." labels; a bare "www." is kept."""
    host = original = host.lower()
    while host.startswith("www."):
        host = host[4:]
    return host or original


def _clean_query(query: str) -> str:
    """Query string without tracking parameters."""
    if not query:
        return ""
    pairs = [
        (k, v) for k, v in parse_qsl(query, keep_blank_values=True)
        if not TRACKING_PARAM_PATTERN.match(k)
    ]
    return urlencode(pairs)


def canonical_url(url: Optional[str], strip_query: bool = True) -> str:
    """
    Deduplication key of a listing URL.

    Lowercases the host and drops every leading "www.", the fragment, the
    query (or only tracking parameters when `strip_query` is False), trailing
    slashes and a trailing "-N" duplicate suffix. Idempotent.

    Scheme-less input ("example.com/x") gets the same rules, with the first
    path segment taken as the host.
    """
    raw = clean_text(url)
    if not raw:
        return ""
    parts = urlsplit(raw)
    if not parts.scheme or not parts.netloc:
        rest, _, query = raw.split("#")[0].partition("?")
        host, slash, path = rest.partition("/")
        query = "" if strip_query else _clean_query(query)
        key = _strip_host(host) + _strip_path(slash + path)
        return f"{key}?{query}" if query else key

    query = "" if strip_query else _clean_query(parts.query)
    return urlunsplit((parts.scheme.lower(), _strip_host(parts.netloc), _strip_path(parts.path), query, ""))


def stable_id(url: Optional[str], title: Optional[str]) -> str:
    """
    Deterministic document id: title slug plus a short content hash.

    The hash covers the canonical URL (or the title when there is no URL),
    so the same logical listing keeps its id across runs.
    """
    base_raw = clean_text(url) or clean_text(title)
    base = canonical_url(base_raw) if base_raw.lower().startswith("http") else base_raw
    digest = hashlib.sha1(base.encode("utf-8")).hexdigest()[:ID_HASH_LENGTH]
    return f"{slugify(title) or DEFAULT_SLUG}-{digest}"


def completeness_score(listing: CanonicalListing) -> int:
    """One point each for an image, a specific region and a known category."""
    score = 0
    if listing.image_url:
        score += 1
    if listing.region and listing.region not in (NATIONWIDE, UNKNOWN_REGION):
        score += 1
    if listing.category and listing.category != UNKNOWN_CATEGORY:
        score += 1
    return score


def to_canonical(outcome: ListingOutcome) -> CanonicalListing:
    """Build the durable record for a classified listing."""
    signals = outcome.signals
    url = canonical_url(signals.url)
    title = clean_text(signals.title)
    return CanonicalListing(
        title=title,
        canonical_url=url,
        category=outcome.classification.category or UNKNOWN_CATEGORY,
        region=outcome.region or UNKNOWN_REGION,
        source_id=stable_id(url, title),
        image_url=signals.image_url or None,
        description=clean_text(signals.description) or None,
        confidence=outcome.classification.confidence,
        reasons=list(outcome.classification.reasons),
    )


def listing_from_document(doc_id: str, doc: Dict) -> CanonicalListing:
    """Rebuild a CanonicalListing from a stored document."""
    reasons = doc.get("reasons") or []
    if isinstance(reasons, str):
        try:
            reasons = json.loads(reasons)
        except ValueError:
            reasons = [reasons]
    return CanonicalListing(
        title=clean_text(doc.get("title")),
        canonical_url=clean_text(doc.get("canonical") or doc.get("url")),
        category=clean_text(doc.get("category")) or UNKNOWN_CATEGORY,
        region=clean_text(doc.get("region")) or UNKNOWN_REGION,
        source_id=doc_id,
        image_url=clean_text(doc.get("image_url")) or None,
        description=clean_text(doc.get("description")) or None,
        confidence=float(doc.get("confidence") or 0.0),
        reasons=list(reasons),
    )


def region_fix_for(title: str, region: Optional[str]) -> Optional[str]:
    """Known region for titles that resolve to nationwide or nothing."""
    if region and region not in (NATIONWIDE, UNKNOWN_REGION):
        return None
    for pattern, fixed in REGION_FIXES:
        if pattern.search(title or ""):
            return fixed
    return None


def apply_region_fixes(listing: CanonicalListing) -> CanonicalListing:
    fixed = region_fix_for(listing.title, listing.region)
    if not fixed:
        return listing
    logger.info(f"Region fix: {listing.title} {listing.region} -> {fixed}")
    return replace(listing, region=fixed)


def dedupe(listings: Iterable[CanonicalListing]) -> List[CanonicalListing]:
    """
    Keep one listing per canonical URL: the most complete one.

    Ties keep the first listing encountered; output follows first-seen order.
    """
    best: Dict[str, CanonicalListing] = {}
    for listing in listings:
        key = listing.canonical_url
        prev = best.get(key)
        if prev is None or completeness_score(listing) > completeness_score(prev):
            if prev is not None:
                logger.debug(f"Duplicate {key}: keeping '{listing.title}' over '{prev.title}'")
            best[key] = listing
    return list(best.values())


def compute_prune(current_urls: Set[str], snapshot: Iterable[Dict]) -> List[PruneCandidate]:
    """
    Stored documents written by this pipeline whose canonical URL is gone.

    Documents without the pipeline's provenance marker are never touched,
    and an empty current set prunes nothing.
    """
    if not current_urls:
        return []

    results = []
    for doc in snapshot:
        source = clean_text(doc.get("source")).lower()
        if source != PROVENANCE:
            continue
        candidate = clean_text(doc.get("canonical") or doc.get("url"))
        if not re.match(r"^https?://", candidate, re.I):
            continue
        key = canonical_url(candidate)
        if key in current_urls:
            continue
        results.append(PruneCandidate(doc_id=doc["doc_id"], canonical=key, title=clean_text(doc.get("title"))))
    return results


def build_sync_plan(
    outcomes: Iterable[ListingOutcome],
    snapshot: Optional[Iterable[Dict]] = None,
    prune: bool = True,
) -> SyncPlan:
    """
    Reconcile a fully classified batch against the prior snapshot.

    This is a barrier step: it needs every outcome of the run before any
    dedup or prune decision is final.
    """
    plan = SyncPlan()
    canonical: List[CanonicalListing] = []
    for outcome in outcomes:
        title = outcome.signals.title
        if is_aggregator(title):
            logger.debug(f"Aggregator dropped: {title}")
            plan.dropped += 1
            continue
        try:
            check_signals(outcome.signals)
        except MalformedListing as e:
            logger.warning(f"Skipping listing: {e}")
            plan.dropped += 1
            continue
        canonical.append(apply_region_fixes(to_canonical(outcome)))

    plan.upserts = dedupe(canonical)
    if prune and snapshot is not None:
        plan.prune = compute_prune({x.canonical_url for x in plan.upserts}, snapshot)
    return plan


def cleanup_plan(snapshot: Iterable[Dict]) -> Tuple[List[str], List[Tuple[str, Dict]]]:
    """
    Clean an existing collection in place.

    Returns the ids to delete (aggregator wrappers and duplicate losers per
    canonical URL, tracking parameters ignored) and the region patches to
    apply.
    """
    to_delete: List[str] = []
    to_patch: List[Tuple[str, Dict]] = []
    best: Dict[str, CanonicalListing] = {}
    seen_ids: List[str] = []

    for doc in snapshot:
        doc_id = doc["doc_id"]
        listing = listing_from_document(doc_id, doc)
        if is_aggregator(listing.title):
            to_delete.append(doc_id)
            continue

        fixed = region_fix_for(listing.title, listing.region)
        if fixed:
            listing = replace(listing, region=fixed)
            to_patch.append((doc_id, {"region": fixed}))

        seen_ids.append(doc_id)
        key = canonical_url(doc.get("url") or listing.canonical_url, strip_query=False) or doc_id
        prev = best.get(key)
        if prev is None or completeness_score(listing) > completeness_score(prev):
            best[key] = listing

    keep = {x.source_id for x in best.values()}
    to_delete.extend(doc_id for doc_id in seen_ids if doc_id not in keep)
    to_patch = [(doc_id, patch) for doc_id, patch in to_patch if doc_id in keep]
    return to_delete, to_patch
