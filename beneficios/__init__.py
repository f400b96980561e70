"""
Benefit listings scraper, classifier and sync package
"""
from .models import (
    ListingSignals,
    ClassificationResult,
    CanonicalListing,
    SyncPlan,
)
from .classifier import classify
from .regions import resolve_region
from .pipeline import process_listing, process_batch
from .reconcile import (
    MalformedListing,
    canonical_url,
    build_sync_plan,
    cleanup_plan,
)
from .core import run_scrape
from .database import (
    PersistenceError,
    db_connect,
    db_init,
    upsert_documents,
    fetch_pipeline_documents,
    apply_sync_plan,
)
from .export import listings_frame, export_collection, save_output_rows
from .utils import init_logger, now_iso, normalize_text

__version__ = "1.0.0"

__all__ = [
    "ListingSignals",
    "ClassificationResult",
    "CanonicalListing",
    "SyncPlan",
    "classify",
    "resolve_region",
    "process_listing",
    "process_batch",
    "MalformedListing",
    "canonical_url",
    "build_sync_plan",
    "cleanup_plan",
    "run_scrape",
    "PersistenceError",
    "db_connect",
    "db_init",
    "upsert_documents",
    "fetch_pipeline_documents",
    "apply_sync_plan",
    "listings_frame",
    "export_collection",
    "save_output_rows",
    "init_logger",
    "now_iso",
    "normalize_text",
]
