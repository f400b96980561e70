"""
Command line entry point: scrape (or load) listings, classify, reconcile and sync.
"""
import argparse
import asyncio
import json
import os
import sqlite3
import sys
from typing import List, Optional

from .config import config
from .core import run_scrape
from .database import (
    PersistenceError,
    apply_sync_plan,
    check_collection,
    collection_exists,
    db_connect,
    db_connect_readonly,
    db_init,
    delete_documents,
    fetch_documents,
    fetch_pipeline_documents,
    patch_documents,
)
from .export import listings_frame, save_output_rows, summarize
from .models import ListingSignals, signals_from_dict, signals_to_dict
from .ocr import TesseractOcr
from .pipeline import process_batch
from .reconcile import build_sync_plan, cleanup_plan
from .utils import init_logger, now_iso


def parse_args(argv: Optional[List[str]] = None):
    ap = argparse.ArgumentParser(description="Benefit listings scraper with category/region classification and SQLite sync")
    ap.add_argument("--start-url", type=str, default=config.START_URL, help="Listing index page")
    ap.add_argument("--input", type=str, default="", help="Classify a JSON dump of listing signals instead of scraping")
    ap.add_argument("--save-signals", type=str, default="", help="Write the scraped signals to this JSON file")
    ap.add_argument("--max-items", type=int, default=0, help="Maximum listings to process (0 = all)")
    ap.add_argument("--headless", action="store_true", help="Run without UI")
    ap.add_argument("--concurrency", type=int, default=config.CONCURRENCY, help="Listings classified in parallel")
    ap.add_argument("--ocr", action=argparse.BooleanOptionalAction, default=config.OCR_ENABLED,
                    help="Run OCR on listing images when category or region evidence is weak")
    ap.add_argument("--ocr-images", type=int, default=config.OCR_MAX_IMAGES, help="Images OCR'd per listing")
    ap.add_argument("--ocr-timeout", type=float, default=config.OCR_TIMEOUT, help="Seconds per OCR request")
    ap.add_argument("--db", type=str, default=config.DB_PATH, help="Path to SQLite DB")
    ap.add_argument("--collection", type=str, default=config.COLLECTION, help="Target collection (table) name")
    ap.add_argument("--dry-run", action="store_true", help="Compute the sync plan without writing")
    ap.add_argument("--keep-missing", action="store_true", help="Do not prune listings missing from this run")
    ap.add_argument("--cleanup", action="store_true",
                    help="Clean the stored collection (aggregators, duplicates, region fixes) and exit")
    ap.add_argument("--out", type=str, default="", help="CSV/XLSX/JSON export of this run's listings")
    # Logging
    lvl_choices = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    ap.add_argument("--log-level", choices=lvl_choices, default=None,
                    help="Global log level for both console and file (overrides --log-console/--log-file).")
    ap.add_argument("--log-console", choices=lvl_choices, default=os.getenv("LOG_CONSOLE", "INFO"),
                    help="Console log level (default from env LOG_CONSOLE or INFO).")
    ap.add_argument("--log-file", choices=lvl_choices, default=os.getenv("LOG_FILE", "DEBUG"),
                    help="File log level (default from env LOG_FILE or DEBUG).")
    ap.add_argument("--log-file-path", default=os.getenv("LOG_FILE_PATH", "beneficios.log"),
                    help="Path to log file (default from env LOG_FILE_PATH or beneficios.log).")
    ap.add_argument("--no-file-log", action="store_true",
                    help="Disable file logging (only console output).")
    return ap.parse_args(argv)


def load_signals(path: str) -> List[ListingSignals]:
    """Read listing signals from a JSON array (or {"items": [...]})."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("items") or []
    return [signals_from_dict(d) for d in data if isinstance(d, dict)]


def save_signals(signals: List[ListingSignals], path: str):
    with open(path, "w", encoding="utf-8") as f:
        json.dump([signals_to_dict(s) for s in signals], f, ensure_ascii=False, indent=2)


def run_cleanup(conn, collection: str, dry_run: bool, logger) -> None:
    docs = fetch_documents(conn, collection)
    to_delete, to_patch = cleanup_plan(docs)
    logger.info(f">>> Cleanup of '{collection}': {len(docs)} docs, {len(to_delete)} to delete, {len(to_patch)} region fixes")
    if dry_run:
        logger.info(">>> Dry run: no changes written")
        return
    deleted = delete_documents(conn, collection, to_delete, config.BATCH_LIMIT)
    patched = patch_documents(conn, collection, to_patch, config.BATCH_LIMIT)
    logger.info(f">>> Deleted {deleted}, patched {patched}")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    eff_console = args.log_level or args.log_console
    eff_file = args.log_level or args.log_file
    logger = init_logger(
        console_level=eff_console,
        file_level=eff_file,
        log_file=None if args.no_file_log else args.log_file_path
    )
    logger.info(
        f"Logger initialized: console={eff_console}, "
        f"file={'DISABLED' if args.no_file_log else eff_file}, "
        f"path={'N/A' if args.no_file_log else args.log_file_path}"
    )
    logger.info(f">>> Run started at {now_iso()}")

    # Open the store before any scraping so a bad configuration aborts early.
    # Dry runs only ever read: no directory, schema or journal changes.
    conn = None
    has_collection = False
    try:
        check_collection(args.collection)
        if not args.dry_run:
            os.makedirs(os.path.dirname(args.db) or ".", exist_ok=True)
            conn = db_connect(args.db)
            db_init(conn, args.collection)
            has_collection = True
        elif os.path.exists(args.db):
            conn = db_connect_readonly(args.db)
            has_collection = collection_exists(conn, args.collection)
            if not has_collection:
                logger.info(f">>> Collection '{args.collection}' not found in {args.db}; snapshot is empty")
    except (PersistenceError, sqlite3.Error) as e:
        logger.error(f">>> {e}")
        if conn is not None:
            conn.close()
        return 2

    try:
        if args.cleanup:
            if conn is None:
                logger.error(f">>> Nothing to clean: {args.db} does not exist")
                return 2
            if not has_collection:
                logger.info(">>> Nothing to clean")
                return 0
            run_cleanup(conn, args.collection, args.dry_run, logger)
            return 0

        if args.input:
            signals = load_signals(args.input)
            logger.info(f">>> Loaded {len(signals)} listings from {args.input}")
        else:
            signals = asyncio.run(run_scrape(
                start_url=args.start_url,
                max_items=args.max_items or None,
                headless=args.headless,
                logger=logger,
            ))
            if args.save_signals:
                save_signals(signals, args.save_signals)
                logger.info(f">>> Signals saved to {args.save_signals}")

        engine = TesseractOcr(lang=config.OCR_LANG) if args.ocr else None
        logger.info(f">>> OCR: {'enabled' if engine else 'disabled'}")
        outcomes = asyncio.run(process_batch(
            signals,
            ocr=engine,
            concurrency=args.concurrency,
            max_items=args.max_items or None,
            max_ocr_images=args.ocr_images,
            ocr_timeout=args.ocr_timeout,
            logger=logger,
        ))

        snapshot = None
        if has_collection and not args.keep_missing:
            snapshot = fetch_pipeline_documents(conn, args.collection)
        plan = build_sync_plan(outcomes, snapshot, prune=not args.keep_missing)
        logger.info(
            f">>> Sync plan: {len(plan.upserts)} upserts, {len(plan.prune)} to prune, {plan.dropped} dropped"
        )
        for x in plan.prune:
            logger.info(f">>>   prune {x.doc_id} ({x.canonical})")

        if args.dry_run:
            logger.info(">>> Dry run: no changes written")
        else:
            apply_sync_plan(conn, args.collection, plan, config.BATCH_LIMIT, logger)

        df = listings_frame(plan.upserts)
        summarize(df, logger)
        if args.out:
            save_output_rows(df, args.out, logger)
    finally:
        if conn is not None:
            conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
