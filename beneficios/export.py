"""
Export utilities for classified listings.
"""
import json
import sqlite3
from typing import Dict, Iterable, Optional

import pandas as pd

from .database import check_collection
from .models import CanonicalListing


EXPORT_COLUMNS = [
    "doc_id", "title", "category", "region", "confidence",
    "url", "image_url", "description", "reasons",
]


def listings_frame(listings: Iterable[CanonicalListing]) -> pd.DataFrame:
    """One row per canonical listing."""
    rows = []
    for x in listings:
        rows.append({
            "doc_id": x.source_id,
            "title": x.title,
            "category": x.category,
            "region": x.region,
            "confidence": x.confidence,
            "url": x.canonical_url,
            "image_url": x.image_url or "",
            "description": x.description or "",
            "reasons": " | ".join(x.reasons),
        })
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_collection(conn: sqlite3.Connection, collection: str) -> pd.DataFrame:
    """Read a stored collection into a frame with the export columns."""
    name = check_collection(collection)
    q = f"""
    SELECT doc_id, title, category, region, confidence, url, image_url, description,
           reasons_json AS reasons
    FROM "{name}"
    ORDER BY category, region, title
    """
    df = pd.read_sql_query(q, conn)
    df["reasons"] = df["reasons"].map(lambda raw: " | ".join(json.loads(raw)) if raw else "")
    return df


def save_output_rows(df: pd.DataFrame, out_path: str, logger=None):
    """Save rows to CSV, Excel or JSON depending on the file extension."""
    lower = out_path.lower()
    if lower.endswith(".xlsx"):
        df.to_excel(out_path, index=False)
    elif lower.endswith(".json"):
        df.to_json(out_path, orient="records", force_ascii=False, indent=2)
    else:
        df.to_csv(out_path, index=False)

    if logger:
        logger.info(f">>> Saved {len(df)} rows to {out_path}")
    else:
        print(f">>> Saved {len(df)} rows to {out_path}")


def summarize(df: pd.DataFrame, logger=None) -> Dict[str, Dict[str, int]]:
    """Counts by category and by region."""
    summary = {"by_category": {}, "by_region": {}}
    if not df.empty:
        summary["by_category"] = {str(k): int(v) for k, v in df["category"].value_counts().items()}
        summary["by_region"] = {str(k): int(v) for k, v in df["region"].value_counts().items()}

    if logger:
        logger.info(f">>> {len(df)} listings")
        for label, counts in (("Category", summary["by_category"]), ("Region", summary["by_region"])):
            for key, count in counts.items():
                logger.info(f">>>   {label} {key}: {count}")
    return summary
