"""
SQLite-backed document store for canonical listings.

Each collection is one table keyed by the stable document id. Writes use
merge semantics: only the fields a document supplies are written.
"""
import json
import os
import re
import sqlite3
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, TypeVar
from urllib.parse import quote

from .models import PROVENANCE, SyncPlan
from .utils import now_iso

T = TypeVar("T")

BATCH_LIMIT = 400
COLLECTION_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,63}$")

# Document field -> column
FIELD_COLUMNS = {
    "title": "title",
    "url": "url",
    "canonical": "canonical",
    "image_url": "image_url",
    "category": "category",
    "region": "region",
    "description": "description",
    "confidence": "confidence",
    "reasons": "reasons_json",
    "source": "source",
}

DDL_COLLECTION = """
CREATE TABLE IF NOT EXISTS "{name}" (
  doc_id TEXT PRIMARY KEY,
  title TEXT,
  url TEXT,
  canonical TEXT,
  image_url TEXT,
  category TEXT,
  region TEXT,
  description TEXT,
  confidence REAL,
  reasons_json TEXT,
  source TEXT,
  first_seen TEXT,
  updated_at TEXT
);
"""

DDL_INDEXES = [
    'CREATE INDEX IF NOT EXISTS "idx_{name}_source" ON "{name}"(source);',
    'CREATE INDEX IF NOT EXISTS "idx_{name}_canonical" ON "{name}"(canonical);',
    'CREATE INDEX IF NOT EXISTS "idx_{name}_category" ON "{name}"(category);',
    'CREATE INDEX IF NOT EXISTS "idx_{name}_region" ON "{name}"(region);',
]


class PersistenceError(RuntimeError):
    """The document store is unreachable or misconfigured."""


def check_collection(name: Optional[str]) -> str:
    """Return `name` if it is usable as a table name, raise PersistenceError otherwise."""
    if not name or not COLLECTION_RE.match(name):
        raise PersistenceError(f"Invalid collection name: {name!r}")
    return name


def batched(items: Iterable[T], size: int = BATCH_LIMIT) -> Iterator[List[T]]:
    batch: List[T] = []
    for it in items:
        batch.append(it)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


def db_connect(path: str) -> sqlite3.Connection:
    """Create database connection with optimized settings."""
    directory = os.path.dirname(os.path.abspath(path))
    if not os.path.isdir(directory):
        raise PersistenceError(f"Database directory does not exist: {directory}")
    try:
        conn = sqlite3.connect(path)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
    except sqlite3.Error as e:
        raise PersistenceError(f"Cannot open database {path}: {e}") from e
    return conn


def db_connect_readonly(path: str) -> sqlite3.Connection:
    """Open an existing database without any pragma or schema change."""
    if not os.path.isfile(path):
        raise PersistenceError(f"Database file does not exist: {path}")
    try:
        return sqlite3.connect(f"file:{quote(os.path.abspath(path))}?mode=ro", uri=True)
    except sqlite3.Error as e:
        raise PersistenceError(f"Cannot open database {path} read-only: {e}") from e


def collection_exists(conn: sqlite3.Connection, collection: str) -> bool:
    name = check_collection(collection)
    cur = conn.execute("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,))
    return cur.fetchone() is not None


def db_init(conn: sqlite3.Connection, collection: str):
    """Initialize the collection table and its indexes."""
    name = check_collection(collection)
    conn.execute(DDL_COLLECTION.format(name=name))
    for ddl in DDL_INDEXES:
        conn.execute(ddl.format(name=name))
    conn.commit()


def row_to_dict(cur, row) -> Dict:
    """Convert a result row to a document dict, decoding the reasons list."""
    doc = {desc[0]: row[i] for i, desc in enumerate(cur.description)}
    if "reasons_json" in doc:
        raw = doc.pop("reasons_json")
        try:
            doc["reasons"] = json.loads(raw) if raw else []
        except ValueError:
            doc["reasons"] = [raw]
    return doc


def document_columns(doc: Dict) -> Dict:
    """Map the supplied document fields to column values; unknown fields are ignored."""
    cols = {}
    for field, column in FIELD_COLUMNS.items():
        if field not in doc:
            continue
        value = doc[field]
        if field == "reasons":
            value = json.dumps(list(value or []), ensure_ascii=False)
        cols[column] = value
    return cols


def upsert_documents(
    conn: sqlite3.Connection,
    collection: str,
    docs: Iterable[Tuple[str, Dict]],
    batch_limit: int = BATCH_LIMIT,
) -> int:
    """
    Merge documents into the collection, committing once per batch.

    `first_seen` is set on insert only; existing columns the document does
    not supply are left untouched.
    """
    name = check_collection(collection)
    written = 0
    for batch in batched(docs, batch_limit):
        ts = now_iso()
        for doc_id, doc in batch:
            cols = document_columns(doc)
            names = ["doc_id", "first_seen", "updated_at"] + list(cols)
            values = [doc_id, ts, ts] + list(cols.values())
            updates = ", ".join(f"{c}=excluded.{c}" for c in ["updated_at"] + list(cols))
            conn.execute(
                f'INSERT INTO "{name}" ({", ".join(names)}) VALUES ({", ".join("?" * len(names))}) '
                f"ON CONFLICT(doc_id) DO UPDATE SET {updates}",
                values,
            )
        conn.commit()
        written += len(batch)
    return written


def fetch_documents(conn: sqlite3.Connection, collection: str) -> List[Dict]:
    """All documents of a collection, in insertion order."""
    name = check_collection(collection)
    cur = conn.execute(f'SELECT * FROM "{name}" ORDER BY rowid')
    return [row_to_dict(cur, r) for r in cur.fetchall()]


def fetch_pipeline_documents(conn: sqlite3.Connection, collection: str) -> List[Dict]:
    """Documents carrying this pipeline's provenance marker."""
    name = check_collection(collection)
    cur = conn.execute(f'SELECT * FROM "{name}" WHERE lower(source) = ? ORDER BY rowid', (PROVENANCE,))
    return [row_to_dict(cur, r) for r in cur.fetchall()]


def get_document(conn: sqlite3.Connection, collection: str, doc_id: str) -> Optional[Dict]:
    name = check_collection(collection)
    cur = conn.execute(f'SELECT * FROM "{name}" WHERE doc_id = ?', (doc_id,))
    r = cur.fetchone()
    if not r:
        return None
    return row_to_dict(cur, r)


def delete_documents(
    conn: sqlite3.Connection,
    collection: str,
    doc_ids: Iterable[str],
    batch_limit: int = BATCH_LIMIT,
) -> int:
    """Delete documents by id, committing once per batch."""
    name = check_collection(collection)
    deleted = 0
    for batch in batched(doc_ids, batch_limit):
        cur = conn.executemany(f'DELETE FROM "{name}" WHERE doc_id = ?', [(x,) for x in batch])
        conn.commit()
        deleted += cur.rowcount
    return deleted


def patch_documents(
    conn: sqlite3.Connection,
    collection: str,
    patches: Iterable[Tuple[str, Dict]],
    batch_limit: int = BATCH_LIMIT,
) -> int:
    """Update the given fields of existing documents; missing ids are ignored."""
    name = check_collection(collection)
    patched = 0
    for batch in batched(patches, batch_limit):
        ts = now_iso()
        for doc_id, patch in batch:
            cols = document_columns(patch)
            if not cols:
                continue
            assignments = ", ".join(f"{c}=?" for c in cols)
            cur = conn.execute(
                f'UPDATE "{name}" SET {assignments}, updated_at=? WHERE doc_id = ?',
                list(cols.values()) + [ts, doc_id],
            )
            patched += cur.rowcount
        conn.commit()
    return patched


def apply_sync_plan(
    conn: sqlite3.Connection,
    collection: str,
    plan: SyncPlan,
    batch_limit: int = BATCH_LIMIT,
    logger=None,
) -> Tuple[int, int]:
    """Write the upserts, then delete the prune set. Returns (written, deleted)."""
    written = upsert_documents(
        conn, collection, ((x.source_id, x.to_document()) for x in plan.upserts), batch_limit
    )
    if logger:
        logger.info(f">>> Upserted {written} documents into '{collection}'")

    deleted = 0
    if plan.prune:
        deleted = delete_documents(conn, collection, (x.doc_id for x in plan.prune), batch_limit)
        if logger:
            logger.info(f">>> Pruned {deleted} documents no longer listed")
    return written, deleted
