"""
Database operations and connection management.
"""
import sqlite3
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from beneficios.config import config
from beneficios.database import check_collection, row_to_dict
from beneficios.models import UNKNOWN_CATEGORY, UNKNOWN_REGION
from beneficios.utils import normalize_text

logger = logging.getLogger(__name__)


@contextmanager
def get_db_connection():
    """Get a database connection with proper error handling."""
    conn = None
    try:
        if not config.DB_PATH:
            raise ValueError("Database path not configured")

        conn = sqlite3.connect(config.DB_PATH)
        conn.create_function("normalize", 1, normalize_text, deterministic=True)
        yield conn
    except sqlite3.Error as e:
        logger.error(f"Database error: {e}")
        raise
    finally:
        if conn is not None:
            conn.close()


def table() -> str:
    return check_collection(config.COLLECTION)


def build_where_clause(filters: Dict[str, Any]) -> Tuple[str, List[Any]]:
    """Build WHERE clause and parameters from filters."""
    where_conditions = []
    parameters = []

    # Accent-insensitive text search
    q = normalize_text(filters.get('q'))
    if q:
        where_conditions.append('(normalize(title) LIKE ? OR normalize(description) LIKE ?)')
        search_term = f'%{q}%'
        parameters.extend([search_term, search_term])

    category = filters.get('category')
    if category:
        where_conditions.append('category = ?')
        parameters.append(category)

    region = filters.get('region')
    if region:
        where_conditions.append('region = ?')
        parameters.append(region)

    min_confidence = filters.get('min_confidence')
    if min_confidence is not None:
        where_conditions.append('confidence >= ?')
        parameters.append(min_confidence)

    where_clause = ' WHERE ' + ' AND '.join(where_conditions) if where_conditions else ''
    return where_clause, parameters


def get_order_clause(sort: str) -> str:
    """Generate ORDER BY clause based on sort parameter."""
    sort_options = {
        "title_asc": "ORDER BY title ASC",
        "confidence_desc": "ORDER BY confidence DESC",
        "confidence_asc": "ORDER BY confidence ASC",
        "updated_desc": "ORDER BY datetime(updated_at) DESC",
    }
    return sort_options.get(sort, sort_options["updated_desc"])


def get_listings_count(filters: Dict[str, Any]) -> int:
    """Get total count of listings matching filters."""
    with get_db_connection() as conn:
        where_clause, parameters = build_where_clause(filters)
        sql = f'SELECT COUNT(*) FROM "{table()}" {where_clause}'
        result = conn.execute(sql, parameters).fetchone()
        return result[0] if result else 0


def get_listings(filters: Dict[str, Any], sort: str = 'updated_desc',
                 limit: int = 50, offset: int = 0) -> List[Dict]:
    """Get listings with filters, sorting, and pagination."""
    with get_db_connection() as conn:
        where_clause, parameters = build_where_clause(filters)
        order_clause = get_order_clause(sort)

        sql = f'SELECT * FROM "{table()}" {where_clause} {order_clause} LIMIT ? OFFSET ?'
        parameters.extend([limit, offset])

        cursor = conn.execute(sql, parameters)
        return [row_to_dict(cursor, row) for row in cursor.fetchall()]


def get_listing_by_id(doc_id: str) -> Optional[Dict]:
    """Get a single listing by document id."""
    with get_db_connection() as conn:
        cursor = conn.execute(f'SELECT * FROM "{table()}" WHERE doc_id = ?', (doc_id,))
        row = cursor.fetchone()
        if row:
            return row_to_dict(cursor, row)
        return None


def get_statistics() -> Dict[str, Any]:
    """Counts by category and region, plus weak-evidence totals."""
    with get_db_connection() as conn:
        name = table()
        total = conn.execute(f'SELECT COUNT(*) FROM "{name}"').fetchone()[0]
        avg_confidence = conn.execute(f'SELECT AVG(confidence) FROM "{name}"').fetchone()[0]
        unknown_category = conn.execute(
            f'SELECT COUNT(*) FROM "{name}" WHERE category = ?', (UNKNOWN_CATEGORY,)
        ).fetchone()[0]
        unknown_region = conn.execute(
            f'SELECT COUNT(*) FROM "{name}" WHERE region = ?', (UNKNOWN_REGION,)
        ).fetchone()[0]

        category_stats = conn.execute(
            f'SELECT category, COUNT(*) FROM "{name}" GROUP BY category ORDER BY COUNT(*) DESC'
        ).fetchall()
        region_stats = conn.execute(
            f'SELECT region, COUNT(*) FROM "{name}" GROUP BY region ORDER BY COUNT(*) DESC'
        ).fetchall()

        return {
            'total_listings': total,
            'avg_confidence': avg_confidence,
            'unknown_category': unknown_category,
            'unknown_region': unknown_region,
            'by_category': {str(c): n for c, n in category_stats},
            'by_region': {str(r): n for r, n in region_stats},
        }
