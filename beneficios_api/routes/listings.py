"""
API route handlers for listings endpoints.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Query, HTTPException, Depends
from fastapi.responses import StreamingResponse
import pandas as pd

from beneficios.config import config
from beneficios.export import EXPORT_COLUMNS

from ..models import ListingOut, ListingsResponse
from ..database import get_listings_count, get_listings, get_listing_by_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["listings"])


def get_listing_filters(
    q: Optional[str] = None,
    category: Optional[str] = None,
    region: Optional[str] = None,
    min_confidence: Optional[float] = Query(None, ge=0, le=1),
) -> dict:
    """Dependency to extract and validate listing filters."""
    return {
        'q': q,
        'category': category,
        'region': region,
        'min_confidence': min_confidence,
    }


@router.get("/listings", response_model=ListingsResponse)
async def get_api_listings(
    filters: dict = Depends(get_listing_filters),
    sort: str = 'updated_desc',
    limit: int = Query(config.DEFAULT_API_LIMIT, ge=1, le=config.MAX_API_LIMIT),
    offset: int = Query(0, ge=0)
):
    """Get listings with filtering, sorting and pagination."""
    try:
        total = get_listings_count(filters)
        items_data = get_listings(filters, sort, limit, offset)
        items = [ListingOut(**item) for item in items_data]

        return ListingsResponse(total=total, items=items)

    except Exception as e:
        logger.error(f"Error fetching listings: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/listings/{doc_id}", response_model=ListingOut)
async def get_api_listing(doc_id: str):
    """Get a specific listing by document id."""
    try:
        listing_data = get_listing_by_id(doc_id)
        if not listing_data:
            raise HTTPException(status_code=404, detail="Listing not found")

        return ListingOut(**listing_data)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching listing {doc_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/export/csv")
async def export_listings_csv(
    filters: dict = Depends(get_listing_filters),
    sort: str = 'updated_desc'
):
    """Export filtered listings as CSV."""
    try:
        # Get all matching listings (no pagination for export)
        listings_data = get_listings(filters, sort, limit=10000, offset=0)

        if not listings_data:
            # Return empty CSV with headers
            df = pd.DataFrame(columns=EXPORT_COLUMNS)
        else:
            df = pd.DataFrame(listings_data)
            df["reasons"] = df["reasons"].map(lambda r: " | ".join(r or []))
            df = df.reindex(columns=EXPORT_COLUMNS)

        csv_content = df.to_csv(index=False).encode('utf-8')

        return StreamingResponse(
            iter([csv_content]),
            media_type='text/csv',
            headers={'Content-Disposition': 'attachment; filename="beneficios.csv"'}
        )

    except Exception as e:
        logger.error(f"Error exporting CSV: {e}")
        raise HTTPException(status_code=500, detail="Error generating CSV export")
