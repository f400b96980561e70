"""
Pydantic models for API request/response serialization.
"""
from typing import Optional, List, Dict
from pydantic import BaseModel, Field


class ListingOut(BaseModel):
    """Output model for listing data."""
    doc_id: str
    title: Optional[str] = None
    url: Optional[str] = None
    canonical: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    region: Optional[str] = None
    description: Optional[str] = None
    confidence: Optional[float] = None
    reasons: List[str] = Field(default_factory=list)
    source: Optional[str] = None
    first_seen: Optional[str] = None
    updated_at: Optional[str] = None


class ListingsResponse(BaseModel):
    """Response model for paginated listings."""
    total: int
    items: List[ListingOut]


class StatsOut(BaseModel):
    """Model for statistics data."""
    total_listings: int
    avg_confidence: Optional[float]
    unknown_category: int
    unknown_region: int
    by_category: Dict[str, int]
    by_region: Dict[str, int]
