"""
Data models for the benefits listing pipeline.
"""
from dataclasses import asdict, dataclass, field
from typing import List, Dict, Optional


UNKNOWN_CATEGORY = "Categoría desconocida"
UNKNOWN_REGION = "Provincia desconocida"
NATIONWIDE = "Nacional"

# Stored in the `source` field of every document this pipeline writes
PROVENANCE = "bulk-upload"


@dataclass
class ImageDescriptor:
    """Image found on a listing detail page."""

    src: str
    alt: str = ""
    width: int = 0
    height: int = 0

    @property
    def area(self) -> int:
        return max(0, self.width or 0) * max(0, self.height or 0)

    @property
    def filename(self) -> str:
        """Last path segment of the image source, without query string."""
        return (self.src or "").split("?")[0].rstrip("/").split("/")[-1]


@dataclass(frozen=True)
class ListingSignals:
    """Everything the scraper collected for one listing."""

    title: str
    detail_text: str
    url: str
    images: List[ImageDescriptor] = field(default_factory=list)
    badges: List[str] = field(default_factory=list)
    schema_types: List[str] = field(default_factory=list)
    structured_location_text: str = ""

    # Card data from the list page
    description: str = ""
    list_image: str = ""
    og_image: str = ""

    # Appended after the OCR trigger fires
    ocr_text: str = ""

    @property
    def image_url(self) -> str:
        """Best image reference: og:image, first detail image, then list thumbnail."""
        if self.og_image:
            return self.og_image
        if self.images and self.images[0].src:
            return self.images[0].src
        return self.list_image or ""


@dataclass
class ClassificationResult:
    """Winning category plus the evidence that produced it."""

    category: str
    confidence: float
    reasons: List[str] = field(default_factory=list)
    raw_scores: Dict[str, float] = field(default_factory=dict)


@dataclass
class ListingOutcome:
    """Result of classifying a single listing, before reconciliation."""

    signals: ListingSignals
    classification: ClassificationResult
    region: str
    ocr_used: bool = False
    warnings: List[str] = field(default_factory=list)


@dataclass
class CanonicalListing:
    """Durable record keyed by its canonical URL."""

    title: str
    canonical_url: str
    category: str
    region: str
    source_id: str
    image_url: Optional[str] = None
    description: Optional[str] = None
    confidence: float = 0.0
    reasons: List[str] = field(default_factory=list)

    def to_document(self) -> Dict:
        """Field map written to the document store."""
        return {
            "title": self.title,
            "url": self.canonical_url,
            "image_url": self.image_url,
            "category": self.category,
            "region": self.region,
            "description": self.description,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "canonical": self.canonical_url,
            "source": PROVENANCE,
        }


@dataclass
class PruneCandidate:
    """Previously stored document whose canonical URL vanished from the source."""

    doc_id: str
    canonical: str
    title: str = ""


@dataclass
class SyncPlan:
    """Writes and deletions computed for one run."""

    upserts: List[CanonicalListing] = field(default_factory=list)
    prune: List[PruneCandidate] = field(default_factory=list)
    dropped: int = 0


def signals_from_dict(d: Dict) -> ListingSignals:
    """Build ListingSignals from a JSON-style dict; unknown keys are ignored."""
    images = [
        ImageDescriptor(
            src=img.get("src", ""),
            alt=img.get("alt") or "",
            width=int(img.get("width") or 0),
            height=int(img.get("height") or 0),
        )
        for img in d.get("images") or []
        if isinstance(img, dict)
    ]
    return ListingSignals(
        title=d.get("title") or "",
        detail_text=d.get("detail_text") or "",
        url=d.get("url") or "",
        images=images,
        badges=list(d.get("badges") or []),
        schema_types=list(d.get("schema_types") or []),
        structured_location_text=d.get("structured_location_text") or "",
        description=d.get("description") or "",
        list_image=d.get("list_image") or "",
        og_image=d.get("og_image") or "",
        ocr_text=d.get("ocr_text") or "",
    )


def signals_to_dict(signals: ListingSignals) -> Dict:
    return asdict(signals)
