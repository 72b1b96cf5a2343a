"""
FastAPI Route Handlers
Vendor Review Aggregator
"""

from datetime import datetime, timezone
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query

from api.schemas import HealthResponse, VendorReviewsResponse
from agents.sources import ListingDirectory, ReviewSource, build_sources
from agents.statistics import filter_options, rating_breakdown
from config.settings import settings
from models.schemas import AggregateResult
from utils.pipeline import get_filtered_aggregate, get_latest_reviews


router = APIRouter()


def get_sources() -> Tuple[ListingDirectory, ReviewSource]:
    """Dependency: the configured listing directory and review source."""
    return build_sources(settings.REVIEW_BACKEND)


def to_response(result: AggregateResult) -> dict:
    return {
        "success": True,
        "data": {
            "reviews": [r.to_dict() for r in result.reviews],
            "pagination": result.pagination.to_dict(),
            "statistics": result.statistics.to_dict(),
            "ratingBreakdown": rating_breakdown(result.statistics),
            "filterOptions": filter_options(result.statistics),
            "meta": {
                "filter": result.filter,
                "sortBy": result.sort_by,
                "sortOrder": result.sort_order,
                "failedListings": list(result.failed_listings),
                "directoryAvailable": result.directory_available,
            },
        },
    }


# ─── Health ──────────────────────────────────────────────────────────────────

@router.get("/health", response_model=HealthResponse, tags=["System"])
def health_check():
    return HealthResponse(
        status="ok",
        version=settings.APP_VERSION,
        backend=settings.REVIEW_BACKEND,
        timestamp=datetime.now(timezone.utc),
    )


# ─── Vendor Reviews ──────────────────────────────────────────────────────────

# Query values arrive as raw strings and are clamped by the paginator, so a
# malformed page or limit never turns into a 422.

@router.get("/vendors/{vendor_id}/reviews", response_model=VendorReviewsResponse, tags=["Reviews"])
def get_vendor_reviews(
    vendor_id: str,
    page: Optional[str] = Query("1"),
    limit: Optional[str] = Query(str(settings.DEFAULT_PAGE_LIMIT)),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    rating_filter: str = Query("all", alias="filter"),
    sources=Depends(get_sources),
):
    """
    Aggregate reviews across every listing the vendor owns.
    Statistics always cover the unfiltered set; `filter` only narrows the page.
    """
    directory, source = sources
    result = get_filtered_aggregate(
        vendor_id, rating_filter, page, limit, sort_by, sort_order,
        directory=directory, source=source,
    )
    return to_response(result)


@router.get("/vendors/{vendor_id}/reviews/latest", response_model=VendorReviewsResponse, tags=["Reviews"])
def get_vendor_latest_reviews(vendor_id: str, sources=Depends(get_sources)):
    """Newest reviews for the vendor dashboard card."""
    directory, source = sources
    return to_response(get_latest_reviews(vendor_id, directory=directory, source=source))
