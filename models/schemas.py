"""
Core data models / schemas for the Vendor Review Aggregator.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Dict, Tuple
from datetime import datetime, timezone


SORT_FIELDS = ("createdAt", "rating", "helpful")
SORT_ORDERS = ("asc", "desc")
FILTER_KEYS = ("all", "5", "4", "3", "2", "1")
RATINGS = (1, 2, 3, 4, 5)

DEFAULT_SORT_BY = "createdAt"
DEFAULT_SORT_ORDER = "desc"
DEFAULT_CATEGORY = "Service"
NO_REVIEWS_TIER = "No Reviews"


def parse_timestamp(value) -> datetime:
    """ISO-8601 string / epoch millis / datetime -> timezone-aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ---------------------------------------------------------------------------
# Source records (owned by external collaborators)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Listing:
    id: str
    display_name: str
    category_name: str = DEFAULT_CATEGORY


@dataclass(frozen=True)
class Review:
    id: str
    listing_id: str
    user_id: str
    rating: int                     # 1–5
    created_at: datetime
    comment: Optional[str] = None
    helpful_count: int = 0
    reviewer_name: Optional[str] = None
    is_verified: bool = False


@dataclass
class ReviewPage:
    """One page returned by a ReviewSource."""
    reviews: List[Review]
    total: Optional[int] = None
    has_next: bool = False


# ---------------------------------------------------------------------------
# Aggregation artefacts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ListingRef:
    id: str
    name: str
    category: str


@dataclass(frozen=True)
class AnnotatedReview:
    review: Review
    listing: ListingRef

    @property
    def id(self) -> str:
        return self.review.id

    @property
    def rating(self) -> int:
        return self.review.rating

    @property
    def user_id(self) -> str:
        return self.review.user_id

    @classmethod
    def annotate(cls, review: Review, listing: Listing) -> "AnnotatedReview":
        return cls(
            review=review,
            listing=ListingRef(
                id=listing.id,
                name=listing.display_name,
                category=listing.category_name or DEFAULT_CATEGORY,
            ),
        )

    def to_dict(self) -> Dict:
        r = self.review
        return {
            "id": r.id,
            "listingId": r.listing_id,
            "userId": r.user_id,
            "rating": r.rating,
            "comment": r.comment,
            "createdAt": r.created_at.isoformat(),
            "helpfulCount": r.helpful_count,
            "reviewerName": r.reviewer_name,
            "isVerified": r.is_verified,
            "serviceListing": {
                "id": self.listing.id,
                "name": self.listing.name,
                "category": self.listing.category,
            },
        }


@dataclass(frozen=True)
class AggregateStatistics:
    average_rating: float
    total_reviews: int
    total_customers: int
    performance_tier: str
    rating_distribution: Dict[int, int]
    filter_counts: Dict[str, int]

    def to_dict(self) -> Dict:
        return {
            "averageRating": self.average_rating,
            "totalReviews": self.total_reviews,
            "totalCustomers": self.total_customers,
            "performance": self.performance_tier,
            "ratingDistribution": {str(k): v for k, v in self.rating_distribution.items()},
            "filterCounts": dict(self.filter_counts),
        }


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool

    def to_dict(self) -> Dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


@dataclass(frozen=True)
class AggregateResult:
    reviews: Tuple[AnnotatedReview, ...]
    pagination: Pagination
    statistics: AggregateStatistics
    filter: str = "all"
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER
    # source diagnostics; degraded sources are reported, never raised
    failed_listings: Tuple[str, ...] = ()
    directory_available: bool = True

    @property
    def is_degraded(self) -> bool:
        return bool(self.failed_listings) or not self.directory_available
