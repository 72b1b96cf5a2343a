"""
Core data models for the Vendor Review Aggregator.
"""

from .schemas import (
    Listing,
    Review,
    ReviewPage,
    ListingRef,
    AnnotatedReview,
    AggregateStatistics,
    Pagination,
    AggregateResult,
)

__all__ = [
    "Listing",
    "Review",
    "ReviewPage",
    "ListingRef",
    "AnnotatedReview",
    "AggregateStatistics",
    "Pagination",
    "AggregateResult",
]
