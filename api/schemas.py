"""
Pydantic schemas for API responses.
Field names are snake_case in Python and camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict
from datetime import datetime


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Review Schemas ──────────────────────────────────────────────────────────

class ServiceListingRef(CamelModel):
    id: str
    name: str
    category: str


class ReviewResponse(CamelModel):
    id: str
    listing_id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    helpful_count: int
    reviewer_name: Optional[str] = None
    is_verified: bool = False
    service_listing: ServiceListingRef


class PaginationResponse(CamelModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class StatisticsResponse(CamelModel):
    average_rating: float
    total_reviews: int
    total_customers: int
    performance: str
    rating_distribution: Dict[str, int]
    filter_counts: Dict[str, int]


class RatingBreakdownRow(CamelModel):
    stars: int
    count: int
    percentage: float


class FilterOption(CamelModel):
    key: str
    label: str
    count: int


class AggregateMeta(CamelModel):
    filter: str
    sort_by: str
    sort_order: str
    failed_listings: List[str]
    directory_available: bool


class VendorReviewsData(CamelModel):
    reviews: List[ReviewResponse]
    pagination: PaginationResponse
    statistics: StatisticsResponse
    rating_breakdown: List[RatingBreakdownRow]
    filter_options: List[FilterOption]
    meta: AggregateMeta


class VendorReviewsResponse(CamelModel):
    success: bool
    data: VendorReviewsData


class HealthResponse(BaseModel):
    status: str
    version: str
    backend: str
    timestamp: datetime
