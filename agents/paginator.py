"""
Paginator Agent
----------------
Applies the rating filter to the merged set and slices one page. Statistics
are passed through untouched.

  filtered = R                      if filter == "all"
           = {r : rating == filter} otherwise
  pages    = ceil(|filtered| / limit)
  page     = filtered[(page-1)*limit : page*limit]   (empty past the end)

Malformed parameters are clamped instead of raised.

Input:  StatisticsOutput
Output: AggregateResult
"""

import math
import logging
from typing import List, Sequence, Tuple

from agents.base import Agent
from agents.statistics import StatisticsOutput
from config.settings import settings
from models.schemas import FILTER_KEYS, AggregateResult, AnnotatedReview, Pagination

logger = logging.getLogger(__name__)


def normalize_filter(value) -> str:
    """'all' or '1'..'5'; ints and padded strings accepted, anything else -> 'all'."""
    if value is None:
        return "all"
    key = str(value).strip().lower()
    if key in FILTER_KEYS:
        return key
    logger.warning(f"Unrecognised rating filter '{value}', showing all reviews")
    return "all"


def _to_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def normalize_page(page, limit) -> Tuple[int, int]:
    page = max(1, _to_int(page, 1))
    limit = _to_int(limit, settings.DEFAULT_PAGE_LIMIT)
    if limit < 1:
        limit = settings.DEFAULT_PAGE_LIMIT
    return page, min(limit, settings.MAX_PAGE_LIMIT)


def apply_filter(reviews: Sequence[AnnotatedReview], rating_filter: str) -> List[AnnotatedReview]:
    if rating_filter == "all":
        return list(reviews)
    rating = int(rating_filter)
    return [r for r in reviews if r.rating == rating]


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    pages = math.ceil(total / limit) if total > 0 else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=pages,
        has_next=page < pages,
        has_prev=page > 1,
    )


def paginate(reviews: Sequence[AnnotatedReview], rating_filter="all", page=1, limit=10):
    """Returns (page slice, Pagination) after filtering and clamping."""
    rating_filter = normalize_filter(rating_filter)
    page, limit = normalize_page(page, limit)
    filtered = apply_filter(reviews, rating_filter)
    start = (page - 1) * limit
    return filtered[start:start + limit], build_pagination(len(filtered), page, limit)


class PaginatorAgent(Agent):
    """
    Stage 4: Filtered Paginator

    Input:  StatisticsOutput
    Output: AggregateResult
    """

    def __init__(self, rating_filter="all", page=1, limit=settings.DEFAULT_PAGE_LIMIT):
        super().__init__(name="PaginatorAgent")
        self.rating_filter = normalize_filter(rating_filter)
        self.page, self.limit = normalize_page(page, limit)

    def run(self, data: StatisticsOutput) -> AggregateResult:
        merged = data.merged
        page_items, pagination = paginate(merged.reviews, self.rating_filter, self.page, self.limit)
        return AggregateResult(
            reviews=tuple(page_items),
            pagination=pagination,
            statistics=data.statistics,
            filter=self.rating_filter,
            sort_by=merged.sort_by,
            sort_order=merged.sort_order,
            failed_listings=tuple(merged.failed_listings),
            directory_available=merged.directory_available,
        )
