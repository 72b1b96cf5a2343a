"""
Merge & Sort Agent
-------------------
Flattens per-listing review batches into one globally ordered sequence.

Sort projections:
  createdAt -> epoch millis
  rating    -> integer rating
  helpful   -> helpful_count

Python's sort is stable in both directions (reverse=True keeps ties in input
order), so reviews with equal keys stay in fetch order: listings in directory
order, reviews in the order each source returned them.

Input:  FetchOutput
Output: MergeOutput
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence

from agents.base import Agent
from models.schemas import DEFAULT_SORT_BY, DEFAULT_SORT_ORDER, SORT_FIELDS, AnnotatedReview

logger = logging.getLogger(__name__)


def _created_at_millis(item) -> int:
    return int(item.created_at.timestamp() * 1000)


_PROJECTIONS: Dict[str, Callable] = {
    "createdAt": _created_at_millis,
    "rating": lambda item: item.rating,
    "helpful": lambda item: item.helpful_count,
}


def normalize_sort(sort_by: str, sort_order: str):
    """Unknown fields fall back to createdAt; anything but 'asc' is 'desc'."""
    if sort_by not in SORT_FIELDS:
        if sort_by:
            logger.warning(f"Unknown sortBy '{sort_by}', using {DEFAULT_SORT_BY}")
        sort_by = DEFAULT_SORT_BY
    sort_order = "asc" if sort_order == "asc" else DEFAULT_SORT_ORDER
    return sort_by, sort_order


def sort_key(sort_by: str) -> Callable:
    """Numeric projection for Review or AnnotatedReview items."""
    project = _PROJECTIONS.get(sort_by, _created_at_millis)
    return lambda item: project(getattr(item, "review", item))


def sort_reviews(items: Sequence, sort_by: str = DEFAULT_SORT_BY, sort_order: str = DEFAULT_SORT_ORDER) -> List:
    sort_by, sort_order = normalize_sort(sort_by, sort_order)
    return sorted(items, key=sort_key(sort_by), reverse=(sort_order == "desc"))


@dataclass
class MergeOutput:
    reviews: List[AnnotatedReview]
    sort_by: str
    sort_order: str
    failed_listings: List[str] = field(default_factory=list)
    directory_available: bool = True


class MergeSortAgent(Agent):
    """
    Stage 2: Merge & Sort

    Input:  FetchOutput (per-listing batches)
    Output: MergeOutput (the authoritative full set)
    """

    def __init__(self, sort_by: str = DEFAULT_SORT_BY, sort_order: str = DEFAULT_SORT_ORDER):
        super().__init__(name="MergeSortAgent")
        self.sort_by, self.sort_order = normalize_sort(sort_by, sort_order)

    def run(self, fetched) -> MergeOutput:
        flat = [review for batch in fetched.batches for review in batch]
        merged = sort_reviews(flat, self.sort_by, self.sort_order)
        self.logger.debug(
            f"Merged {len(merged)} reviews from {len(fetched.batches)} listings "
            f"by {self.sort_by} {self.sort_order}"
        )
        return MergeOutput(
            reviews=merged,
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            failed_listings=list(fetched.failed_listings),
            directory_available=fetched.directory_available,
        )
