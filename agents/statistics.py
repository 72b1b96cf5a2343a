"""
Statistics Agent
-----------------
Aggregate rating metrics over the full merged set, always pre-filter, so
filter-menu counts stay stable while a rating filter is toggled.

  total_reviews    = |R|
  average_rating   = round_half_away_from_zero(Σ rating / |R|, 1), 0 if R empty
  total_customers  = |{user_id}|
  performance_tier = threshold ladder on average_rating ("No Reviews" if R empty)
  distribution[k]  = |{r : rating == k}|, k = 1..5
  filter_counts    = {"all": |R|, "5": distribution[5], ..., "1": distribution[1]}

Input:  MergeOutput
Output: StatisticsOutput
"""

import math
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from agents.base import Agent
from agents.merger import MergeOutput
from models.schemas import (
    FILTER_KEYS, NO_REVIEWS_TIER, RATINGS, AggregateStatistics, AnnotatedReview,
)

logger = logging.getLogger(__name__)


PERFORMANCE_TIERS: List[Tuple[float, str]] = [
    (4.5, "Excellent"),
    (4.0, "Very Good"),
    (3.5, "Good"),
    (3.0, "Average"),
]
LOWEST_TIER = "Needs Improvement"

FILTER_LABELS = {
    "all": "All Reviews",
    "5": "5 Star",
    "4": "4 Star",
    "3": "3 Star",
    "2": "2 Star",
    "1": "1 Star",
}


def round_half_away_from_zero(value: float, digits: int = 1) -> float:
    """4.25 -> 4.3, -4.25 -> -4.3 (the built-in round() would give 4.2)."""
    factor = 10 ** digits
    rounded = math.floor(abs(value) * factor + 0.5) / factor
    return math.copysign(rounded, value)


def performance_tier(average_rating: float, total_reviews: int) -> str:
    if total_reviews == 0:
        return NO_REVIEWS_TIER
    for threshold, label in PERFORMANCE_TIERS:
        if average_rating >= threshold:
            return label
    return LOWEST_TIER


def compute_statistics(reviews: Sequence[AnnotatedReview]) -> AggregateStatistics:
    total = len(reviews)
    ratings = [r.rating for r in reviews]

    average = round_half_away_from_zero(sum(ratings) / total, 1) if total > 0 else 0.0
    customers = len({r.user_id for r in reviews})

    counts = Counter(ratings)
    distribution: Dict[int, int] = {k: counts.get(k, 0) for k in RATINGS}
    filter_counts: Dict[str, int] = {"all": total}
    for key in FILTER_KEYS[1:]:
        filter_counts[key] = distribution[int(key)]

    return AggregateStatistics(
        average_rating=average,
        total_reviews=total,
        total_customers=customers,
        performance_tier=performance_tier(average, total),
        rating_distribution=distribution,
        filter_counts=filter_counts,
    )


def empty_statistics() -> AggregateStatistics:
    return compute_statistics([])


def filter_options(statistics: AggregateStatistics) -> List[Dict]:
    """Filter menu entries; keys with a zero count are dropped."""
    return [
        {"key": key, "label": FILTER_LABELS[key], "count": statistics.filter_counts.get(key, 0)}
        for key in FILTER_KEYS
        if statistics.filter_counts.get(key, 0) > 0
    ]


def rating_breakdown(statistics: AggregateStatistics) -> List[Dict]:
    """Per-star count and share of total (percent, 1 decimal), 5 stars first."""
    total = statistics.total_reviews
    rows = []
    for stars in sorted(statistics.rating_distribution, reverse=True):
        count = statistics.rating_distribution[stars]
        pct = round_half_away_from_zero(count / total * 100, 1) if total > 0 else 0.0
        rows.append({"stars": stars, "count": count, "percentage": pct})
    return rows


@dataclass
class StatisticsOutput:
    merged: MergeOutput
    statistics: AggregateStatistics


class StatisticsAgent(Agent):
    """
    Stage 3: Statistics Calculator

    Input:  MergeOutput
    Output: StatisticsOutput (merged set carried forward, unfiltered)
    """

    def __init__(self):
        super().__init__(name="StatisticsAgent")

    def run(self, merged: MergeOutput) -> StatisticsOutput:
        stats = compute_statistics(merged.reviews)
        self.logger.debug(
            f"avg={stats.average_rating} total={stats.total_reviews} "
            f"customers={stats.total_customers} tier={stats.performance_tier}"
        )
        return StatisticsOutput(merged=merged, statistics=stats)
