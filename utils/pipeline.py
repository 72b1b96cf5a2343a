"""
Pipeline runner: wires the four stages together and returns an AggregateResult.

Architecture:
  ReviewFetchAgent → MergeSortAgent → StatisticsAgent → PaginatorAgent

Everything is recomputed per call; nothing is cached or persisted.
"""

from __future__ import annotations

import logging
from typing import Optional

from agents.base import AggregationError, Orchestrator
from agents.fetcher import ReviewFetchAgent
from agents.merger import MergeSortAgent
from agents.paginator import PaginatorAgent
from agents.sources import ListingDirectory, ReviewSource, build_sources
from agents.statistics import StatisticsAgent
from config.settings import settings
from models.schemas import DEFAULT_SORT_BY, DEFAULT_SORT_ORDER, AggregateResult

logger = logging.getLogger(__name__)


def run_aggregation(
    vendor_id: str,
    rating_filter="all",
    page=1,
    limit=settings.DEFAULT_PAGE_LIMIT,
    sort_by: str = DEFAULT_SORT_BY,
    sort_order: str = DEFAULT_SORT_ORDER,
    directory: Optional[ListingDirectory] = None,
    source: Optional[ReviewSource] = None,
) -> AggregateResult:
    """
    Runs the four-stage pipeline for one vendor.

    Source outages degrade to an empty or partial result; AggregationError is
    raised only when a core stage itself fails.
    """
    if directory is None or source is None:
        default_directory, default_source = build_sources()
        directory = directory or default_directory
        source = source or default_source

    pipeline = Orchestrator([
        ReviewFetchAgent(directory, source, sort_by=sort_by, sort_order=sort_order),
        MergeSortAgent(sort_by=sort_by, sort_order=sort_order),
        StatisticsAgent(),
        PaginatorAgent(rating_filter=rating_filter, page=page, limit=limit),
    ])

    result = pipeline.execute(vendor_id)
    if not result.success:
        raise AggregationError(f"Aggregation failed for vendor {vendor_id}: {result.error}")

    logger.debug(pipeline.summary())
    return result.data


def get_aggregate(
    vendor_id: str,
    page=1,
    limit=settings.DEFAULT_PAGE_LIMIT,
    sort_by: str = DEFAULT_SORT_BY,
    sort_order: str = DEFAULT_SORT_ORDER,
    directory: Optional[ListingDirectory] = None,
    source: Optional[ReviewSource] = None,
) -> AggregateResult:
    """Unfiltered aggregate, one page."""
    return run_aggregation(
        vendor_id, "all", page, limit, sort_by, sort_order,
        directory=directory, source=source,
    )


def get_latest_reviews(
    vendor_id: str,
    directory: Optional[ListingDirectory] = None,
    source: Optional[ReviewSource] = None,
) -> AggregateResult:
    """Dashboard variant: the newest few reviews."""
    return get_aggregate(
        vendor_id, page=1, limit=settings.LATEST_REVIEWS_LIMIT,
        sort_by="createdAt", sort_order="desc",
        directory=directory, source=source,
    )


def get_filtered_aggregate(
    vendor_id: str,
    rating_filter="all",
    page=1,
    limit=settings.DEFAULT_PAGE_LIMIT,
    sort_by: str = DEFAULT_SORT_BY,
    sort_order: str = DEFAULT_SORT_ORDER,
    directory: Optional[ListingDirectory] = None,
    source: Optional[ReviewSource] = None,
) -> AggregateResult:
    """Rating filter applied to the page slice only; statistics stay unfiltered."""
    return run_aggregation(
        vendor_id, rating_filter, page, limit, sort_by, sort_order,
        directory=directory, source=source,
    )
