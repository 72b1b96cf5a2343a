"""
Review Fetch Agent
-------------------
Scatter-gather over every listing a vendor owns.

  1. Resolve listings through the ListingDirectory.
  2. Request each listing's reviews concurrently on a bounded thread pool.
  3. Join: wait for every request to settle. Each listing gets its own
     deadline, counted from when a worker picks it up.

Degradation:
  - directory failure / no listings -> empty batch, never an error
  - one listing failing or timing out -> that listing contributes nothing

Input:  vendor_id (str)
Output: FetchOutput
"""

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
import time
from typing import Dict, List, Optional, Set

from agents.base import Agent
from agents.merger import normalize_sort
from agents.sources import ListingDirectory, ReviewSource
from config.settings import settings
from models.schemas import DEFAULT_SORT_BY, DEFAULT_SORT_ORDER, AnnotatedReview, Listing

logger = logging.getLogger(__name__)


@dataclass
class FetchOutput:
    """Per-listing batches in directory order (unsorted)."""
    vendor_id: str
    listings: List[Listing] = field(default_factory=list)
    batches: List[List[AnnotatedReview]] = field(default_factory=list)
    failed_listings: List[str] = field(default_factory=list)
    truncated_listings: List[str] = field(default_factory=list)
    directory_available: bool = True

    @property
    def total_reviews(self) -> int:
        return sum(len(b) for b in self.batches)


class ReviewFetchAgent(Agent):
    """
    Stage 1: Fan-Out Fetcher

    Input:  vendor_id
    Output: FetchOutput
    """

    def __init__(
        self,
        directory: ListingDirectory,
        source: ReviewSource,
        sort_by: str = DEFAULT_SORT_BY,
        sort_order: str = DEFAULT_SORT_ORDER,
        page_limit: int = settings.PER_LISTING_PAGE_LIMIT,
        max_pages: int = settings.MAX_PAGES_PER_LISTING,
        max_workers: int = settings.FETCH_MAX_WORKERS,
        deadline_seconds: Optional[float] = settings.FETCH_DEADLINE_SECONDS,
    ):
        super().__init__(name="ReviewFetchAgent")
        self.directory = directory
        self.source = source
        self.sort_by, self.sort_order = normalize_sort(sort_by, sort_order)
        self.page_limit = max(1, page_limit)
        self.max_pages = max(1, max_pages)
        self.max_workers = max(1, max_workers)
        self.deadline_seconds = deadline_seconds

    def _fetch_listing(self, listing: Listing):
        """All pages (up to max_pages) of one listing, annotated. Raises on source failure."""
        annotated: List[AnnotatedReview] = []
        truncated = False
        page = 1
        while True:
            result = self.source.get_reviews(
                listing.id,
                page=page,
                limit=self.page_limit,
                sort_by=self.sort_by,
                sort_order=self.sort_order,
            )
            annotated.extend(AnnotatedReview.annotate(r, listing) for r in result.reviews)
            if not result.has_next or not result.reviews:
                break
            if page >= self.max_pages:
                truncated = True
                break
            page += 1
        return annotated, truncated

    def _timed_fetch(self, started: Dict[int, float], index: int, listing: Listing):
        started[index] = time.monotonic()
        return self._fetch_listing(listing)

    def _join(self, futures: List[Future], started: Dict[int, float]) -> Set[Future]:
        """Waits for every future; returns those that ran past their own deadline."""
        if self.deadline_seconds is None:
            wait(futures)
            return set()

        index = {future: i for i, future in enumerate(futures)}
        pending = set(futures)
        expired: Set[Future] = set()
        while pending:
            now = time.monotonic()
            running = [started[index[f]] + self.deadline_seconds for f in pending if index[f] in started]
            # a queued task may start at any moment, so poll until it has
            timeout = max(0.0, min(running) - now) if running else 0.05
            if running and len(running) < len(pending):
                timeout = min(timeout, 0.05)
            _, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)

            now = time.monotonic()
            for future in list(pending):
                start = started.get(index[future])
                if start is not None and now - start >= self.deadline_seconds:
                    pending.discard(future)
                    expired.add(future)
        return expired

    def run(self, vendor_id: str) -> FetchOutput:
        output = FetchOutput(vendor_id=vendor_id)

        try:
            listings = list(self.directory.get_owned_listings(vendor_id) or [])
        except Exception as e:
            self.logger.warning(f"Listing directory unavailable for vendor {vendor_id}: {e}")
            output.directory_available = False
            return output

        output.listings = listings
        if not listings:
            self.logger.info(f"Vendor {vendor_id} owns no listings")
            return output

        workers = min(self.max_workers, len(listings))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="review-fetch")
        started: Dict[int, float] = {}
        try:
            futures = [
                executor.submit(self._timed_fetch, started, i, listing)
                for i, listing in enumerate(listings)
            ]
            expired = self._join(futures, started)
        finally:
            # requests still running past their deadline are abandoned, not awaited
            executor.shutdown(wait=False, cancel_futures=True)

        for listing, future in zip(listings, futures):
            if future in expired:
                self.logger.error(
                    f"Review fetch for listing {listing.id} exceeded "
                    f"{self.deadline_seconds}s deadline, skipping"
                )
                output.batches.append([])
                output.failed_listings.append(listing.id)
                continue
            try:
                batch, truncated = future.result()
            except Exception as e:
                self.logger.error(f"Error fetching reviews for listing {listing.id}: {e}")
                output.batches.append([])
                output.failed_listings.append(listing.id)
                continue
            if truncated:
                self.logger.warning(
                    f"Listing {listing.id} has more than {len(batch)} reviews; "
                    f"aggregate is capped at {self.max_pages} page(s) of {self.page_limit}"
                )
                output.truncated_listings.append(listing.id)
            output.batches.append(batch)

        self.logger.info(
            f"Fetched {output.total_reviews} reviews across {len(listings)} listings "
            f"({len(output.failed_listings)} failed)"
        )
        return output
