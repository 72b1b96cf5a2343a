"""
Incremental accumulation of paged aggregate results for a reviews screen.

One ReviewAccumulator belongs to one screen session. It turns discrete page
fetches into a single growing, duplicate-free list and tracks whether more
pages exist.

State machine:

  IDLE ──reset/refresh──▶ LOADING ──page ok, more──▶ ACCUMULATING ──load_more──▶ LOADING
                             │   └──page ok, last──▶ EXHAUSTED
                             └──fetch failed───────▶ ERROR ──retry──▶ LOADING

Every request carries the generation it was issued under. A filter change or
refresh starts a new generation, and responses from older generations are
dropped, so a slow response for a previous filter cannot overwrite the list.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Set

from agents.paginator import normalize_filter
from config.settings import settings
from models.schemas import AggregateResult, AnnotatedReview

logger = logging.getLogger(__name__)

# (rating_filter, page, limit) -> AggregateResult
PageFetcher = Callable[[str, int, int], AggregateResult]


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ACCUMULATING = "accumulating"
    EXHAUSTED = "exhausted"
    ERROR = "error"


# mutually exclusive list-footer states
VIEW_LOADING_MORE = "loading_more"
VIEW_REACHED_END = "reached_end"
VIEW_NO_MATCHES = "no_matches"
VIEW_BROWSING = "browsing"


@dataclass(frozen=True)
class PageRequest:
    generation: int
    rating_filter: str
    page: int
    limit: int


@dataclass
class AccumulationState:
    items: List[AnnotatedReview] = field(default_factory=list)
    seen_ids: Set[str] = field(default_factory=set)
    current_page: int = 1
    is_loading_more: bool = False
    has_more: bool = True
    rating_filter: str = "all"
    status: LoadStatus = LoadStatus.IDLE
    generation: int = 0
    last_error: Optional[str] = None
    failed_page: Optional[int] = None
    last_result: Optional[AggregateResult] = None


class ReviewAccumulator:
    """
    Client-held accumulation cache.

    The begin_* / receive / fail methods split a fetch into issue and apply so
    the caller may run the fetch elsewhere; open, change_filter, refresh,
    load_more and retry run `fetch` inline.
    """

    def __init__(self, fetch: Optional[PageFetcher] = None, limit: int = settings.DEFAULT_PAGE_LIMIT):
        self.fetch = fetch
        self.limit = limit
        self.state = AccumulationState()

    # ── Derived views ───────────────────────────────────────────────────────

    @property
    def items(self) -> List[AnnotatedReview]:
        return self.state.items

    @property
    def statistics(self):
        return self.state.last_result.statistics if self.state.last_result else None

    @property
    def view_state(self) -> str:
        s = self.state
        if s.is_loading_more:
            return VIEW_LOADING_MORE
        if not s.has_more:
            return VIEW_REACHED_END if s.items else VIEW_NO_MATCHES
        return VIEW_BROWSING

    def can_load_more(self) -> bool:
        """
        Only once page 1 has arrived for the current generation and nothing is
        in flight. A failed page 1 is recovered with retry(), never load_more().
        """
        s = self.state
        if s.is_loading_more or not s.has_more:
            return False
        if s.status is LoadStatus.ACCUMULATING:
            return True
        return s.status is LoadStatus.ERROR and (s.failed_page or 0) > 1

    # ── Issuing requests ───────────────────────────────────────────────────

    def begin_reset(self, rating_filter="all") -> PageRequest:
        """Clear the list for a (new) filter and request page 1."""
        s = self.state
        s.generation += 1
        s.rating_filter = normalize_filter(rating_filter)
        s.items = []
        s.seen_ids = set()
        s.current_page = 1
        s.has_more = True
        s.is_loading_more = False
        s.last_error = None
        s.failed_page = None
        s.status = LoadStatus.LOADING
        return PageRequest(s.generation, s.rating_filter, 1, self.limit)

    def begin_refresh(self) -> PageRequest:
        """Re-request page 1 without clearing; the result replaces the list."""
        s = self.state
        s.generation += 1
        s.is_loading_more = False
        s.status = LoadStatus.LOADING
        return PageRequest(s.generation, s.rating_filter, 1, self.limit)

    def begin_load_more(self) -> Optional[PageRequest]:
        """Next page, or None while a load is in flight or nothing is left."""
        if not self.can_load_more():
            return None
        s = self.state
        s.is_loading_more = True
        s.status = LoadStatus.LOADING
        return PageRequest(s.generation, s.rating_filter, s.current_page + 1, self.limit)

    def begin_retry(self) -> Optional[PageRequest]:
        """After a failure, request the same page that failed."""
        s = self.state
        if s.status is not LoadStatus.ERROR:
            return None
        if s.failed_page == 1:
            return self.begin_refresh()
        return self.begin_load_more()

    # ── Applying responses ─────────────────────────────────────────────────

    def _is_stale(self, request: PageRequest) -> bool:
        if request.generation != self.state.generation:
            logger.debug(
                f"Dropping stale page {request.page} response "
                f"(generation {request.generation}, current {self.state.generation})"
            )
            return True
        return False

    def receive(self, request: PageRequest, result: AggregateResult) -> bool:
        """Apply a page result. Returns False if it was stale and ignored."""
        if self._is_stale(request):
            return False
        s = self.state

        if request.page == 1:
            s.items = []
            s.seen_ids = set()
        for review in result.reviews:
            if review.id in s.seen_ids:
                continue
            s.seen_ids.add(review.id)
            s.items.append(review)

        s.current_page = request.page
        s.has_more = result.pagination.has_next
        s.is_loading_more = False
        s.last_error = None
        s.failed_page = None
        s.last_result = result
        s.status = LoadStatus.ACCUMULATING if s.has_more else LoadStatus.EXHAUSTED
        return True

    def fail(self, request: PageRequest, error: Exception) -> bool:
        """Record a failed fetch; current_page is not advanced so a retry repeats it."""
        if self._is_stale(request):
            return False
        s = self.state
        s.is_loading_more = False
        s.last_error = str(error)
        s.failed_page = request.page
        s.status = LoadStatus.ERROR
        logger.warning(f"Loading page {request.page} ({request.rating_filter}) failed: {error}")
        return True

    # ── Inline fetch helpers ──────────────────────────────────────────────

    def _run(self, request: Optional[PageRequest]) -> bool:
        if request is None:
            return False
        if self.fetch is None:
            raise RuntimeError("ReviewAccumulator has no fetch callable")
        try:
            result = self.fetch(request.rating_filter, request.page, request.limit)
        except Exception as e:
            self.fail(request, e)
            return False
        return self.receive(request, result)

    def open(self) -> bool:
        return self._run(self.begin_reset("all"))

    def change_filter(self, rating_filter) -> bool:
        return self._run(self.begin_reset(rating_filter))

    def refresh(self) -> bool:
        return self._run(self.begin_refresh())

    def load_more(self) -> bool:
        return self._run(self.begin_load_more())

    def retry(self) -> bool:
        return self._run(self.begin_retry())
