"""
Listing Directory & Review Source clients
------------------------------------------
Boundary adapters for the two external collaborators of the aggregator.

  ListingDirectory.get_owned_listings(vendor_id) -> List[Listing]
  ReviewSource.get_reviews(listing_id, page, limit, sort_by, sort_order) -> ReviewPage

Both raise on failure; degradation policy lives in the fetch stage.

Backends:
  - http : marketplace REST API (requests)
  - sql  : local SQLAlchemy store
  - mock : deterministic synthetic data for demos
"""

import logging
import random
import threading
import time
import zlib
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

import requests
from sqlalchemy import asc, desc, func
from sqlalchemy.orm import sessionmaker

from agents.merger import sort_reviews
from config.settings import settings
from db.database import get_db
from db.models import VendorListing, ListingReview
from models.schemas import (
    DEFAULT_CATEGORY, Listing, Review, ReviewPage, parse_timestamp,
)

logger = logging.getLogger(__name__)


class SourceError(RuntimeError):
    """An external collaborator could not answer."""


# ─── Interfaces ──────────────────────────────────────────────────────────────


class ListingDirectory(ABC):
    @abstractmethod
    def get_owned_listings(self, vendor_id: str) -> List[Listing]:
        raise NotImplementedError


class ReviewSource(ABC):
    @abstractmethod
    def get_reviews(
        self,
        listing_id: str,
        page: int = 1,
        limit: int = 100,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> ReviewPage:
        raise NotImplementedError


# ─── HTTP backend ────────────────────────────────────────────────────────────


class MarketplaceClient:
    """Shared requests session with bearer auth and retry + exponential backoff."""

    def __init__(
        self,
        base_url: str = settings.MARKETPLACE_API_URL,
        token: Optional[str] = settings.MARKETPLACE_API_TOKEN,
        timeout: float = settings.REQUEST_TIMEOUT,
        max_retries: int = settings.MAX_RETRIES,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def _get(self, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        for attempt in range(self.max_retries):
            try:
                resp = self.session.get(url, timeout=self.timeout, **kwargs)
                resp.raise_for_status()
                return resp.json()
            except requests.HTTPError as e:
                status = getattr(e.response, "status_code", None)
                # 4xx (bad token, unknown listing) will not change on retry
                if status is not None and status < 500:
                    raise SourceError(f"{url} answered {status}") from e
                error = e
            except (requests.ConnectionError, requests.Timeout, ValueError) as e:
                error = e
            except requests.RequestException as e:
                raise SourceError(f"Request to {url} failed: {e}") from e
            if attempt + 1 >= self.max_retries:
                break
            wait = (2 ** attempt) * 0.25 + random.uniform(0, 0.25)
            logger.warning(f"Attempt {attempt+1} failed for {url}: {error}. Retrying in {wait:.2f}s")
            time.sleep(wait)
        raise SourceError(f"Failed to fetch {url} after {self.max_retries} attempts")


class HttpListingDirectory(ListingDirectory):
    def __init__(self, client: Optional[MarketplaceClient] = None):
        self.client = client or MarketplaceClient()

    def get_owned_listings(self, vendor_id: str) -> List[Listing]:
        payload = self.client._get("/services/vendor/my-listings", params={"vendorId": vendor_id})
        listings = []
        for item in payload.get("data") or []:
            category = (item.get("category") or {}).get("name") or DEFAULT_CATEGORY
            listings.append(Listing(
                id=str(item["id"]),
                display_name=item.get("title") or "",
                category_name=category,
            ))
        return listings


def review_from_payload(item: dict, listing_id: str) -> Review:
    return Review(
        id=str(item["id"]),
        listing_id=str(item.get("listingId") or listing_id),
        # anonymous reviews count as one customer each
        user_id=str(item.get("userId") or (item.get("user") or {}).get("id") or f"anonymous-{item['id']}"),
        rating=int(item["rating"]),
        created_at=parse_timestamp(item["createdAt"]),
        comment=item.get("comment"),
        helpful_count=max(0, int(item.get("helpful") or 0)),
        reviewer_name=(item.get("user") or {}).get("name"),
        is_verified=bool(item.get("isVerified", False)),
    )


class HttpReviewSource(ReviewSource):
    def __init__(self, client: Optional[MarketplaceClient] = None):
        self.client = client or MarketplaceClient()

    def get_reviews(self, listing_id, page=1, limit=100, sort_by="createdAt", sort_order="desc") -> ReviewPage:
        payload = self.client._get(
            f"/service-reviews/listing/{listing_id}",
            params={"page": page, "limit": limit, "sortBy": sort_by, "sortOrder": sort_order},
        )
        data = payload.get("data") or {}
        reviews = [review_from_payload(item, listing_id) for item in data.get("reviews") or []]
        pagination = data.get("pagination") or {}
        has_next = pagination.get("hasNext")
        if has_next is None:
            has_next = len(reviews) >= limit
        return ReviewPage(reviews=reviews, total=pagination.get("total"), has_next=bool(has_next))


# ─── SQL backend ─────────────────────────────────────────────────────────────


_SQL_SORT_COLUMNS = {
    "createdAt": ListingReview.created_at,
    "rating": ListingReview.rating,
    "helpful": ListingReview.helpful,
}


class SqlListingDirectory(ListingDirectory):
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_owned_listings(self, vendor_id: str) -> List[Listing]:
        with get_db(self.session_factory) as db:
            rows = (
                db.query(VendorListing)
                .filter(VendorListing.vendor_id == vendor_id)
                .order_by(VendorListing.position, VendorListing.listing_id)
                .all()
            )
            return [
                Listing(
                    id=row.listing_id,
                    display_name=row.title,
                    category_name=row.category_name or DEFAULT_CATEGORY,
                )
                for row in rows
            ]


class SqlReviewSource(ReviewSource):
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_reviews(self, listing_id, page=1, limit=100, sort_by="createdAt", sort_order="desc") -> ReviewPage:
        column = _SQL_SORT_COLUMNS.get(sort_by, ListingReview.created_at)
        direction = asc if sort_order == "asc" else desc
        page = max(1, page)
        with get_db(self.session_factory) as db:
            total = (
                db.query(func.count(ListingReview.review_id))
                .filter(ListingReview.listing_id == listing_id)
                .scalar()
            ) or 0
            rows = (
                db.query(ListingReview)
                .filter(ListingReview.listing_id == listing_id)
                .order_by(direction(column), ListingReview.review_id)
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
            reviews = [
                Review(
                    id=row.review_id,
                    listing_id=row.listing_id,
                    user_id=row.user_id,
                    rating=row.rating,
                    created_at=parse_timestamp(row.created_at),
                    comment=row.comment,
                    helpful_count=row.helpful or 0,
                    reviewer_name=row.reviewer_name,
                    is_verified=bool(row.is_verified),
                )
                for row in rows
            ]
        return ReviewPage(reviews=reviews, total=total, has_next=page * limit < total)


# ─── In-memory & mock backends ──────────────────────────────────────────────


class InMemoryCatalog(ListingDirectory, ReviewSource):
    """
    Listing directory and review source over plain dicts.
    Listings or whole vendors can be marked as failing to exercise degradation.
    """

    def __init__(self):
        self._listings: Dict[str, List[Listing]] = {}
        self._reviews: Dict[str, List[Review]] = {}
        self.failing_listings: set = set()
        self.directory_down = False
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def add_listing(self, vendor_id: str, listing: Listing, reviews: Iterable[Review] = ()) -> None:
        self._listings.setdefault(vendor_id, []).append(listing)
        self._reviews.setdefault(listing.id, []).extend(reviews)

    def get_owned_listings(self, vendor_id: str) -> List[Listing]:
        if self.directory_down:
            raise SourceError("listing directory unavailable")
        return list(self._listings.get(vendor_id, []))

    def get_reviews(self, listing_id, page=1, limit=100, sort_by="createdAt", sort_order="desc") -> ReviewPage:
        with self._lock:
            self.calls.append((listing_id, page, limit, sort_by, sort_order))
        if listing_id in self.failing_listings:
            raise SourceError(f"review source unavailable for listing {listing_id}")
        ordered = sort_reviews(self._reviews.get(listing_id, []), sort_by, sort_order)
        start = (max(1, page) - 1) * limit
        chunk = ordered[start:start + limit]
        return ReviewPage(reviews=chunk, total=len(ordered), has_next=start + limit < len(ordered))


class MockCatalog(InMemoryCatalog):
    """
    Generates synthetic listings and reviews per vendor for development/demo.
    Output is stable for a given vendor id.
    """

    SERVICES = [
        ("Deep Home Cleaning", "Cleaning"),
        ("AC Repair & Service", "Appliance Repair"),
        ("Bridal Makeup", "Beauty"),
        ("Wedding Photography", "Events"),
        ("Plumbing Works", "Home Repair"),
        ("Yoga at Home", "Fitness"),
    ]

    COMMENTS = {
        5: ["Excellent work, very professional.", "Highly recommend!", "On time and spotless."],
        4: ["Good service overall.", "Did a neat job, slightly late."],
        3: ["Average experience.", "Okay, but could be better."],
        2: ["Not satisfied with the quality.", "Had to call twice."],
        1: ["Very poor service.", "Did not show up on time."],
    }

    def __init__(self, now: Optional[datetime] = None):
        super().__init__()
        self.now = now or datetime.now(timezone.utc)

    def _ensure_vendor(self, vendor_id: str) -> None:
        if vendor_id in self._listings:
            return
        rng = random.Random(zlib.crc32(vendor_id.encode()))
        self._listings[vendor_id] = []
        for i, (title, category) in enumerate(rng.sample(self.SERVICES, rng.randint(2, 4))):
            listing = Listing(id=f"{vendor_id}-svc-{i+1}", display_name=title, category_name=category)
            reviews = []
            for j in range(rng.randint(0, 40)):
                rating = rng.choices([5, 4, 3, 2, 1], weights=[45, 25, 15, 8, 7])[0]
                reviews.append(Review(
                    id=f"{listing.id}-r{j+1}",
                    listing_id=listing.id,
                    user_id=f"user_{rng.randint(1, 60)}",
                    rating=rating,
                    created_at=self.now - timedelta(days=rng.randint(0, 365), minutes=rng.randint(0, 1440)),
                    comment=rng.choice(self.COMMENTS[rating]) if rng.random() > 0.2 else None,
                    helpful_count=rng.randint(0, 12),
                    reviewer_name=f"Customer {j+1}",
                    is_verified=rng.random() > 0.5,
                ))
            self.add_listing(vendor_id, listing, reviews)

    def get_owned_listings(self, vendor_id: str) -> List[Listing]:
        self._ensure_vendor(vendor_id)
        return super().get_owned_listings(vendor_id)


# ─── Backend selection ──────────────────────────────────────────────────────


_mock_catalog: Optional[MockCatalog] = None


def build_sources(backend: str = settings.REVIEW_BACKEND):
    """Return a (ListingDirectory, ReviewSource) pair for the configured backend."""
    global _mock_catalog
    if backend == "http":
        client = MarketplaceClient()
        return HttpListingDirectory(client), HttpReviewSource(client)
    if backend == "sql":
        from db.database import SessionLocal
        return SqlListingDirectory(SessionLocal), SqlReviewSource(SessionLocal)
    if backend != "mock":
        logger.warning(f"Unknown review backend '{backend}', falling back to mock")
    if _mock_catalog is None:
        _mock_catalog = MockCatalog()
    return _mock_catalog, _mock_catalog
