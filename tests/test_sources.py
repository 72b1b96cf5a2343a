"""
Listing directory / review source backend tests (SQL store and marketplace HTTP client).
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import requests
from sqlalchemy.orm import sessionmaker

from agents.sources import (
    HttpListingDirectory, HttpReviewSource, MarketplaceClient, SourceError,
    SqlListingDirectory, SqlReviewSource, build_sources, MockCatalog,
)
from db.database import get_db, init_db, make_engine
from agents.statistics import compute_statistics
from db.models import ListingReview, VendorListing
from models.schemas import AnnotatedReview, Listing
from utils.pipeline import get_filtered_aggregate

from conftest import BASE_TIME


# ─── SQL backend ─────────────────────────────────────────────────────────────

@pytest.fixture
def session_factory(tmp_path):
    # file-backed so the fetch pool's worker threads share one database
    engine = make_engine(f"sqlite:///{tmp_path / 'reviews.db'}")
    init_db(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with get_db(factory) as db:
        db.add_all([
            VendorListing(listing_id="A", vendor_id="vendor-1", title="Deep Cleaning",
                          category_name="Cleaning", position=0),
            VendorListing(listing_id="B", vendor_id="vendor-1", title="AC Repair",
                          category_name=None, position=1),
            VendorListing(listing_id="Z", vendor_id="vendor-2", title="Yoga", position=0),
        ])
        db.add_all([
            ListingReview(review_id="a1", listing_id="A", user_id="u1", rating=5,
                          created_at=BASE_TIME, helpful=0),
            ListingReview(review_id="a2", listing_id="A", user_id="u2", rating=4,
                          created_at=BASE_TIME - timedelta(minutes=20), helpful=3),
            ListingReview(review_id="a3", listing_id="A", user_id="u1", rating=5,
                          created_at=BASE_TIME - timedelta(minutes=30), helpful=1),
            ListingReview(review_id="b1", listing_id="B", user_id="u3", rating=3,
                          created_at=BASE_TIME - timedelta(minutes=10), helpful=7,
                          comment="Fixed, but late."),
        ])
    yield factory
    engine.dispose()


class TestSqlBackend:
    def test_listings_in_position_order(self, session_factory):
        listings = SqlListingDirectory(session_factory).get_owned_listings("vendor-1")
        assert [l.id for l in listings] == ["A", "B"]
        assert listings[1].category_name == "Service"

    def test_review_pages(self, session_factory):
        source = SqlReviewSource(session_factory)
        first = source.get_reviews("A", page=1, limit=2)
        assert [r.id for r in first.reviews] == ["a1", "a2"]
        assert first.total == 3 and first.has_next
        second = source.get_reviews("A", page=2, limit=2)
        assert [r.id for r in second.reviews] == ["a3"]
        assert not second.has_next

    def test_timestamps_are_utc_aware(self, session_factory):
        review = SqlReviewSource(session_factory).get_reviews("B").reviews[0]
        assert review.created_at == BASE_TIME - timedelta(minutes=10)
        assert review.created_at.tzinfo is not None

    def test_aggregate_over_sql_store(self, session_factory):
        result = get_filtered_aggregate(
            "vendor-1", "all", 1, 10,
            directory=SqlListingDirectory(session_factory),
            source=SqlReviewSource(session_factory),
        )
        assert [r.id for r in result.reviews] == ["a1", "b1", "a2", "a3"]
        assert result.statistics.average_rating == 4.3
        assert result.reviews[1].review.comment == "Fixed, but late."


# ─── HTTP backend ────────────────────────────────────────────────────────────

def fake_response(payload, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error", response=resp)
    return resp


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr("agents.sources.time.sleep", lambda s: None)
    c = MarketplaceClient(base_url="http://marketplace.test/api/v1/", token="secret", max_retries=3)
    c.session.get = MagicMock()
    return c


class TestHttpBackend:
    def test_bearer_token_header(self, client):
        assert client.session.headers["Authorization"] == "Bearer secret"

    def test_owned_listings(self, client):
        client.session.get.return_value = fake_response({"data": [
            {"id": 11, "title": "Bridal Makeup", "category": {"name": "Beauty"}},
            {"id": 12, "title": "Hair Styling", "category": None},
        ]})
        listings = HttpListingDirectory(client).get_owned_listings("vendor-9")

        assert [(l.id, l.category_name) for l in listings] == [("11", "Beauty"), ("12", "Service")]
        url = client.session.get.call_args.args[0]
        assert url == "http://marketplace.test/api/v1/services/vendor/my-listings"
        assert client.session.get.call_args.kwargs["params"] == {"vendorId": "vendor-9"}

    def test_listing_reviews(self, client):
        client.session.get.return_value = fake_response({"data": {
            "reviews": [{
                "id": "r1", "userId": "u1", "rating": 5, "helpful": 2,
                "createdAt": "2024-06-01T12:00:00.000Z", "comment": "Great",
                "user": {"name": "Asha"}, "isVerified": True,
            }],
            "pagination": {"total": 1, "hasNext": False},
        }})
        page = HttpReviewSource(client).get_reviews("11", page=1, limit=100, sort_by="rating", sort_order="asc")

        review = page.reviews[0]
        assert review.listing_id == "11"
        assert review.created_at == BASE_TIME
        assert review.reviewer_name == "Asha"
        assert review.is_verified
        assert not page.has_next
        assert client.session.get.call_args.kwargs["params"] == {
            "page": 1, "limit": 100, "sortBy": "rating", "sortOrder": "asc",
        }

    def test_retries_then_succeeds(self, client):
        client.session.get.side_effect = [
            requests.ConnectionError("reset"),
            fake_response({}, status=503),
            fake_response({"data": []}),
        ]
        assert HttpListingDirectory(client).get_owned_listings("vendor-9") == []
        assert client.session.get.call_count == 3

    def test_gives_up_after_max_retries(self, client):
        client.session.get.side_effect = requests.Timeout("slow")
        with pytest.raises(SourceError):
            HttpReviewSource(client).get_reviews("11")
        assert client.session.get.call_count == 3

    @pytest.mark.parametrize("status", [401, 404])
    def test_client_errors_are_not_retried(self, client, status):
        client.session.get.return_value = fake_response({}, status=status)
        with pytest.raises(SourceError):
            HttpListingDirectory(client).get_owned_listings("vendor-9")
        assert client.session.get.call_count == 1

    def test_anonymous_reviews_count_as_separate_customers(self, client):
        client.session.get.return_value = fake_response({"data": {
            "reviews": [
                {"id": "r1", "rating": 5, "createdAt": "2024-06-01T12:00:00Z"},
                {"id": "r2", "rating": 4, "createdAt": "2024-06-01T11:00:00Z"},
                {"id": "r3", "rating": 4, "createdAt": "2024-06-01T10:00:00Z", "user": {"id": "u7"}},
            ],
            "pagination": {"total": 3, "hasNext": False},
        }})
        reviews = HttpReviewSource(client).get_reviews("11").reviews

        assert [r.user_id for r in reviews] == ["anonymous-r1", "anonymous-r2", "u7"]
        annotated = [AnnotatedReview.annotate(r, Listing("11", "Bridal Makeup")) for r in reviews]
        assert compute_statistics(annotated).total_customers == 3


class TestBackendSelection:
    def test_mock_is_shared(self):
        directory, source = build_sources("mock")
        assert directory is source
        assert isinstance(directory, MockCatalog)
        assert build_sources("mock")[0] is directory

    def test_http_pair_shares_client(self):
        directory, source = build_sources("http")
        assert isinstance(directory, HttpListingDirectory)
        assert directory.client is source.client

    def test_sql_pair(self):
        directory, source = build_sources("sql")
        assert isinstance(directory, SqlListingDirectory)
        assert isinstance(source, SqlReviewSource)
