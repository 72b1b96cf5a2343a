"""
HTTP API tests using FastAPI's TestClient with the sources dependency overridden.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.routes import get_sources


@pytest.fixture
def client(two_listing_catalog):
    app.dependency_overrides[get_sources] = lambda: (two_listing_catalog, two_listing_catalog)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSystemEndpoints:
    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["backend"]

    def test_health(self, client):
        body = client.get("/api/v1/health").json()
        assert body["status"] == "ok"
        assert body["backend"]


class TestVendorReviews:
    def test_default_page(self, client):
        resp = client.get("/api/v1/vendors/vendor-1/reviews")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True

        data = body["data"]
        assert [r["id"] for r in data["reviews"]] == ["a1", "b1", "a2", "a3"]
        assert data["reviews"][0]["serviceListing"] == {
            "id": "A", "name": "Deep Cleaning", "category": "Cleaning",
        }
        assert data["pagination"] == {
            "page": 1, "limit": 10, "total": 4, "pages": 1, "hasNext": False, "hasPrev": False,
        }
        stats = data["statistics"]
        assert stats["averageRating"] == 4.3
        assert stats["totalCustomers"] == 3
        assert stats["performance"] == "Very Good"
        assert stats["ratingDistribution"] == {"1": 0, "2": 0, "3": 1, "4": 1, "5": 2}
        assert [o["key"] for o in data["filterOptions"]] == ["all", "5", "4", "3"]
        assert data["ratingBreakdown"][0] == {"stars": 5, "count": 2, "percentage": 50.0}

    def test_filter_and_sort_parameters(self, client):
        resp = client.get(
            "/api/v1/vendors/vendor-1/reviews",
            params={"filter": "5", "sortBy": "createdAt", "sortOrder": "asc", "limit": 1},
        )
        data = resp.json()["data"]
        assert [r["id"] for r in data["reviews"]] == ["a3"]
        assert data["pagination"]["total"] == 2
        assert data["pagination"]["hasNext"] is True
        assert data["statistics"]["totalReviews"] == 4
        assert data["meta"]["filter"] == "5"
        assert data["meta"]["sortOrder"] == "asc"

    def test_malformed_parameters_do_not_error(self, client):
        resp = client.get(
            "/api/v1/vendors/vendor-1/reviews",
            params={"page": "abc", "limit": "-1", "filter": "seven", "sortBy": "price"},
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["pagination"]["page"] == 1
        assert data["pagination"]["limit"] == 10
        assert data["meta"]["filter"] == "all"
        assert data["meta"]["sortBy"] == "createdAt"

    def test_degraded_sources_still_succeed(self, client, two_listing_catalog):
        two_listing_catalog.failing_listings.add("B")
        data = client.get("/api/v1/vendors/vendor-1/reviews").json()["data"]
        assert data["statistics"]["totalReviews"] == 3
        assert data["meta"]["failedListings"] == ["B"]

    def test_unknown_vendor_is_empty_success(self, client):
        body = client.get("/api/v1/vendors/nobody/reviews").json()
        assert body["success"] is True
        assert body["data"]["reviews"] == []
        assert body["data"]["statistics"]["performance"] == "No Reviews"
        assert body["data"]["filterOptions"] == []

    def test_latest(self, client):
        data = client.get("/api/v1/vendors/vendor-1/reviews/latest").json()["data"]
        assert [r["id"] for r in data["reviews"]] == ["a1", "b1", "a2"]
        assert data["pagination"]["limit"] == 3

    def test_core_failure_is_500(self, client, monkeypatch):
        def boom(reviews):
            raise ValueError("bad data")
        monkeypatch.setattr("agents.statistics.compute_statistics", boom)
        resp = client.get("/api/v1/vendors/vendor-1/reviews")
        assert resp.status_code == 500
        assert resp.json()["success"] is False
        assert "vendor-1" in resp.json()["detail"]
