"""
Shared fixtures: small in-memory catalogs with known contents.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timedelta, timezone

import pytest

from agents.sources import InMemoryCatalog
from models.schemas import Listing, Review

BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_review(review_id, listing_id, rating, minutes_ago=0, user_id=None, helpful=0, comment=None):
    return Review(
        id=review_id,
        listing_id=listing_id,
        user_id=user_id or f"user-{review_id}",
        rating=rating,
        created_at=BASE_TIME - timedelta(minutes=minutes_ago),
        comment=comment,
        helpful_count=helpful,
    )


@pytest.fixture
def two_listing_catalog():
    """
    Listing A: ratings 5, 4, 5. Listing B: rating 3.
    Newest first: a1, b1, a2, a3.
    """
    catalog = InMemoryCatalog()
    catalog.add_listing("vendor-1", Listing("A", "Deep Cleaning", "Cleaning"), [
        make_review("a1", "A", 5, minutes_ago=0, user_id="u1"),
        make_review("a2", "A", 4, minutes_ago=20, user_id="u2", helpful=3),
        make_review("a3", "A", 5, minutes_ago=30, user_id="u1", helpful=1),
    ])
    catalog.add_listing("vendor-1", Listing("B", "AC Repair", ""), [
        make_review("b1", "B", 3, minutes_ago=10, user_id="u3", helpful=7),
    ])
    return catalog


@pytest.fixture
def twelve_review_catalog():
    """Twelve 5/4-star reviews over two listings, r01 newest."""
    catalog = InMemoryCatalog()
    first = [make_review(f"r{i:02d}", "L1", 5 if i % 2 else 4, minutes_ago=i) for i in range(1, 13, 2)]
    second = [make_review(f"r{i:02d}", "L2", 5 if i % 2 else 4, minutes_ago=i) for i in range(2, 13, 2)]
    catalog.add_listing("vendor-12", Listing("L1", "Bridal Makeup", "Beauty"), first)
    catalog.add_listing("vendor-12", Listing("L2", "Hair Styling", "Beauty"), second)
    return catalog
