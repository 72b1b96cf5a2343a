"""
SQLAlchemy ORM Models
Vendor Review Aggregator

Local listing/review store backing the "sql" review backend.
"""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean,
    DateTime, ForeignKey, Index
)
from sqlalchemy.orm import relationship, declarative_base
from datetime import datetime, timezone

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class VendorListing(Base):
    __tablename__ = "listing"

    listing_id = Column(String(64), primary_key=True)
    vendor_id = Column(String(64), nullable=False)
    title = Column(String(255), nullable=False)
    category_name = Column(String(255))
    # directory order: listings are returned by position, then id
    position = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    reviews = relationship("ListingReview", back_populates="listing", cascade="all, delete-orphan")

    __table_args__ = (Index("ix_listing_vendor", "vendor_id"),)


class ListingReview(Base):
    __tablename__ = "listing_review"

    review_id = Column(String(64), primary_key=True)
    listing_id = Column(String(64), ForeignKey("listing.listing_id"), nullable=False)
    user_id = Column(String(64), nullable=False)
    reviewer_name = Column(String(255))
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    helpful = Column(Integer, default=0)
    is_verified = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    listing = relationship("VendorListing", back_populates="reviews")

    __table_args__ = (
        Index("ix_review_listing", "listing_id"),
        Index("ix_review_created", "created_at"),
    )
