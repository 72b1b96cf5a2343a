from .database import init_db, get_db, make_engine, engine, SessionLocal
from .models import Base, VendorListing, ListingReview

__all__ = [
    "init_db", "get_db", "make_engine", "engine", "SessionLocal",
    "Base", "VendorListing", "ListingReview",
]
