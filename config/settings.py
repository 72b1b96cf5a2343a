"""
Configuration & Settings
Vendor Review Aggregator
"""

from pydantic import BaseModel
from typing import Optional
import os


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


class Settings(BaseModel):
    # App
    APP_NAME: str = "Vendor Review Aggregator"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() in ("1", "true", "yes")

    # Database (local review store, "sql" backend)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./vendor_reviews.db")

    # Review backend: "mock" | "http" | "sql"
    REVIEW_BACKEND: str = os.getenv("REVIEW_BACKEND", "mock")

    # Marketplace REST API ("http" backend)
    MARKETPLACE_API_URL: str = os.getenv("MARKETPLACE_API_URL", "http://localhost:3000/api/v1")
    MARKETPLACE_API_TOKEN: Optional[str] = os.getenv("MARKETPLACE_API_TOKEN")
    REQUEST_TIMEOUT: float = _env_float("REQUEST_TIMEOUT", 10.0)
    MAX_RETRIES: int = _env_int("MAX_RETRIES", 3)

    # Fan-out
    # PER_LISTING_PAGE_LIMIT * MAX_PAGES_PER_LISTING caps the reviews read per
    # listing. One page of 100 is the product default; raise the page count to
    # walk every page the source reports.
    PER_LISTING_PAGE_LIMIT: int = _env_int("PER_LISTING_PAGE_LIMIT", 100)
    MAX_PAGES_PER_LISTING: int = _env_int("MAX_PAGES_PER_LISTING", 1)
    FETCH_MAX_WORKERS: int = _env_int("FETCH_MAX_WORKERS", 8)
    FETCH_DEADLINE_SECONDS: float = _env_float("FETCH_DEADLINE_SECONDS", 30.0)

    # Pagination
    DEFAULT_PAGE_LIMIT: int = 10
    MAX_PAGE_LIMIT: int = 100
    LATEST_REVIEWS_LIMIT: int = 3

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = _env_int("API_PORT", 8000)


settings = Settings()
