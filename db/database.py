"""
Database engine, session management, and initialization.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from contextlib import contextmanager
from typing import Generator, Optional

from config.settings import settings
from db.models import Base

logger = logging.getLogger(__name__)


def make_engine(url: str = settings.DATABASE_URL) -> Engine:
    return create_engine(
        url,
        connect_args={"check_same_thread": False} if "sqlite" in url else {},
        echo=settings.DEBUG,
    )


engine = make_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables."""
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database initialized.")


@contextmanager
def get_db(factory: sessionmaker = SessionLocal) -> Generator[Session, None, None]:
    """Context manager for database sessions."""
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
