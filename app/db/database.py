"""
Storage for saved deals and the actuals ledger.

SQLite is the default store. A PostgreSQL URL gets a NullPool engine so
short-lived API workers do not hold idle connections.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool

from app.config import get_settings
from app.db.models import Base

logger = logging.getLogger(__name__)
settings = get_settings()


def make_engine(database_url: str) -> Engine:
    if database_url.startswith("postgresql"):
        return create_engine(database_url, poolclass=NullPool)
    # API handlers and the seed script share one SQLite file across threads
    return create_engine(database_url, connect_args={"check_same_thread": False})


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """Create the deals and transactions tables if missing."""
    logger.info(f"Creating deal store tables on {engine.url.drivername}")
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal) -> Generator[Session, None, None]:
    """
    One unit of work against the deal store, for scripts.

    Commits when the block exits cleanly. Any exception rolls back every
    deal and transaction written in the block before it propagates.
    """
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        logger.warning("Rolling back deal store changes")
        db.rollback()
        raise
    finally:
        db.close()
