"""Database configuration and session management."""

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from src.config import get_settings
from src.services.errors import TransientStoreError

logger = logging.getLogger(__name__)
settings = get_settings()

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run a block as one transactional unit.

    Commits when the block exits cleanly and rolls back on any error, so no
    partial state is ever visible. A failing commit is surfaced as
    TransientStoreError and is not retried.
    """
    try:
        yield db
    except Exception:
        db.rollback()
        raise

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction commit failed: {e}")
        raise TransientStoreError("Failed to commit transaction") from e


def init_db() -> None:
    """Initialize the database by creating all tables."""
    # Import all models here so they are registered with Base.metadata
    from src import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
