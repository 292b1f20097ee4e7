"""Database configuration and session management."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from fornada.config import get_settings

settings = get_settings()


def create_session_factory(database_url: str, **engine_kwargs: Any) -> sessionmaker:
    """Build a session factory bound to a new engine for the given URL."""
    engine = create_engine(database_url, **engine_kwargs)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


SessionLocal = create_session_factory(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)
engine = SessionLocal.kw["bind"]

Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize the database by creating all tables."""
    # Import all models here so they are registered with Base.metadata
    from fornada import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
