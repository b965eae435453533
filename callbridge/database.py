"""Database configuration and connection setup."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from callbridge.config import get_config

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine, applying the SQLite threading flag where needed."""
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, **kwargs)


engine = build_engine(get_config().database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine | None = None) -> None:
    """Create all tables that do not exist yet."""
    # Register models on Base.metadata
    import callbridge.models.reservation  # noqa: F401

    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Database tables ensured on {target.url.render_as_string()}")
