"""Engine, session factory and declarative base"""

import logging
from typing import Generator

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from safecircle.config import settings

logger = logging.getLogger(__name__)

MIGRATION_TABLE = "alembic_version"


def build_engine(url: str) -> Engine:
    """Create an engine; pool sizing only applies to server databases."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=settings.DEBUG)
    return create_engine(
        url,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )


engine = build_engine(settings.get_database_url())
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Registers every table on Base.metadata
from safecircle import models  # noqa: E402,F401


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; uncommitted work is discarded on close"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    """
    Prepare the schema according to DB_INIT_MODE.

      - migrate: expect Alembic to have run (required when DB_REQUIRE_HEAD)
      - create_all: create missing tables directly, for local development
      - off: do nothing
    """
    mode = settings.DB_INIT_MODE.lower().strip()
    if mode == "off":
        logger.info("Database initialization skipped (DB_INIT_MODE=off)")
    elif mode == "create_all":
        Base.metadata.create_all(bind=bind)
        logger.warning("Tables created with create_all; use Alembic migrations outside development.")
    elif mode == "migrate":
        migrated = inspect(bind).has_table(MIGRATION_TABLE)
        if not migrated and settings.DB_REQUIRE_HEAD:
            raise RuntimeError("Database has not been migrated. Run `alembic upgrade head` first.")
        logger.info("Migration metadata %s", "found" if migrated else "missing")
    else:
        raise RuntimeError(f"Unknown DB_INIT_MODE: {settings.DB_INIT_MODE}")
