"""Database engine and session management for the consumption record."""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from smartfx.config import get_settings
from smartfx.ledger.models import Base

logger = logging.getLogger(__name__)

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def normalize_database_url(db_url: str) -> str:
    """Use the aiosqlite driver for plain sqlite URLs."""
    if db_url.startswith("sqlite:///") and "aiosqlite" not in db_url:
        db_url = db_url.replace("sqlite:///", "sqlite+aiosqlite:///")
    return db_url


def create_engine_for(db_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine, making sure a SQLite file's directory exists."""
    db_url = normalize_database_url(db_url)
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(db_url, echo=echo, future=True)


def get_engine() -> AsyncEngine:
    """Get or create the configured database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine_for(
            settings.database_url,
            echo=settings.debug and not settings.is_production,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Create the consumption tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Consumption record tables ready")


async def close_db() -> None:
    """Close database connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
