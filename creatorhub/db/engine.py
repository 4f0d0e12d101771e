"""SQLAlchemy engines and session factories.

When DATABASE_URL is configured, provides:
- async engine for PostgreSQL via asyncpg (readiness check)
- sync engine and session factory via psycopg, used by the Pg*
  repositories that back the request handlers
- FastAPI lifespan hook for startup/shutdown

Without DATABASE_URL every export is None and the service runs on the
in-memory repositories in creatorhub.repos.store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from creatorhub.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for every creatorhub table."""


def sync_database_url(url: str) -> str:
    """Point a configured URL at the psycopg (v3) driver.

    Accepts the asyncpg form used by the async engine as well as bare
    ``postgres://`` / ``postgresql://`` URLs.
    """
    for prefix in ("postgresql+asyncpg://", "postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix) :]
    return url


def async_database_url(url: str) -> str:
    for prefix in ("postgresql+psycopg://", "postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix) :]
    return url


if SETTINGS.database_url:
    engine = create_async_engine(
        async_database_url(SETTINGS.database_url),
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    sync_engine = create_engine(
        sync_database_url(SETTINGS.database_url),
        echo=SETTINGS.is_dev,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
    )
    session_factory = sessionmaker(bind=sync_engine, expire_on_commit=False)
else:
    engine = None
    sync_engine = None
    session_factory = None


@asynccontextmanager
async def lifespan_db():
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory repositories")
        yield
        return

    logger.info(
        "Database engine created: %s", engine.url.render_as_string(hide_password=True)
    )
    yield
    await engine.dispose()
    if sync_engine is not None:
        sync_engine.dispose()
    logger.info("Database engine disposed")
