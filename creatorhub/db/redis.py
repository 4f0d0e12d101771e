"""Redis connection management.

Mirrors engine.py: with REDIS_URL set, a shared async connection pool is
created at import time; without it ``redis_pool`` is None and the tenant
cache falls back to process memory.  Tenant lookups happen on every
member-facing request, so several API instances sharing one cache keeps
the data store off the hot path.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from creatorhub.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    if redis_pool is None:
        logger.info("No REDIS_URL configured, tenant cache is in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except Exception:
        # Serve without a warm cache rather than refuse to start; every
        # lookup still reaches the data store.
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
