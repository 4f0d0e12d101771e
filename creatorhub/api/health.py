"""Health and readiness endpoints.

  /health (liveness): the process answers.  Dependency status is reported
  in the body, but a degraded dependency still returns 200 so the
  orchestrator does not restart a container that can recover by itself.

  /ready (readiness): can this instance take traffic?  The data store is
  critical when configured; Redis is not, since tenant lookups fall back
  to the in-memory cache.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from creatorhub.db import engine as db_engine
from creatorhub.db import redis as db_redis

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _redis_status() -> str:
    if db_redis.redis_pool is None:
        return "not_configured"
    try:
        await db_redis.redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"
    return "ok"


async def _database_status() -> str:
    if db_engine.engine is None:
        return "not_configured"
    try:
        async with db_engine.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    checks = {
        "redis": await _redis_status(),
        "database": await _database_status(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _database_status() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
