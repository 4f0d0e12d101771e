from __future__ import annotations

import logging
import re
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from creatorhub.api.community import router as community_router
from creatorhub.api.courses import router as courses_router
from creatorhub.api.health import router as health_router
from creatorhub.api.livestreams import router as livestreams_router
from creatorhub.api.metrics_endpoint import router as metrics_router
from creatorhub.api.onboarding import router as onboarding_router
from creatorhub.api.orgs import router as orgs_router
from creatorhub.api.orgs import subdomain_router
from creatorhub.api.tiers import router as tiers_router
from creatorhub.api.webhooks import router as webhooks_router
from creatorhub.core.config import SETTINGS
from creatorhub.core.logging import setup_logging
from creatorhub.db.engine import lifespan_db
from creatorhub.db.redis import lifespan_redis
from creatorhub.middleware.metrics import MetricsMiddleware
from creatorhub.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order even if one of them fails.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="creatorhub",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Tenant sites live on subdomains of the platform domain; verified custom
# domains are served by the same frontend through the edge proxy.
_TENANT_ORIGIN = (
    rf"https?://([a-z0-9-]+\.)?{re.escape(SETTINGS.subdomain_base)}(:\d+)?"
)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=_TENANT_ORIGIN,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext (outermost) -> Metrics -> CORS -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(orgs_router)
app.include_router(subdomain_router)
app.include_router(tiers_router)
app.include_router(community_router)
app.include_router(courses_router)
app.include_router(livestreams_router)
app.include_router(onboarding_router)
app.include_router(webhooks_router)

logger.info(
    "creatorhub started  env=%s log_level=%s port=%d subdomain_base=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.subdomain_base,
    "on" if SETTINGS.is_dev else "off",
)
