"""Resolve the organization a request is addressed to from its host.

  {slug}.{SUBDOMAIN_BASE}   -> organization by slug
  SUBDOMAIN_BASE, app., ... -> platform host, no tenant
  anything else             -> organization by verified custom domain

The host-to-organization mapping sits behind the read-through cache;
only the organization id is cached, the row itself is always read from
the repository so settings changes are visible immediately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from redis.exceptions import RedisError

from creatorhub.core.config import SETTINGS
from creatorhub.core.metrics import CACHE_OPERATIONS
from creatorhub.models.organization import Organization
from creatorhub.repos.org_repo import OrgRepo
from creatorhub.services.cache import CacheService
from creatorhub.services.subdomains import RESERVED_SUBDOMAINS

logger = logging.getLogger(__name__)

_KEY_PREFIX = "tenant:host:"


@dataclass(frozen=True, slots=True)
class HostTarget:
    """What a host names: a subdomain slug, a custom domain, or neither."""

    subdomain: str | None = None
    custom_domain: str | None = None

    @property
    def is_tenant(self) -> bool:
        return self.subdomain is not None or self.custom_domain is not None


def parse_host(host: str, base: str | None = None) -> HostTarget:
    base = (base or SETTINGS.subdomain_base).lower()
    host = (host or "").strip().lower().rstrip(".").split(":")[0]
    if not host or host == base:
        return HostTarget()

    suffix = f".{base}"
    if host.endswith(suffix):
        label = host[: -len(suffix)]
        # Nested labels (a.b.base) and platform hosts are never tenants.
        if "." in label or label in RESERVED_SUBDOMAINS:
            return HostTarget()
        return HostTarget(subdomain=label)

    if host in ("localhost", "127.0.0.1"):
        return HostTarget()
    return HostTarget(custom_domain=host)


def _cache_key(host: str) -> str:
    return f"{_KEY_PREFIX}{host}"


async def resolve_organization(
    host: str, org_repo: OrgRepo, cache: CacheService
) -> Organization | None:
    target = parse_host(host)
    if not target.is_tenant:
        return None

    key = _cache_key(host)
    cached_id = None
    try:
        cached_id = await cache.get(key)
    except RedisError:
        logger.warning("Tenant cache read failed for host=%s", host, exc_info=True)

    if cached_id is not None:
        CACHE_OPERATIONS.labels(operation="hit").inc()
        org = org_repo.get_by_id(UUID(cached_id))
        if org is not None:
            return org
        # Organization deleted since it was cached.
        await cache.delete(key)
    else:
        CACHE_OPERATIONS.labels(operation="miss").inc()

    if target.subdomain is not None:
        org = org_repo.get_by_slug(target.subdomain)
    else:
        org = org_repo.get_by_custom_domain(target.custom_domain or "")

    if org is None:
        logger.info("No organization for host=%s", host)
        return None

    try:
        await cache.set(key, str(org.id), SETTINGS.tenant_cache_ttl)
    except RedisError:
        logger.warning("Tenant cache write failed for host=%s", host, exc_info=True)
    return org


async def invalidate_organization(
    cache: CacheService,
    *,
    slug: str | None = None,
    custom_domain: str | None = None,
) -> None:
    """Drop cached host mappings after a slug or custom domain change."""
    if slug:
        await cache.delete(_cache_key(f"{slug}.{SETTINGS.subdomain_base}"))
    if custom_domain:
        await cache.delete(_cache_key(custom_domain.lower()))
