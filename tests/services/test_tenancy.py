"""Host -> organization resolution tests."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY
from redis.exceptions import ConnectionError as RedisConnectionError

from creatorhub.models.organization import Organization
from creatorhub.repos.org_repo import InMemoryOrgRepo
from creatorhub.services.cache import InMemoryCacheService
from creatorhub.services.tenancy import (
    HostTarget,
    invalidate_organization,
    parse_host,
    resolve_organization,
)

BASE = "creatorhub.localhost"


def _sample(operation: str) -> float:
    value = REGISTRY.get_sample_value(
        "cache_operations_total", labels={"operation": operation}
    )
    return value if value is not None else 0.0


@pytest.mark.parametrize(
    "host,expected",
    [
        ("grace.creatorhub.localhost", HostTarget(subdomain="grace")),
        ("GRACE.creatorhub.localhost:8000", HostTarget(subdomain="grace")),
        ("grace.creatorhub.localhost.", HostTarget(subdomain="grace")),
        ("creatorhub.localhost", HostTarget()),
        ("app.creatorhub.localhost", HostTarget()),
        ("a.b.creatorhub.localhost", HostTarget()),
        ("localhost", HostTarget()),
        ("", HostTarget()),
        ("community.grace.org", HostTarget(custom_domain="community.grace.org")),
    ],
)
def test_parse_host(host: str, expected: HostTarget) -> None:
    assert parse_host(host, BASE) == expected


def _repo_with(org: Organization) -> InMemoryOrgRepo:
    repo = InMemoryOrgRepo()
    repo.add(org)
    return repo


def test_resolves_by_subdomain_and_caches() -> None:
    org = Organization.new(name="Grace", slug="grace", owner_id=uuid4())
    repo = _repo_with(org)
    cache = InMemoryCacheService()
    host = f"grace.{BASE}"

    misses, hits = _sample("miss"), _sample("hit")
    assert asyncio.run(resolve_organization(host, repo, cache)) == org
    assert asyncio.run(resolve_organization(host, repo, cache)) == org

    assert _sample("miss") - misses == 1
    assert _sample("hit") - hits == 1
    assert asyncio.run(cache.get(f"tenant:host:{host}")) == str(org.id)


def test_cached_org_reflects_latest_settings() -> None:
    org = Organization.new(name="Grace", slug="grace", owner_id=uuid4())
    repo = _repo_with(org)
    cache = InMemoryCacheService()
    host = f"grace.{BASE}"
    asyncio.run(resolve_organization(host, repo, cache))

    repo.update(replace(org, name="Grace Chapel"))

    resolved = asyncio.run(resolve_organization(host, repo, cache))
    assert resolved is not None and resolved.name == "Grace Chapel"


def test_stale_cache_entry_is_dropped() -> None:
    org = Organization.new(name="Grace", slug="grace", owner_id=uuid4())
    repo = _repo_with(org)
    cache = InMemoryCacheService()
    host = f"grace.{BASE}"
    asyncio.run(resolve_organization(host, repo, cache))

    repo.remove(org.id)

    assert asyncio.run(resolve_organization(host, repo, cache)) is None
    assert asyncio.run(cache.get(f"tenant:host:{host}")) is None


def test_custom_domain_needs_verification() -> None:
    org = replace(
        Organization.new(name="Grace", slug="grace", owner_id=uuid4()),
        custom_domain="community.grace.org",
    )
    repo = _repo_with(org)
    cache = InMemoryCacheService()

    assert asyncio.run(resolve_organization("community.grace.org", repo, cache)) is None

    repo.update(replace(org, custom_domain_verified=True))
    resolved = asyncio.run(resolve_organization("community.grace.org", repo, cache))
    assert resolved is not None and resolved.id == org.id


def test_platform_host_has_no_tenant() -> None:
    repo = InMemoryOrgRepo()
    assert asyncio.run(resolve_organization(BASE, repo, InMemoryCacheService())) is None


class _BrokenCache(InMemoryCacheService):
    async def get(self, key: str) -> str | None:
        raise RedisConnectionError("redis down")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise RedisConnectionError("redis down")


def test_cache_outage_falls_back_to_repo() -> None:
    org = Organization.new(name="Grace", slug="grace", owner_id=uuid4())
    repo = _repo_with(org)
    resolved = asyncio.run(resolve_organization(f"grace.{BASE}", repo, _BrokenCache()))
    assert resolved == org


def test_invalidate_drops_host_mappings() -> None:
    cache = InMemoryCacheService()
    asyncio.run(cache.set(f"tenant:host:grace.{BASE}", "x", 60))
    asyncio.run(cache.set("tenant:host:community.grace.org", "x", 60))

    asyncio.run(
        invalidate_organization(
            cache, slug="grace", custom_domain="Community.Grace.org"
        )
    )

    assert cache._store == {}
