"""Organization creation, settings and subdomain check endpoint tests."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from uuid import uuid4

from fastapi.testclient import TestClient

from creatorhub.repos.store import community_repo, membership_repo, org_repo
from creatorhub.services.cache import cache_service
from tests.conftest import auth, create_test_org, tenant_headers


def test_create_org_makes_caller_owner(client: TestClient) -> None:
    user_id = uuid4()

    resp = client.post(
        "/v1/orgs", json={"name": "Grace Church"}, headers=auth(user_id)
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["slug"] == "grace-church"
    assert body["url"] == "https://grace-church.creatorhub.localhost"
    assert body["your_role"] == "OWNER"
    org = org_repo.get_by_slug("grace-church")
    assert org is not None and org.owner_id == user_id
    assert membership_repo.get(org.id, user_id) is not None


def test_create_org_starts_with_members_only_community(client: TestClient) -> None:
    client.post("/v1/orgs", json={"name": "Grace Church"}, headers=auth(uuid4()))
    org = org_repo.get_by_slug("grace-church")
    assert org is not None
    community = community_repo.get_default_community(org.id)
    assert community is not None

    channels = community_repo.list_channels(community.id)
    assert [c.slug for c in channels] == ["announcements", "general"]
    assert all(not c.is_public and not c.access_tier_ids for c in channels)


def test_create_org_with_taken_slug_conflicts(client: TestClient) -> None:
    create_test_org("grace")
    resp = client.post(
        "/v1/orgs", json={"name": "Grace", "slug": "grace"}, headers=auth(uuid4())
    )
    assert resp.status_code == 409


def test_create_org_derives_free_slug(client: TestClient) -> None:
    create_test_org("grace-church")
    resp = client.post(
        "/v1/orgs", json={"name": "Grace Church"}, headers=auth(uuid4())
    )
    assert resp.json()["slug"] == "grace-church-2"


def test_create_org_requires_sign_in(client: TestClient) -> None:
    assert client.post("/v1/orgs", json={"name": "Grace"}).status_code == 401


# --- Settings ---


def test_update_settings(client: TestClient) -> None:
    owner_id = uuid4()
    org = create_test_org("grace", owner_id=owner_id)

    resp = client.patch(
        f"/v1/orgs/{org.id}/settings",
        json={
            "primary_color": "#112233",
            "features": ["community", "courses", "courses"],
            "community_public": True,
        },
        headers=auth(owner_id),
    )

    assert resp.status_code == 200
    settings = resp.json()["settings"]
    assert settings["primary_color"] == "#112233"
    assert settings["features"] == ["community", "courses"]
    assert settings["community_public"] is True


def test_invalid_settings_rejected(client: TestClient) -> None:
    owner_id = uuid4()
    org = create_test_org("grace", owner_id=owner_id)
    url = f"/v1/orgs/{org.id}/settings"

    bad_color = client.patch(url, json={"primary_color": "red"}, headers=auth(owner_id))
    bad_feature = client.patch(url, json={"features": ["casino"]}, headers=auth(owner_id))
    no_features = client.patch(url, json={"features": []}, headers=auth(owner_id))

    assert bad_color.status_code == 422
    assert bad_feature.status_code == 422
    assert no_features.status_code == 422


def test_changing_custom_domain_unverifies_and_drops_cache(
    client: TestClient,
) -> None:
    owner_id = uuid4()
    org = create_test_org("grace", owner_id=owner_id)
    org = replace(org, custom_domain="community.grace.org", custom_domain_verified=True)
    org_repo.update(org)

    # Warm the host cache through a real tenant request.
    resp = client.get(
        "/v1/community/channels",
        headers={"X-Forwarded-Host": "community.grace.org"},
    )
    assert resp.status_code == 404  # no community yet, but the host resolved
    assert asyncio.run(cache_service.get("tenant:host:community.grace.org"))

    resp = client.patch(
        f"/v1/orgs/{org.id}/settings",
        json={"custom_domain": "members.grace.org"},
        headers=auth(owner_id),
    )

    assert resp.status_code == 200
    assert resp.json()["custom_domain"] == "members.grace.org"
    assert resp.json()["custom_domain_verified"] is False
    assert resp.json()["url"] == "https://grace.creatorhub.localhost"
    assert asyncio.run(cache_service.get("tenant:host:community.grace.org")) is None


def test_subdomain_routing_still_works_after_settings_change(
    client: TestClient,
) -> None:
    owner_id = uuid4()
    org = create_test_org("grace", owner_id=owner_id)
    client.patch(
        f"/v1/orgs/{org.id}/settings",
        json={"primary_color": "#000000"},
        headers=auth(owner_id),
    )
    resp = client.get("/v1/upgrade", headers=tenant_headers(org, owner_id))
    assert resp.status_code == 200
    assert resp.json()["organization"] == org.name


# --- Subdomain check ---


def test_subdomain_check(client: TestClient) -> None:
    create_test_org("grace")

    free = client.get("/v1/subdomains/check", params={"subdomain": "Hope"}).json()
    taken = client.get("/v1/subdomains/check", params={"subdomain": "grace"}).json()
    reserved = client.get("/v1/subdomains/check", params={"subdomain": "admin"}).json()

    assert free == {
        "subdomain": "hope",
        "available": True,
        "error": None,
        "url": "https://hope.creatorhub.localhost",
    }
    assert taken["available"] is False
    assert taken["error"] == "This subdomain is already taken."
    assert reserved["error"] == "This subdomain is reserved."
