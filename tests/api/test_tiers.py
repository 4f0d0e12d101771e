"""Tier catalog (dashboard) and upgrade page (tenant host) tests."""

from __future__ import annotations

from dataclasses import replace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from creatorhub.models.membership import MembershipStatus, Role
from creatorhub.repos.store import membership_repo, tier_repo
from tests.conftest import (
    add_test_member,
    auth,
    create_test_channel,
    create_test_community,
    create_test_org,
    create_test_tier,
    tenant_headers,
)


@pytest.fixture
def org_and_owner():
    owner_id = uuid4()
    return create_test_org("grace", owner_id=owner_id), owner_id


def test_create_tier_normalizes_input(client: TestClient, org_and_owner) -> None:
    org, owner_id = org_and_owner

    resp = client.post(
        f"/v1/orgs/{org.id}/tiers",
        json={
            "name": "  Supporter ",
            "price": "5",
            "interval": "year",
            "features": ["Early access", " ", "Live Q&A"],
        },
        headers=auth(owner_id),
    )

    assert resp.status_code == 201
    tier = resp.json()
    assert tier["name"] == "Supporter"
    assert tier["price"] == "5.00"
    assert tier["interval"] == "year"
    assert tier["features"] == ["Early access", "Live Q&A"]
    assert tier["position"] == 0


@pytest.mark.parametrize(
    "body",
    [
        {"name": "X", "price": "5"},
        {"name": "Gold", "price": "-1"},
        {"name": "Gold", "price": "lots"},
        {"name": "Gold", "price": "5", "interval": "weekly"},
    ],
)
def test_create_tier_rejects_bad_input(
    client: TestClient, org_and_owner, body: dict
) -> None:
    org, owner_id = org_and_owner
    resp = client.post(f"/v1/orgs/{org.id}/tiers", json=body, headers=auth(owner_id))
    assert resp.status_code == 422


def test_new_tiers_append_to_catalog(client: TestClient, org_and_owner) -> None:
    org, owner_id = org_and_owner
    for name in ("Bronze", "Silver", "Gold"):
        client.post(
            f"/v1/orgs/{org.id}/tiers",
            json={"name": name, "price": "1"},
            headers=auth(owner_id),
        )

    resp = client.get(f"/v1/orgs/{org.id}/tiers", headers=auth(owner_id))
    assert [(t["name"], t["position"]) for t in resp.json()] == [
        ("Bronze", 0),
        ("Silver", 1),
        ("Gold", 2),
    ]


def test_reorder_tiers(client: TestClient, org_and_owner) -> None:
    org, owner_id = org_and_owner
    a = create_test_tier(org.id, "Alpha", position=0)
    b = create_test_tier(org.id, "Beta", position=1)

    resp = client.put(
        f"/v1/orgs/{org.id}/tiers/order",
        json={"tier_ids": [str(b.id), str(a.id)]},
        headers=auth(owner_id),
    )
    assert resp.status_code == 200
    assert [t["name"] for t in resp.json()] == ["Beta", "Alpha"]

    partial = client.put(
        f"/v1/orgs/{org.id}/tiers/order",
        json={"tier_ids": [str(b.id)]},
        headers=auth(owner_id),
    )
    assert partial.status_code == 422


def test_update_tier(client: TestClient, org_and_owner) -> None:
    org, owner_id = org_and_owner
    tier = create_test_tier(org.id)

    resp = client.patch(
        f"/v1/orgs/{org.id}/tiers/{tier.id}",
        json={"price": "12.5", "is_active": False},
        headers=auth(owner_id),
    )

    assert resp.status_code == 200
    assert resp.json()["price"] == "12.50"
    assert resp.json()["is_active"] is False
    assert resp.json()["name"] == "Gold"


def test_tier_in_use_cannot_be_deleted(client: TestClient, org_and_owner) -> None:
    org, owner_id = org_and_owner
    tier = create_test_tier(org.id)
    add_test_member(org.id, uuid4(), tier_id=tier.id)
    url = f"/v1/orgs/{org.id}/tiers/{tier.id}"

    assert client.delete(url, headers=auth(owner_id)).status_code == 409

    unused = create_test_tier(org.id, "Spare")
    resp = client.delete(f"/v1/orgs/{org.id}/tiers/{unused.id}", headers=auth(owner_id))
    assert resp.status_code == 204
    assert tier_repo.get(unused.id) is None


def test_members_can_read_catalog_but_not_edit(
    client: TestClient, org_and_owner
) -> None:
    org, _ = org_and_owner
    member = uuid4()
    add_test_member(org.id, member, Role.MODERATOR)
    tier = create_test_tier(org.id)

    assert client.get(f"/v1/orgs/{org.id}/tiers", headers=auth(member)).status_code == 200
    resp = client.patch(
        f"/v1/orgs/{org.id}/tiers/{tier.id}", json={"name": "Mine"}, headers=auth(member)
    )
    assert resp.status_code == 403


# --- Upgrade page ---


def test_upgrade_page_flags_current_and_upgrades(
    client: TestClient, org_and_owner
) -> None:
    org, _ = org_and_owner
    create_test_tier(org.id, "Free", "0.00", position=0)
    silver = create_test_tier(org.id, "Silver", "10.00", position=1)
    create_test_tier(org.id, "Gold", "25.00", position=2)
    retired = create_test_tier(org.id, "Legacy", "99.00", position=3)
    tier_repo.update(replace(retired, is_active=False))
    member = uuid4()
    add_test_member(org.id, member, tier_id=silver.id)

    resp = client.get("/v1/upgrade", headers=tenant_headers(org, member))

    assert resp.status_code == 200
    body = resp.json()
    assert body["current_tier_id"] == str(silver.id)
    options = {o["tier"]["name"]: o for o in body["options"]}
    assert list(options) == ["Free", "Silver", "Gold"]
    assert options["Silver"]["is_current"] is True
    assert options["Silver"]["is_upgrade"] is False
    assert options["Gold"]["is_upgrade"] is True
    assert options["Free"]["is_upgrade"] is False


def test_upgrade_page_without_tier_offers_priced_tiers(
    client: TestClient, org_and_owner
) -> None:
    org, _ = org_and_owner
    create_test_tier(org.id, "Free", "0.00", position=0)
    create_test_tier(org.id, "Gold", "25.00", position=1)
    member = uuid4()
    add_test_member(org.id, member)

    resp = client.get("/v1/upgrade", headers=tenant_headers(org, member))

    upgrades = [o["tier"]["name"] for o in resp.json()["options"] if o["is_upgrade"]]
    assert upgrades == ["Gold"]
    assert resp.json()["current_tier_id"] is None


def test_upgrade_page_requires_sign_in(client: TestClient, org_and_owner) -> None:
    org, _ = org_and_owner
    assert client.get("/v1/upgrade", headers=tenant_headers(org)).status_code == 401


# --- Joining ---


def test_join_lands_on_free_tier(client: TestClient, org_and_owner) -> None:
    org, _ = org_and_owner
    create_test_tier(org.id, "Gold", "10.00", position=0)
    free = create_test_tier(org.id, "Free", "0.00", position=1)
    user_id = uuid4()

    resp = client.post("/v1/join", headers=tenant_headers(org, user_id))

    assert resp.status_code == 201
    assert resp.json()["role"] == "MEMBER"
    assert resp.json()["status"] == "ACTIVE"
    assert resp.json()["tier_id"] == str(free.id)
    membership = membership_repo.get(org.id, user_id)
    assert membership is not None
    assert membership.tier_id == free.id
    assert membership.status is MembershipStatus.ACTIVE


def test_join_skips_inactive_free_tier(client: TestClient, org_and_owner) -> None:
    org, _ = org_and_owner
    retired = create_test_tier(org.id, "Old Free", "0.00", position=0)
    tier_repo.update(replace(retired, is_active=False))
    free = create_test_tier(org.id, "Free", "0.00", position=1)

    resp = client.post("/v1/join", headers=tenant_headers(org, uuid4()))

    assert resp.json()["tier_id"] == str(free.id)


def test_join_without_free_tier_has_no_tier(client: TestClient, org_and_owner) -> None:
    org, _ = org_and_owner
    create_test_tier(org.id, "Gold", "10.00")

    resp = client.post("/v1/join", headers=tenant_headers(org, uuid4()))

    assert resp.status_code == 201
    assert resp.json()["tier_id"] is None


def test_joining_twice_returns_existing_membership(
    client: TestClient, org_and_owner
) -> None:
    org, _ = org_and_owner
    gold = create_test_tier(org.id, "Gold", "10.00")
    user_id = uuid4()
    add_test_member(org.id, user_id, Role.MODERATOR, tier_id=gold.id)

    resp = client.post("/v1/join", headers=tenant_headers(org, user_id))

    assert resp.status_code == 200
    assert resp.json()["role"] == "MODERATOR"
    assert resp.json()["tier_id"] == str(gold.id)


def test_joined_member_can_post(client: TestClient, org_and_owner) -> None:
    org, _ = org_and_owner
    create_test_channel(create_test_community(org.id), "general", is_public=True)
    user_id = uuid4()
    headers = tenant_headers(org, user_id)
    url = "/v1/community/channels/general/posts"

    assert client.post(url, json={"content": "hi"}, headers=headers).status_code == 403
    assert client.post("/v1/join", headers=headers).status_code == 201
    assert client.post(url, json={"content": "hi"}, headers=headers).status_code == 201


def test_join_requires_sign_in(client: TestClient, org_and_owner) -> None:
    org, _ = org_and_owner
    assert client.post("/v1/join", headers=tenant_headers(org)).status_code == 401


def test_owner_without_membership_row_cannot_join(
    client: TestClient, org_and_owner
) -> None:
    org, owner_id = org_and_owner
    membership_repo.remove(org.id, owner_id)

    resp = client.post("/v1/join", headers=tenant_headers(org, owner_id))

    assert resp.status_code == 409
    assert membership_repo.get(org.id, owner_id) is None
