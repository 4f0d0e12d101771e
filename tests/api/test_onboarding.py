"""Onboarding completion and guided-tour endpoint tests."""

from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from creatorhub.models.organization import Organization
from creatorhub.repos.store import (
    community_repo,
    membership_repo,
    org_repo,
    tier_repo,
)
from tests.conftest import auth, tenant_headers


def _wizard_body(**overrides) -> dict:
    body = {
        "displayName": "Pastor Jo",
        "organizationName": "Grace Church",
        "useCase": "church",
        "features": ["community", "courses"],
        "primaryColor": "#4F46E5",
        "communityName": "Grace Community",
    }
    body.update(overrides)
    return body


def test_complete_creates_organization(client: TestClient) -> None:
    user_id = uuid4()

    resp = client.post("/v1/onboarding/complete", json=_wizard_body(), headers=auth(user_id))

    assert resp.status_code == 201
    body = resp.json()
    assert body["slug"] == "grace-church"
    assert body["url"] == "https://grace-church.creatorhub.localhost"
    assert body["channels"] == ["announcements", "general"]

    org = org_repo.get_by_slug("grace-church")
    assert org is not None
    assert str(org.id) == body["organizationId"]
    assert org.owner_id == user_id
    assert org.settings.onboarding_complete is True
    assert membership_repo.get(org.id, user_id) is not None
    assert tier_repo.get(UUID(body["freeTierId"])) is not None
    community = community_repo.get_default_community(org.id)
    assert community is not None and str(community.id) == body["communityId"]


def test_new_community_is_open_on_its_subdomain(client: TestClient) -> None:
    user_id = uuid4()
    client.post(
        "/v1/onboarding/complete",
        json=_wizard_body(subdomain="grace"),
        headers=auth(user_id),
    )
    org = org_repo.get_by_slug("grace")
    assert org is not None

    resp = client.get("/v1/community/channels", headers=tenant_headers(org))

    assert resp.status_code == 200
    assert [c["slug"] for c in resp.json() if not c["locked"]] == [
        "announcements",
        "general",
    ]


def test_snake_case_fields_accepted(client: TestClient) -> None:
    resp = client.post(
        "/v1/onboarding/complete",
        json={"organization_name": "Hope House", "use_case": "nonprofit"},
        headers=auth(uuid4()),
    )
    assert resp.status_code == 201
    assert resp.json()["slug"] == "hope-house"


def test_taken_subdomain_conflicts(client: TestClient) -> None:
    org_repo.add(Organization.new(name="Other", slug="grace", owner_id=uuid4()))

    resp = client.post(
        "/v1/onboarding/complete",
        json=_wizard_body(subdomain="grace"),
        headers=auth(uuid4()),
    )

    assert resp.status_code == 409
    assert org_repo.get_by_slug("grace-church") is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"organizationName": "G"},
        {"useCase": None},
        {"features": []},
        {"primaryColor": "blue"},
        {"subdomain": "www"},
    ],
)
def test_invalid_wizard_data_rejected(client: TestClient, overrides: dict) -> None:
    resp = client.post(
        "/v1/onboarding/complete",
        json=_wizard_body(**overrides),
        headers=auth(uuid4()),
    )
    assert resp.status_code == 422
    assert org_repo._by_id == {}


def test_missing_organization_name_rejected(client: TestClient) -> None:
    resp = client.post(
        "/v1/onboarding/complete", json={"useCase": "church"}, headers=auth(uuid4())
    )
    assert resp.status_code == 422


def test_complete_requires_sign_in(client: TestClient) -> None:
    resp = client.post("/v1/onboarding/complete", json=_wizard_body())
    assert resp.status_code == 401


# --- Guided tour ---


def test_tour_dismiss_and_restart(client: TestClient) -> None:
    user_id = uuid4()
    client.post("/v1/onboarding/complete", json=_wizard_body(), headers=auth(user_id))

    resp = client.post("/v1/onboarding/tour/dismiss", headers=auth(user_id))
    assert resp.status_code == 200
    assert resp.json()["showTour"] is False
    org = org_repo.get_by_slug("grace-church")
    assert org is not None and org.settings.show_tour is False

    resp = client.post("/v1/onboarding/tour/restart", headers=auth(user_id))
    assert resp.status_code == 200
    assert resp.json() == {"organizationId": str(org.id), "showTour": True}


def test_tour_without_organization_is_404(client: TestClient) -> None:
    resp = client.post("/v1/onboarding/tour/dismiss", headers=auth(uuid4()))
    assert resp.status_code == 404
