from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from tests.conftest import auth, create_test_org

# ---- 404: undefined routes ----


def test_undefined_route_returns_404(client: TestClient) -> None:
    resp = client.get("/nonexistent")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Not Found"}


def test_undefined_nested_route_returns_404(client: TestClient) -> None:
    resp = client.get("/v2/community/channels")
    assert resp.status_code == 404


def test_malformed_org_id_returns_422(client: TestClient) -> None:
    resp = client.get("/v1/orgs/not-a-uuid", headers=auth(uuid4()))
    assert resp.status_code == 422


# ---- 405: wrong HTTP method on existing routes ----


def test_delete_org_returns_405(client: TestClient) -> None:
    owner_id = uuid4()
    org = create_test_org("grace", owner_id=owner_id)
    resp = client.delete(f"/v1/orgs/{org.id}", headers=auth(owner_id))
    assert resp.status_code == 405


def test_put_health_returns_405(client: TestClient) -> None:
    resp = client.put("/health", json={"status": "bad"})
    assert resp.status_code == 405


def test_get_billing_webhook_returns_405(client: TestClient) -> None:
    resp = client.get("/v1/webhooks/billing")
    assert resp.status_code == 405


def test_get_onboarding_complete_returns_405(client: TestClient) -> None:
    resp = client.get("/v1/onboarding/complete")
    assert resp.status_code == 405
