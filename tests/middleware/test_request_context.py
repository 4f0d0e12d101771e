"""Tests for the request context middleware.

Verifies that every response gets an X-Request-ID header (generated or
echoed from the request), and that the tenant host is read the way the
edge proxy forwards it.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from creatorhub.middleware.request_context import request_host


def _request(headers: dict[str, str]) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        }
    )


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    """Error responses (401 here) still carry an X-Request-ID header."""
    resp = client.post("/v1/onboarding/tour/dismiss")
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_request_is_logged_with_tenant_host(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="creatorhub.middleware.request_context"):
        client.get(
            "/health",
            headers={
                "X-Request-ID": "req-42",
                "X-Forwarded-Host": "grace.creatorhub.localhost",
            },
        )

    records = [r for r in caplog.records if getattr(r, "request_id", None) == "req-42"]
    assert records
    assert records[0].tenant_host == "grace.creatorhub.localhost"  # type: ignore[attr-defined]
    assert records[0].status_code == 200  # type: ignore[attr-defined]


@pytest.mark.parametrize(
    "headers,expected",
    [
        ({"Host": "grace.creatorhub.localhost:8000"}, "grace.creatorhub.localhost"),
        (
            {"Host": "internal:8000", "X-Forwarded-Host": "Grace.CreatorHub.localhost"},
            "grace.creatorhub.localhost",
        ),
        ({"X-Forwarded-Host": "community.grace.org, proxy.internal"}, "community.grace.org"),
        ({}, ""),
    ],
)
def test_request_host(headers: dict[str, str], expected: str) -> None:
    assert request_host(_request(headers)) == expected
