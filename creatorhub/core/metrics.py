"""Application metrics using the Prometheus client library.

All metrics are defined here so there is a single inventory of what the
service measures.  Other modules import a metric and increment/observe
it at the point of action.

Entitlement decisions are counted in the API layer, never inside
services/entitlements.py: the evaluator stays a pure function and the
router records what it decided to render.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (recorded by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Application-specific metrics
# ---------------------------------------------------------------------------

ENTITLEMENT_DECISIONS = Counter(
    "entitlement_decisions_total",
    "Access decisions made for tenant content",
    # resource: channel|course|lesson|livestream; outcome: granted|denied
    ["resource", "outcome"],
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)

BILLING_EVENTS = Counter(
    "billing_events_total",
    "Billing webhook events by type and outcome",
    ["type", "outcome"],  # outcome: processed|duplicate|ignored|failed
)

ONBOARDING_COMPLETIONS = Counter(
    "onboarding_completions_total",
    "Onboarding completion attempts by outcome",
    ["outcome"],  # "success" or "failure"
)


def record_decision(resource: str, granted: bool) -> bool:
    """Count an entitlement decision and hand the decision back unchanged."""
    ENTITLEMENT_DECISIONS.labels(
        resource=resource, outcome="granted" if granted else "denied"
    ).inc()
    return granted
