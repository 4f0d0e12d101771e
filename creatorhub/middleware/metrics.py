"""Prometheus metrics middleware.

Every request increments ACTIVE_REQUESTS while in flight, then records
REQUEST_COUNT and REQUEST_DURATION on completion.

Tenant routes embed org ids, channel slugs and lesson ids in the URL.
Labelling by raw path would create one time series per tenant object, so
the endpoint label is the matched route template
(``/v1/orgs/{org_id}/members``) whenever routing resolved one, and a
single ``<unmatched>`` label for requests that matched nothing (404s).
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from creatorhub.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

_UNMATCHED = "<unmatched>"


def _endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if template:
        return template
    return _UNMATCHED


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Scrapes must not inflate the request count.
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            duration = time.monotonic() - start
            ACTIVE_REQUESTS.dec()
            endpoint = _endpoint_label(request)
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(duration)

        return response
