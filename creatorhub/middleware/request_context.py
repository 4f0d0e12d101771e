"""Request context middleware: request IDs, tenant host and timing.

Every request gets an ID (taken from X-Request-ID or generated) stored in
a ContextVar, so any log line emitted while serving it carries the same
request_id regardless of which module logged it.  ContextVars rather than
thread-locals because concurrent async requests share one thread.

The tenant host (X-Forwarded-Host, then Host) is stored alongside it: the
tenant is resolved lazily by services.tenancy, but the raw host is useful
on every log line when debugging a single community's traffic.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
tenant_host_var: ContextVar[str] = ContextVar("tenant_host", default="-")


_base_record_factory = logging.getLogRecordFactory()


def _record_with_context(*args, **kwargs) -> logging.LogRecord:
    """Attach the current request's context to every LogRecord.

    A record factory rather than a root-logger filter: filters on the root
    logger never see records propagated up from module loggers.
    """
    record = _base_record_factory(*args, **kwargs)
    record.request_id = request_id_var.get()  # type: ignore[attr-defined]
    record.tenant_host = tenant_host_var.get()  # type: ignore[attr-defined]
    return record


# Guard against wrapping twice across module reloads.
if getattr(_base_record_factory, "__name__", "") != _record_with_context.__name__:
    logging.setLogRecordFactory(_record_with_context)


def request_host(request: Request) -> str:
    """Return the host the client addressed, without port, lowercased."""
    raw = request.headers.get("x-forwarded-host") or request.headers.get("host") or ""
    # X-Forwarded-Host may carry a proxy chain: the first entry is the client's.
    host = raw.split(",")[0].strip().lower()
    return host.split(":")[0]


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, record the tenant host, time and log each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        tenant_host_var.set(request_host(request) or "-")

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
