"""Billing-processor webhook receiver.

  Processor -> POST /v1/webhooks/billing (signed)
  -> verify signature against BILLING_WEBHOOK_SECRET
  -> record event by id, apply it, mark processed
  -> 200 {"received": true}

A 500 tells the processor to redeliver; the event record keeps the error.
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from creatorhub.core import config
from creatorhub.repos.store import (
    billing_event_repo,
    course_repo,
    membership_repo,
    org_repo,
)
from creatorhub.services.billing import (
    SIGNATURE_HEADER,
    BillingEventProcessor,
    InvalidSignatureError,
    verify_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])

processor = BillingEventProcessor(
    events=billing_event_repo,
    memberships=membership_repo,
    orgs=org_repo,
    courses=course_repo,
)


@router.post("/billing")
async def billing_webhook(request: Request) -> JSONResponse:
    secret = config.SETTINGS.billing_webhook_secret
    if not secret:
        logger.error("Billing webhook received but BILLING_WEBHOOK_SECRET is unset")
        raise HTTPException(status_code=503, detail="Webhook not configured")

    body = await request.body()
    try:
        verify_signature(body, request.headers.get(SIGNATURE_HEADER), secret)
    except InvalidSignatureError as e:
        logger.warning("Billing webhook rejected: %s", e)
        raise HTTPException(status_code=400, detail="Invalid signature") from None

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON") from None
    if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
        raise HTTPException(status_code=400, detail="Invalid event")

    try:
        result = processor.process(event)
    except Exception:
        logger.error("Billing webhook failed for event=%s", event["id"])
        return JSONResponse(
            status_code=500, content={"error": "Webhook handler failed"}
        )

    if result.already_processed:
        return JSONResponse({"received": True, "already_processed": True})
    return JSONResponse({"received": True})
