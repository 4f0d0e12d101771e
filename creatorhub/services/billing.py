"""Billing-processor webhooks: signature verification and state sync.

The processor is the source of truth for who has paid.  Its webhooks
move memberships between statuses and tiers, enroll course buyers, and
report the connection state of each organization's payout account.

Signature scheme (header ``Billing-Signature``)::

    t=<unix seconds>,v1=<hex HMAC-SHA256 of "<t>.<raw body>">

Events are recorded by id before they are applied.  A redelivered event
that was already applied is acknowledged without touching anything; one
that failed before is applied again.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any
from uuid import UUID

from creatorhub.core.metrics import BILLING_EVENTS
from creatorhub.models.billing import BillingEvent
from creatorhub.models.course import Enrollment
from creatorhub.models.membership import Membership, MembershipStatus
from creatorhub.repos.billing_event_repo import BillingEventRepo
from creatorhub.repos.course_repo import CourseRepo
from creatorhub.repos.membership_repo import MembershipRepo
from creatorhub.repos.org_repo import OrgRepo

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "Billing-Signature"
TOLERANCE_SECONDS = 300

SUBSCRIPTION_STATUS: dict[str, MembershipStatus] = {
    "active": MembershipStatus.ACTIVE,
    "trialing": MembershipStatus.ACTIVE,
    "past_due": MembershipStatus.PAST_DUE,
    "paused": MembershipStatus.PAUSED,
    "canceled": MembershipStatus.CANCELLED,
    "unpaid": MembershipStatus.CANCELLED,
}


class InvalidSignatureError(ValueError):
    pass


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


def _digest(secret: str, timestamp: int, body: bytes) -> str:
    signed = f"{timestamp}.".encode() + body
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def sign_payload(body: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a signature header value for ``body``."""
    ts = int(time.time()) if timestamp is None else timestamp
    return f"t={ts},v1={_digest(secret, ts, body)}"


def verify_signature(
    body: bytes,
    header: str | None,
    secret: str,
    *,
    now: int | None = None,
    tolerance: int = TOLERANCE_SECONDS,
) -> None:
    if not header:
        raise InvalidSignatureError("Missing signature")

    timestamp: int | None = None
    candidates: list[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise InvalidSignatureError("Malformed signature timestamp") from None
        elif key == "v1":
            candidates.append(value)

    if timestamp is None or not candidates:
        raise InvalidSignatureError("Malformed signature header")

    current = int(time.time()) if now is None else now
    if abs(current - timestamp) > tolerance:
        raise InvalidSignatureError("Signature timestamp outside tolerance")

    expected = _digest(secret, timestamp, body)
    if not any(hmac.compare_digest(expected, c) for c in candidates):
        raise InvalidSignatureError("Signature mismatch")


# ---------------------------------------------------------------------------
# Event processing
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ProcessResult:
    event_id: str
    type: str
    already_processed: bool = False
    handled: bool = True


class BillingEventProcessor:
    """Apply billing events to memberships, enrollments and organizations."""

    def __init__(
        self,
        *,
        events: BillingEventRepo,
        memberships: MembershipRepo,
        orgs: OrgRepo,
        courses: CourseRepo,
    ) -> None:
        self._events = events
        self._memberships = memberships
        self._orgs = orgs
        self._courses = courses

    def process(self, event: Mapping[str, Any]) -> ProcessResult:
        """Record and apply one event.

        Handler failures are stored on the event record and re-raised so
        the caller answers with an error and the processor redelivers.
        """
        event_id = str(event.get("id") or "")
        event_type = str(event.get("type") or "")
        if not event_id or not event_type:
            raise ValueError("event must carry an id and a type")

        existing = self._events.get(event_id)
        if existing is not None and existing.processed:
            BILLING_EVENTS.labels(type=event_type, outcome="duplicate").inc()
            logger.info("Skipping already processed event=%s", event_id)
            return ProcessResult(event_id, event_type, already_processed=True)

        self._events.record(
            BillingEvent(
                event_id=event_id, type=event_type, received_at=int(time.time())
            )
        )

        data = event.get("data")
        obj = data.get("object") if isinstance(data, Mapping) else None
        if not isinstance(obj, Mapping):
            obj = {}

        handler = self._handlers().get(event_type)
        try:
            if handler is not None:
                handler(obj)
            else:
                logger.info("Unhandled billing event type=%s", event_type)
        except Exception as exc:
            self._events.mark_failed(event_id, str(exc) or type(exc).__name__)
            BILLING_EVENTS.labels(type=event_type, outcome="failed").inc()
            logger.exception("Billing event=%s type=%s failed", event_id, event_type)
            raise

        self._events.mark_processed(event_id)
        outcome = "processed" if handler is not None else "ignored"
        BILLING_EVENTS.labels(type=event_type, outcome=outcome).inc()
        return ProcessResult(event_id, event_type, handled=handler is not None)

    def _handlers(self):
        return {
            "account.updated": self._account_updated,
            "checkout.session.completed": self._checkout_completed,
            "customer.subscription.created": self._subscription_updated,
            "customer.subscription.updated": self._subscription_updated,
            "customer.subscription.deleted": self._subscription_deleted,
        }

    # --- handlers ---

    def _account_updated(self, account: Mapping[str, Any]) -> None:
        account_id = account.get("id")
        org = self._orgs.get_by_billing_account(account_id) if account_id else None
        if org is None:
            logger.info("No organization for billing account=%s", account_id)
            return

        if (
            account.get("details_submitted")
            and account.get("charges_enabled")
            and account.get("payouts_enabled")
        ):
            status = "active"
        elif (account.get("requirements") or {}).get("disabled_reason"):
            status = "restricted"
        else:
            status = "pending"

        self._orgs.update(replace(org, billing_account_status=status))
        logger.info("Organization=%s billing account status=%s", org.id, status)

    def _checkout_completed(self, session: Mapping[str, Any]) -> None:
        metadata = session.get("metadata") or {}
        kind = metadata.get("type")
        user_id = _uuid(metadata.get("userId"))

        if kind == "course_purchase":
            course_id = _uuid(metadata.get("courseId"))
            if user_id is None or course_id is None:
                logger.warning("Course checkout without user/course metadata")
                return
            if self._courses.get(course_id) is None:
                raise LookupError(f"course {course_id} not found")
            amount = session.get("amount_total")
            self._courses.upsert_enrollment(
                Enrollment.new(
                    user_id=user_id,
                    course_id=course_id,
                    paid_amount=(
                        Decimal(amount) / 100 if amount is not None else None
                    ),
                    payment_reference=session.get("payment_intent"),
                )
            )
            logger.info("Enrolled user=%s in course=%s", user_id, course_id)
            return

        if kind == "membership":
            org_id = _uuid(metadata.get("organizationId"))
            tier_id = _uuid(metadata.get("tierId"))
            subscription_id = session.get("subscription")
            if None in (user_id, org_id, tier_id) or not subscription_id:
                logger.warning("Membership checkout with incomplete metadata")
                return

            current = self._memberships.get(org_id, user_id)
            if current is None:
                self._memberships.add(
                    replace(
                        Membership.new(
                            user_id=user_id, organization_id=org_id, tier_id=tier_id
                        ),
                        subscription_id=subscription_id,
                        customer_id=session.get("customer"),
                    )
                )
            else:
                self._memberships.update(
                    replace(
                        current,
                        tier_id=tier_id,
                        subscription_id=subscription_id,
                        customer_id=session.get("customer"),
                        status=MembershipStatus.ACTIVE,
                    )
                )
            logger.info(
                "Activated membership user=%s org=%s tier=%s", user_id, org_id, tier_id
            )
            return

        logger.info("Checkout session of type=%s needs no sync", kind)

    def _subscription_updated(self, subscription: Mapping[str, Any]) -> None:
        membership = self._memberships.get_by_subscription(str(subscription.get("id")))
        if membership is None:
            logger.info("No membership for subscription=%s", subscription.get("id"))
            return

        # Unknown processor statuses keep the member active, as the
        # processor only reports them for live subscriptions.
        status = SUBSCRIPTION_STATUS.get(
            str(subscription.get("status")), MembershipStatus.ACTIVE
        )
        self._memberships.update(
            replace(
                membership,
                status=status,
                current_period_end=subscription.get("current_period_end"),
                cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
            )
        )
        logger.info("Membership=%s status=%s", membership.id, status.value)

    def _subscription_deleted(self, subscription: Mapping[str, Any]) -> None:
        membership = self._memberships.get_by_subscription(str(subscription.get("id")))
        if membership is None:
            logger.info("No membership for subscription=%s", subscription.get("id"))
            return
        self._memberships.update(
            replace(
                membership,
                status=MembershipStatus.CANCELLED,
                subscription_id=None,
                current_period_end=None,
            )
        )
        logger.info("Cancelled membership=%s", membership.id)


def _uuid(value: Any) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None
