"""Billing webhook verification and event processing tests."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from creatorhub.models.course import Course, CourseAccessType
from creatorhub.models.membership import Membership, MembershipStatus
from creatorhub.models.organization import Organization
from creatorhub.repos.billing_event_repo import InMemoryBillingEventRepo
from creatorhub.repos.course_repo import InMemoryCourseRepo
from creatorhub.repos.membership_repo import InMemoryMembershipRepo
from creatorhub.repos.org_repo import InMemoryOrgRepo
from creatorhub.services.billing import (
    BillingEventProcessor,
    InvalidSignatureError,
    sign_payload,
    verify_signature,
)

SECRET = "whsec_test"


def _sample(event_type: str, outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "billing_events_total", labels={"type": event_type, "outcome": outcome}
    )
    return value if value is not None else 0.0


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


def test_signature_roundtrip() -> None:
    body = b'{"id":"evt_1"}'
    header = sign_payload(body, SECRET, timestamp=1_700_000_000)
    verify_signature(body, header, SECRET, now=1_700_000_100)


@pytest.mark.parametrize(
    "header",
    [
        None,
        "",
        "v1=abc",
        "t=notanumber,v1=abc",
        "t=1700000000",
    ],
)
def test_malformed_headers_rejected(header) -> None:
    with pytest.raises(InvalidSignatureError):
        verify_signature(b"{}", header, SECRET, now=1_700_000_000)


def test_tampered_body_rejected() -> None:
    header = sign_payload(b'{"amount":1}', SECRET, timestamp=1_700_000_000)
    with pytest.raises(InvalidSignatureError):
        verify_signature(b'{"amount":1000}', header, SECRET, now=1_700_000_000)


def test_wrong_secret_rejected() -> None:
    header = sign_payload(b"{}", "other", timestamp=1_700_000_000)
    with pytest.raises(InvalidSignatureError):
        verify_signature(b"{}", header, SECRET, now=1_700_000_000)


def test_stale_timestamp_rejected() -> None:
    header = sign_payload(b"{}", SECRET, timestamp=1_700_000_000)
    with pytest.raises(InvalidSignatureError):
        verify_signature(b"{}", header, SECRET, now=1_700_000_301)


def test_any_matching_v1_accepted() -> None:
    header = sign_payload(b"{}", SECRET, timestamp=1_700_000_000)
    rotated = header.replace("v1=", "v1=deadbeef,v1=")
    verify_signature(b"{}", rotated, SECRET, now=1_700_000_000)


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------


class _World:
    def __init__(self) -> None:
        self.events = InMemoryBillingEventRepo()
        self.memberships = InMemoryMembershipRepo()
        self.orgs = InMemoryOrgRepo()
        self.courses = InMemoryCourseRepo()
        self.processor = BillingEventProcessor(
            events=self.events,
            memberships=self.memberships,
            orgs=self.orgs,
            courses=self.courses,
        )
        self.org = Organization.new(name="Grace", slug="grace", owner_id=uuid4())
        self.orgs.add(self.org)


def _event(event_type: str, obj: dict, event_id: str | None = None) -> dict:
    return {
        "id": event_id or f"evt_{uuid4().hex}",
        "type": event_type,
        "data": {"object": obj},
    }


def _membership_checkout(world: _World, user_id, tier_id) -> dict:
    return _event(
        "checkout.session.completed",
        {
            "subscription": "sub_123",
            "customer": "cus_9",
            "metadata": {
                "type": "membership",
                "userId": str(user_id),
                "organizationId": str(world.org.id),
                "tierId": str(tier_id),
            },
        },
    )


def test_membership_checkout_creates_active_membership() -> None:
    world = _World()
    user_id, tier_id = uuid4(), uuid4()

    world.processor.process(_membership_checkout(world, user_id, tier_id))

    m = world.memberships.get(world.org.id, user_id)
    assert m is not None
    assert m.tier_id == tier_id
    assert m.status is MembershipStatus.ACTIVE
    assert m.subscription_id == "sub_123"
    assert m.customer_id == "cus_9"


def test_membership_checkout_upgrades_existing_member() -> None:
    world = _World()
    user_id, tier_id = uuid4(), uuid4()
    world.memberships.add(
        Membership.new(
            user_id=user_id,
            organization_id=world.org.id,
            status=MembershipStatus.CANCELLED,
        )
    )

    world.processor.process(_membership_checkout(world, user_id, tier_id))

    m = world.memberships.get(world.org.id, user_id)
    assert m is not None
    assert m.status is MembershipStatus.ACTIVE
    assert m.tier_id == tier_id


def test_course_purchase_enrolls_buyer() -> None:
    world = _World()
    course = Course.new(
        organization_id=world.org.id,
        slug="bible-101",
        title="Bible 101",
        access_type=CourseAccessType.PAID,
        price=Decimal("49.00"),
    )
    world.courses.add(course)
    user_id = uuid4()

    world.processor.process(
        _event(
            "checkout.session.completed",
            {
                "amount_total": 4900,
                "payment_intent": "pi_1",
                "metadata": {
                    "type": "course_purchase",
                    "userId": str(user_id),
                    "courseId": str(course.id),
                },
            },
        )
    )

    enrollment = world.courses.get_enrollment(user_id, course.id)
    assert enrollment is not None
    assert enrollment.paid_amount == Decimal("49")
    assert enrollment.payment_reference == "pi_1"


@pytest.mark.parametrize(
    "processor_status,expected",
    [
        ("active", MembershipStatus.ACTIVE),
        ("trialing", MembershipStatus.ACTIVE),
        ("past_due", MembershipStatus.PAST_DUE),
        ("paused", MembershipStatus.PAUSED),
        ("canceled", MembershipStatus.CANCELLED),
        ("unpaid", MembershipStatus.CANCELLED),
        ("something_new", MembershipStatus.ACTIVE),
    ],
)
def test_subscription_status_sync(processor_status, expected) -> None:
    world = _World()
    user_id = uuid4()
    world.memberships.add(
        replace(
            Membership.new(user_id=user_id, organization_id=world.org.id),
            subscription_id="sub_1",
        )
    )

    world.processor.process(
        _event(
            "customer.subscription.updated",
            {
                "id": "sub_1",
                "status": processor_status,
                "current_period_end": 1_800_000_000,
                "cancel_at_period_end": True,
            },
        )
    )

    m = world.memberships.get(world.org.id, user_id)
    assert m is not None
    assert m.status is expected
    assert m.current_period_end == 1_800_000_000
    assert m.cancel_at_period_end is True


def test_subscription_deleted_cancels_membership() -> None:
    world = _World()
    user_id = uuid4()
    world.memberships.add(
        replace(
            Membership.new(user_id=user_id, organization_id=world.org.id),
            subscription_id="sub_1",
            current_period_end=1_800_000_000,
        )
    )

    world.processor.process(_event("customer.subscription.deleted", {"id": "sub_1"}))

    m = world.memberships.get(world.org.id, user_id)
    assert m is not None
    assert m.status is MembershipStatus.CANCELLED
    assert m.subscription_id is None
    assert m.current_period_end is None


@pytest.mark.parametrize(
    "account,expected",
    [
        (
            {"details_submitted": True, "charges_enabled": True, "payouts_enabled": True},
            "active",
        ),
        ({"requirements": {"disabled_reason": "rejected.fraud"}}, "restricted"),
        ({"details_submitted": True}, "pending"),
    ],
)
def test_account_updated_sets_billing_status(account, expected) -> None:
    world = _World()
    world.orgs.update(replace(world.org, billing_account_id="acct_1"))

    world.processor.process(_event("account.updated", {"id": "acct_1", **account}))

    org = world.orgs.get_by_id(world.org.id)
    assert org is not None and org.billing_account_status == expected


def test_duplicate_event_is_acknowledged_without_reapplying() -> None:
    world = _World()
    user_id = uuid4()
    event = _membership_checkout(world, user_id, uuid4())

    first = world.processor.process(event)
    world.memberships.remove(world.org.id, user_id)
    before = _sample("checkout.session.completed", "duplicate")
    second = world.processor.process(event)

    assert first.already_processed is False
    assert second.already_processed is True
    assert world.memberships.get(world.org.id, user_id) is None
    assert _sample("checkout.session.completed", "duplicate") - before == 1


def test_unhandled_event_is_recorded_and_ignored() -> None:
    world = _World()
    result = world.processor.process(_event("invoice.paid", {}, "evt_x"))
    assert result.handled is False
    stored = world.events.get("evt_x")
    assert stored is not None and stored.processed is True


def test_handler_failure_is_stored_and_retried() -> None:
    world = _World()
    event = _event(
        "checkout.session.completed",
        {
            "metadata": {
                "type": "course_purchase",
                "userId": str(uuid4()),
                "courseId": str(uuid4()),
            }
        },
        "evt_fail",
    )
    before = _sample("checkout.session.completed", "failed")

    with pytest.raises(LookupError):
        world.processor.process(event)

    stored = world.events.get("evt_fail")
    assert stored is not None
    assert stored.processed is False
    assert "not found" in (stored.processing_error or "")
    assert _sample("checkout.session.completed", "failed") - before == 1

    # A redelivery is attempted again rather than skipped.
    with pytest.raises(LookupError):
        world.processor.process(event)


def test_event_without_id_rejected() -> None:
    with pytest.raises(ValueError):
        _World().processor.process({"type": "account.updated"})
