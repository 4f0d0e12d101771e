from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from creatorhub.core.config import SETTINGS
from creatorhub.main import app
from creatorhub.models.community import Channel, ChannelType, Community
from creatorhub.models.membership import Membership, MembershipStatus, Role
from creatorhub.models.organization import Organization
from creatorhub.models.tier import MembershipTier
from creatorhub.repos.store import (
    billing_event_repo,
    community_repo,
    course_repo,
    livestream_repo,
    membership_repo,
    org_repo,
    post_repo,
    tier_repo,
)
from creatorhub.services import token_service
from creatorhub.services.cache import cache_service

# Ensure repo root is on sys.path so `import creatorhub` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_org_state() -> None:
    """Clear organization, membership and tier repos between tests."""
    org_repo._by_id.clear()
    org_repo._by_slug.clear()
    membership_repo._store.clear()
    tier_repo._store.clear()


@pytest.fixture(autouse=True)
def reset_content_state() -> None:
    community_repo._communities.clear()
    community_repo._channels.clear()
    post_repo._posts.clear()
    post_repo._comments.clear()
    course_repo._courses.clear()
    course_repo._lessons.clear()
    course_repo._enrollments.clear()
    course_repo._completions.clear()
    livestream_repo._store.clear()


@pytest.fixture(autouse=True)
def reset_billing_state() -> None:
    billing_event_repo._store.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear the tenant cache so a host never resolves to a deleted org."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(user_id: UUID | str | None = None, roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(
        sub=str(user_id or uuid4()), roles=roles
    )


def auth(user_id: UUID | str) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(user_id)}"}


# ---------------------------------------------------------------------------
# Tenant test helpers
# ---------------------------------------------------------------------------


def tenant_headers(org: Organization, user_id: UUID | None = None) -> dict[str, str]:
    """Headers addressing ``org``'s subdomain, signed in as ``user_id`` if given."""
    headers = {"X-Forwarded-Host": f"{org.slug}.{SETTINGS.subdomain_base}"}
    if user_id is not None:
        headers.update(auth(user_id))
    return headers


def create_test_org(
    slug: str = "test-org", owner_id: UUID | None = None
) -> Organization:
    """Create and persist an org plus the owner's membership."""
    owner_id = owner_id or uuid4()
    org = Organization.new(
        name=slug.replace("-", " ").title(), slug=slug, owner_id=owner_id
    )
    org_repo.add(org)
    membership_repo.add(
        Membership.new(user_id=owner_id, organization_id=org.id, role=Role.OWNER)
    )
    return org


def add_test_member(
    org_id: UUID,
    user_id: UUID,
    role: Role = Role.MEMBER,
    *,
    tier_id: UUID | None = None,
    status: MembershipStatus = MembershipStatus.ACTIVE,
) -> Membership:
    m = Membership.new(
        user_id=user_id,
        organization_id=org_id,
        role=role,
        tier_id=tier_id,
        status=status,
    )
    membership_repo.add(m)
    return m


def create_test_tier(
    org_id: UUID, name: str = "Gold", price: str = "10.00", position: int = 0
) -> MembershipTier:
    tier = MembershipTier.new(
        organization_id=org_id, name=name, price=Decimal(price), position=position
    )
    tier_repo.add(tier)
    return tier


def create_test_community(org_id: UUID) -> Community:
    community = Community.new(
        organization_id=org_id, name="General", slug="general", is_default=True
    )
    community_repo.add_community(community)
    return community


def create_test_channel(
    community: Community,
    slug: str,
    *,
    type: ChannelType = ChannelType.DISCUSSION,
    is_public: bool = False,
    access_tier_ids: frozenset[UUID] = frozenset(),
) -> Channel:
    channel = Channel.new(
        community_id=community.id,
        name=slug.title(),
        slug=slug,
        type=type,
        is_public=is_public,
        access_tier_ids=access_tier_ids,
        position=len(community_repo.list_channels(community.id)),
    )
    community_repo.add_channel(channel)
    return channel
