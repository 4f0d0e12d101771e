"""Module-level repository singletons.

Routers and services import these instead of constructing their own so
every request in the process sees the same data.  With DATABASE_URL set,
organizations, memberships and tiers live in PostgreSQL; everything else
(and everything, without a database) is held in memory.  Tests run
without a database and clear the in-memory stores between cases via the
autouse fixtures in tests/conftest.py.
"""

from __future__ import annotations

from creatorhub.db.engine import session_factory
from creatorhub.repos.billing_event_repo import InMemoryBillingEventRepo
from creatorhub.repos.community_repo import InMemoryCommunityRepo, InMemoryPostRepo
from creatorhub.repos.course_repo import InMemoryCourseRepo
from creatorhub.repos.livestream_repo import InMemoryLivestreamRepo
from creatorhub.repos.membership_repo import InMemoryMembershipRepo, MembershipRepo
from creatorhub.repos.org_repo import InMemoryOrgRepo, OrgRepo
from creatorhub.repos.pg_membership_repo import PgMembershipRepo
from creatorhub.repos.pg_org_repo import PgOrgRepo
from creatorhub.repos.pg_tier_repo import PgTierRepo
from creatorhub.repos.tier_repo import InMemoryTierRepo, TierRepo

org_repo: OrgRepo
membership_repo: MembershipRepo
tier_repo: TierRepo

if session_factory is not None:
    org_repo = PgOrgRepo(session_factory)
    membership_repo = PgMembershipRepo(session_factory)
    tier_repo = PgTierRepo(session_factory)
else:
    org_repo = InMemoryOrgRepo()
    membership_repo = InMemoryMembershipRepo()
    tier_repo = InMemoryTierRepo()

community_repo = InMemoryCommunityRepo()
post_repo = InMemoryPostRepo()
course_repo = InMemoryCourseRepo()
livestream_repo = InMemoryLivestreamRepo()
billing_event_repo = InMemoryBillingEventRepo()
