from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from uuid import UUID, uuid4


class Role(str, Enum):
    """Organization role.  Ordered by rank, never by string value."""

    MEMBER = "MEMBER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"
    OWNER = "OWNER"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def at_least(self, minimum: Role) -> bool:
        return self.rank >= minimum.rank

    @classmethod
    def parse(cls, value: object) -> Role:
        """Map any stored value to a Role; unknown or missing means MEMBER."""
        if isinstance(value, Role):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        return cls.MEMBER


_ROLE_RANK: dict[Role, int] = {
    Role.MEMBER: 1,
    Role.MODERATOR: 2,
    Role.ADMIN: 3,
    Role.OWNER: 4,
}


class MembershipStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    PAST_DUE = "PAST_DUE"


@dataclass(frozen=True, slots=True)
class Membership:
    id: UUID
    user_id: UUID
    organization_id: UUID
    role: Role = Role.MEMBER
    status: MembershipStatus = MembershipStatus.ACTIVE
    tier_id: UUID | None = None  # None = free/default tier
    joined_at: int = 0
    subscription_id: str | None = None
    customer_id: str | None = None
    current_period_end: int | None = None
    cancel_at_period_end: bool = False

    @staticmethod
    def new(
        *,
        user_id: UUID,
        organization_id: UUID,
        role: Role = Role.MEMBER,
        tier_id: UUID | None = None,
        status: MembershipStatus = MembershipStatus.ACTIVE,
    ) -> Membership:
        return Membership(
            id=uuid4(),
            user_id=user_id,
            organization_id=organization_id,
            role=role,
            status=status,
            tier_id=tier_id,
            joined_at=int(datetime.datetime.now(datetime.UTC).timestamp()),
        )

    @property
    def is_active(self) -> bool:
        return self.status is MembershipStatus.ACTIVE
