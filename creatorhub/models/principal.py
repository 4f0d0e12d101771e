from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from creatorhub.models.membership import MembershipStatus, Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated bearer token.

    The identity provider issues the token; this service only consumes the
    resolved subject id.  Carried through the request via FastAPI's
    dependency system.
    """

    user_id: UUID
    roles: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class PermissionContext:
    """A viewer's standing inside one organization.

    Built by services.permissions.build_permission_context from the
    organization row and the viewer's membership (if any).  ``status`` is
    None for an owner that has no membership row.
    """

    user_id: UUID
    organization_id: UUID
    role: Role
    tier_id: UUID | None = None
    is_owner: bool = False
    status: MembershipStatus | None = None
