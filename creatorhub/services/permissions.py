"""Role-based permissions inside an organization.

Roles form a total order MEMBER < MODERATOR < ADMIN < OWNER, compared by
rank.  A viewer without a context (not a member, not the owner) has no
role at all and every check below returns False.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, assert_never
from uuid import UUID

from creatorhub.models.membership import Membership, Role
from creatorhub.models.organization import Organization
from creatorhub.models.principal import PermissionContext


def build_permission_context(
    user_id: UUID | None,
    organization: Organization,
    membership: Membership | None,
) -> PermissionContext | None:
    """Resolve a viewer's standing in an organization.

    The organization owner is always OWNER, even without a membership row.
    """
    if user_id is None:
        return None

    is_owner = organization.is_owned_by(user_id)
    if membership is None:
        if not is_owner:
            return None
        return PermissionContext(
            user_id=user_id,
            organization_id=organization.id,
            role=Role.OWNER,
            is_owner=True,
        )

    return PermissionContext(
        user_id=user_id,
        organization_id=organization.id,
        role=Role.OWNER if is_owner else Role.parse(membership.role),
        tier_id=membership.tier_id,
        is_owner=is_owner,
        status=membership.status,
    )


def _role_of(context: Any) -> Role:
    return Role.parse(getattr(context, "role", None))


def has_role(context: PermissionContext | None, minimum_role: Role) -> bool:
    if context is None:
        return False
    return _role_of(context).at_least(minimum_role)


def can_modify_post(context: PermissionContext | None, post: Any) -> bool:
    """Authors may edit or delete their own posts; moderators any post."""
    if context is None:
        return False
    if getattr(post, "author_id", None) == context.user_id:
        return True
    return has_role(context, Role.MODERATOR)


def can_delete_comment(context: PermissionContext | None, comment: Any) -> bool:
    if context is None:
        return False
    if getattr(comment, "author_id", None) == context.user_id:
        return True
    return has_role(context, Role.MODERATOR)


def can_pin_post(context: PermissionContext | None) -> bool:
    return has_role(context, Role.MODERATOR)


def can_manage_roles(context: PermissionContext | None) -> bool:
    return has_role(context, Role.ADMIN)


def can_manage_community(context: PermissionContext | None) -> bool:
    return has_role(context, Role.ADMIN)


def can_assign_role(context: PermissionContext | None, new_role: Role) -> bool:
    """Only the owner changes roles, and ownership is never handed out here."""
    return has_role(context, Role.OWNER) and new_role is not Role.OWNER


@dataclass(frozen=True, slots=True)
class RoleBadge:
    label: str
    style: str


def role_badge(role: Role) -> RoleBadge:
    """Display badge for a member's role.  Plain members get no badge."""
    match role:
        case Role.OWNER:
            return RoleBadge(label="Creator", style="gold")
        case Role.ADMIN:
            return RoleBadge(label="Admin", style="red")
        case Role.MODERATOR:
            return RoleBadge(label="Mod", style="blue")
        case Role.MEMBER:
            return RoleBadge(label="", style="")
        case _:
            assert_never(role)
