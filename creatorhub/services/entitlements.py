"""Entitlement evaluation: can this viewer see (or post in) this resource?

Every channel, course, lesson and livestream view goes through the same
small rule, applied in order:

  1. The organization owner sees everything.
  2. Without an ACTIVE membership, only public resources are visible.
  3. Public resources are visible.
  4. A resource with no tier restriction is open to every active member.
  5. Otherwise the member's tier must be one of the resource's tiers.

Rule 4 treats an empty tier set as "all members", not "nobody".  Every
call site in the platform relies on that reading; flipping it would lock
members out of every channel created without explicit tiers.

All functions here are pure: no I/O, no logging, no metrics, never raise.
Callers translate False into a locked/upgrade prompt.  Fields are read
as attributes or, for mappings such as decoded JSON, as keys.  Missing
or malformed fields read as private and unrestricted.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from creatorhub.models.community import ChannelType
from creatorhub.models.course import CourseAccessType
from creatorhub.models.membership import MembershipStatus, Role

T = TypeVar("T")

_WRITERS = frozenset({Role.OWNER, Role.ADMIN})


@dataclass(frozen=True, slots=True)
class ResourceAccess:
    """Visibility record of a gated resource."""

    is_public: bool = False
    access_tier_ids: frozenset[Any] = frozenset()


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _tier_ids(resource: Any) -> frozenset[str]:
    raw = _field(resource, "access_tier_ids")
    if raw is None or isinstance(raw, (str, bytes)):
        return frozenset()
    try:
        return frozenset(str(t) for t in raw if t is not None)
    except TypeError:
        return frozenset()


def _is_public(resource: Any) -> bool:
    return _field(resource, "is_public", False) is True


def _is_active(membership: Any) -> bool:
    if membership is None:
        return False
    return _field(membership, "status") == MembershipStatus.ACTIVE


def can_access_resource(resource: Any, membership: Any, is_org_owner: bool) -> bool:
    if is_org_owner:
        return True

    if not _is_active(membership):
        return _is_public(resource)

    if _is_public(resource):
        return True

    tier_ids = _tier_ids(resource)
    if not tier_ids:
        return True

    tier_id = _field(membership, "tier_id")
    return tier_id is not None and str(tier_id) in tier_ids


def can_post_in_channel(channel: Any, membership: Any, is_org_owner: bool) -> bool:
    """Write access: view access, plus a discussion channel or an admin role.

    Announcements, events, resources and livestream channels are read-only
    for members and moderators whatever their tier.
    """
    if not can_access_resource(channel, membership, is_org_owner):
        return False
    if _field(channel, "type") == ChannelType.DISCUSSION:
        return True
    if is_org_owner:
        return True
    return Role.parse(_field(membership, "role")) in _WRITERS


def course_access(course: Any) -> ResourceAccess:
    """Express a course's access type as a visibility record."""
    if _field(course, "access_type") == CourseAccessType.FREE:
        return ResourceAccess(is_public=True)
    return ResourceAccess(is_public=False, access_tier_ids=_tier_ids(course))


def can_access_course(
    course: Any,
    membership: Any,
    is_org_owner: bool,
    *,
    enrolled: bool = False,
) -> bool:
    if can_access_resource(course_access(course), membership, is_org_owner):
        return True
    # A one-off purchase unlocks a paid course without a qualifying tier.
    return enrolled and _field(course, "access_type") == CourseAccessType.PAID


def can_view_lesson(
    lesson: Any,
    course: Any,
    membership: Any,
    is_org_owner: bool,
    *,
    enrolled: bool = False,
) -> bool:
    if _field(lesson, "is_free_preview", False) is True:
        return True
    return can_access_course(course, membership, is_org_owner, enrolled=enrolled)


def can_view_livestream(livestream: Any, membership: Any, is_org_owner: bool) -> bool:
    return can_access_resource(livestream, membership, is_org_owner)


def visible_resources(
    resources: Iterable[T], membership: Any, is_org_owner: bool
) -> list[tuple[T, bool]]:
    """Pair each resource with its unlocked flag, preserving order.

    Listing pages show locked items with an upgrade prompt rather than
    hiding them, so nothing is filtered out here.
    """
    return [
        (resource, can_access_resource(resource, membership, is_org_owner))
        for resource in resources
    ]
