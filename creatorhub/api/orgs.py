"""Organization management endpoints (creator dashboard).

Organizations are addressed by id in the path.  The caller's standing is
resolved per request from their membership; the owner always ranks as
OWNER, even without a membership row.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from creatorhub.api.dependencies import (
    OrgAccess,
    require_org_role,
    require_user,
    resolve_org_access,
)
from creatorhub.models.community import Channel, ChannelType, Community
from creatorhub.models.membership import Membership, MembershipStatus, Role
from creatorhub.models.organization import FEATURES, Organization
from creatorhub.models.principal import Principal
from creatorhub.repos.store import community_repo, membership_repo, org_repo, tier_repo
from creatorhub.services.cache import cache_service
from creatorhub.services.permissions import (
    can_assign_role,
    can_manage_roles,
    role_badge,
)
from creatorhub.services.subdomains import (
    SubdomainUnavailableError,
    check_subdomain,
    ensure_available,
    organization_url,
    unique_slug,
)
from creatorhub.services.tenancy import invalidate_organization

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/orgs", tags=["orgs"])
subdomain_router = APIRouter(prefix="/v1/subdomains", tags=["orgs"])

_require_moderator = require_org_role(Role.MODERATOR)
_require_admin = require_org_role(Role.ADMIN)

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def _is_taken(slug: str) -> bool:
    return org_repo.get_by_slug(slug) is not None


# --- Pydantic schemas ---


class OrgCreateIn(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    slug: str | None = None
    description: str | None = None


class OrgSettingsOut(BaseModel):
    primary_color: str
    use_case: str | None
    features: list[str]
    onboarding_complete: bool
    show_tour: bool
    community_public: bool
    show_member_count: bool
    logo: str | None


class OrgOut(BaseModel):
    id: str
    name: str
    slug: str
    url: str
    description: str | None
    custom_domain: str | None
    custom_domain_verified: bool
    settings: OrgSettingsOut
    your_role: str | None = None


class MemberOut(BaseModel):
    user_id: str
    role: str
    status: str
    tier_id: str | None
    badge: str


class AddMemberIn(BaseModel):
    user_id: UUID
    role: str = "MEMBER"
    tier_id: UUID | None = None


class UpdateRoleIn(BaseModel):
    role: str


class SettingsPatchIn(BaseModel):
    primary_color: str | None = None
    features: list[str] | None = None
    community_public: bool | None = None
    show_member_count: bool | None = None
    logo: str | None = None
    custom_domain: str | None = None


class SubdomainCheckOut(BaseModel):
    subdomain: str
    available: bool
    error: str | None = None
    url: str | None = None


def _org_out(org: Organization, role: Role | None = None) -> OrgOut:
    s = org.settings
    return OrgOut(
        id=str(org.id),
        name=org.name,
        slug=org.slug,
        url=organization_url(
            org.slug, org.custom_domain if org.custom_domain_verified else None
        ),
        description=org.description,
        custom_domain=org.custom_domain,
        custom_domain_verified=org.custom_domain_verified,
        settings=OrgSettingsOut(
            primary_color=s.primary_color,
            use_case=s.use_case,
            features=list(s.features),
            onboarding_complete=s.onboarding_complete,
            show_tour=s.show_tour,
            community_public=s.community_public,
            show_member_count=s.show_member_count,
            logo=s.logo,
        ),
        your_role=role.value if role is not None else None,
    )


def _member_out(m: Membership) -> MemberOut:
    return MemberOut(
        user_id=str(m.user_id),
        role=m.role.value,
        status=m.status.value,
        tier_id=str(m.tier_id) if m.tier_id else None,
        badge=role_badge(m.role).label,
    )


def _parse_role(raw: str) -> Role:
    try:
        return Role(raw.strip().upper())
    except ValueError:
        raise HTTPException(status_code=422, detail="invalid role") from None


def _manage_roles(
    access: Annotated[OrgAccess, Depends(resolve_org_access)],
) -> OrgAccess:
    """Adding and removing members takes an admin or the owner."""
    if not can_manage_roles(access.context):
        logger.warning(
            "Membership change denied: user=%s role=%s org=%s",
            access.context.user_id,
            access.context.role.value,
            access.organization.id,
        )
        raise HTTPException(status_code=403, detail="Insufficient org permissions")
    return access


# --- Endpoints ---


@router.post("", response_model=OrgOut, status_code=status.HTTP_201_CREATED)
def create_org(
    body: OrgCreateIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> OrgOut:
    """Create an organization.  The creator becomes its owner."""
    try:
        if body.slug:
            slug = ensure_available(body.slug.strip().lower(), _is_taken)
        else:
            slug = unique_slug(body.name, _is_taken)
    except SubdomainUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None

    org = Organization.new(
        name=body.name.strip(),
        slug=slug,
        owner_id=principal.user_id,
        description=body.description,
    )
    org_repo.add(org)
    membership_repo.add(
        Membership.new(
            user_id=principal.user_id,
            organization_id=org.id,
            role=Role.OWNER,
        )
    )

    # Members-only starter community; no tier restriction means every
    # active member can read it.
    community = Community.new(
        organization_id=org.id, name="General", slug="general", is_default=True
    )
    community_repo.add_community(community)
    for position, (slug_, name, kind) in enumerate(
        (
            ("announcements", "Announcements", ChannelType.ANNOUNCEMENTS),
            ("general", "General Discussion", ChannelType.DISCUSSION),
        )
    ):
        community_repo.add_channel(
            Channel.new(
                community_id=community.id,
                name=name,
                slug=slug_,
                type=kind,
                position=position,
            )
        )

    logger.info("Created org=%s slug=%s owner=%s", org.id, org.slug, principal.user_id)
    return _org_out(org, Role.OWNER)


@router.get("/{org_id}", response_model=OrgOut)
def get_org(
    access: Annotated[OrgAccess, Depends(resolve_org_access)],
) -> OrgOut:
    """Any member can view."""
    return _org_out(access.organization, access.context.role)


@router.get("/{org_id}/members", response_model=list[MemberOut])
def list_members(
    access: Annotated[OrgAccess, Depends(_require_moderator)],
) -> list[MemberOut]:
    members = membership_repo.list_by_org(access.organization.id)
    members.sort(key=lambda m: (-m.role.rank, m.joined_at))
    return [_member_out(m) for m in members]


@router.post(
    "/{org_id}/members",
    response_model=MemberOut,
    status_code=status.HTTP_201_CREATED,
)
def add_member(
    body: AddMemberIn,
    access: Annotated[OrgAccess, Depends(_manage_roles)],
) -> MemberOut:
    role = _parse_role(body.role)
    if role is Role.OWNER:
        raise HTTPException(status_code=422, detail="OWNER cannot be assigned")
    if role is not Role.MEMBER and not can_assign_role(access.context, role):
        raise HTTPException(status_code=403, detail="Only the owner assigns roles")

    oid = access.organization.id
    if body.tier_id is not None:
        tier = tier_repo.get(body.tier_id)
        if tier is None or tier.organization_id != oid:
            raise HTTPException(status_code=422, detail="unknown tier")

    if membership_repo.get(oid, body.user_id) is not None:
        raise HTTPException(status_code=409, detail="user is already a member")

    membership = Membership.new(
        user_id=body.user_id,
        organization_id=oid,
        role=role,
        tier_id=body.tier_id,
        status=MembershipStatus.ACTIVE,
    )
    membership_repo.add(membership)
    logger.info(
        "Added user=%s to org=%s role=%s", body.user_id, oid, role.value
    )
    return _member_out(membership)


@router.patch("/{org_id}/members/{user_id}", response_model=MemberOut)
def update_member_role(
    user_id: UUID,
    body: UpdateRoleIn,
    access: Annotated[OrgAccess, Depends(resolve_org_access)],
) -> MemberOut:
    """Change a member's role.  Only the owner; ownership never moves here."""
    new_role = _parse_role(body.role)
    if not can_assign_role(access.context, new_role):
        logger.warning(
            "Role change denied: user=%s role=%s target=%s new_role=%s",
            access.context.user_id,
            access.context.role.value,
            user_id,
            new_role.value,
        )
        raise HTTPException(status_code=403, detail="Insufficient org permissions")
    if access.organization.is_owned_by(user_id):
        raise HTTPException(status_code=409, detail="cannot change the owner's role")

    updated = membership_repo.update_role(access.organization.id, user_id, new_role)
    if updated is None:
        raise HTTPException(status_code=404, detail="membership not found")
    logger.info(
        "Changed role of user=%s in org=%s to %s",
        user_id,
        access.organization.id,
        new_role.value,
    )
    return _member_out(updated)


@router.delete(
    "/{org_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def remove_member(
    user_id: UUID,
    access: Annotated[OrgAccess, Depends(_manage_roles)],
) -> None:
    if access.organization.is_owned_by(user_id):
        raise HTTPException(status_code=409, detail="cannot remove the owner")
    if not membership_repo.remove(access.organization.id, user_id):
        raise HTTPException(status_code=404, detail="membership not found")
    logger.info("Removed user=%s from org=%s", user_id, access.organization.id)


@router.patch("/{org_id}/settings", response_model=OrgOut)
async def update_settings(
    body: SettingsPatchIn,
    access: Annotated[OrgAccess, Depends(_require_admin)],
) -> OrgOut:
    org = access.organization
    changes: dict[str, object] = {}

    if body.primary_color is not None:
        if not _HEX_COLOR.match(body.primary_color):
            raise HTTPException(status_code=422, detail="invalid primary_color")
        changes["primary_color"] = body.primary_color
    if body.features is not None:
        unknown = [f for f in body.features if f not in FEATURES]
        if unknown or not body.features:
            raise HTTPException(status_code=422, detail="invalid features")
        changes["features"] = tuple(dict.fromkeys(body.features))
    if body.community_public is not None:
        changes["community_public"] = body.community_public
    if body.show_member_count is not None:
        changes["show_member_count"] = body.show_member_count
    if body.logo is not None:
        changes["logo"] = body.logo or None

    updated = replace(org, settings=org.settings.with_changes(**changes))

    if body.custom_domain is not None:
        domain = body.custom_domain.strip().lower() or None
        if domain != org.custom_domain:
            # DNS verification happens out of band; a new domain starts unverified.
            updated = replace(
                updated, custom_domain=domain, custom_domain_verified=False
            )
            await invalidate_organization(
                cache_service, custom_domain=org.custom_domain
            )

    org_repo.update(updated)
    logger.info("Updated settings for org=%s fields=%s", org.id, sorted(changes))
    return _org_out(updated, access.context.role)


@subdomain_router.get("/check", response_model=SubdomainCheckOut)
def check(
    subdomain: Annotated[str, Query(min_length=1)],
) -> SubdomainCheckOut:
    result = check_subdomain(subdomain.strip().lower(), _is_taken)
    return SubdomainCheckOut(
        subdomain=result.subdomain,
        available=result.available,
        error=result.error,
        url=result.url,
    )
