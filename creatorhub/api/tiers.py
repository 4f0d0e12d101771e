"""Membership tier endpoints.

Dashboard routes manage an organization's catalog.  ``/v1/upgrade`` and
``/v1/join`` are member-facing and served on the tenant's own host.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from creatorhub.api.dependencies import (
    OrgAccess,
    Viewer,
    require_org_role,
    require_viewer_user,
    resolve_org_access,
)
from creatorhub.models.membership import Membership, MembershipStatus, Role
from creatorhub.models.tier import MembershipTier
from creatorhub.repos.store import membership_repo, tier_repo
from creatorhub.services.tiers import (
    TierInUseError,
    TierValidationError,
    ensure_deletable,
    join_tier,
    next_position,
    reorder,
    sorted_catalog,
    upgrade_options,
    validate_tier_fields,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tiers"])

_require_admin = require_org_role(Role.ADMIN)


# --- Pydantic schemas ---


class TierIn(BaseModel):
    name: str
    price: Decimal | str
    interval: str = "month"
    description: str | None = None
    features: list[str] = []


class TierPatchIn(BaseModel):
    name: str | None = None
    price: Decimal | str | None = None
    interval: str | None = None
    description: str | None = None
    features: list[str] | None = None
    is_active: bool | None = None


class TierOut(BaseModel):
    id: str
    name: str
    price: str
    interval: str
    position: int
    is_active: bool
    description: str | None
    features: list[str]


class TierOrderIn(BaseModel):
    tier_ids: list[UUID]


class UpgradeOptionOut(BaseModel):
    tier: TierOut
    is_current: bool
    is_upgrade: bool


class UpgradePageOut(BaseModel):
    organization: str
    current_tier_id: str | None
    options: list[UpgradeOptionOut]


def _tier_out(t: MembershipTier) -> TierOut:
    return TierOut(
        id=str(t.id),
        name=t.name,
        price=str(t.price),
        interval=t.interval.value,
        position=t.position,
        is_active=t.is_active,
        description=t.description,
        features=list(t.features),
    )


def _get_tier(access: OrgAccess, tier_id: UUID) -> MembershipTier:
    tier = tier_repo.get(tier_id)
    # Another organization's tier is reported exactly like a missing one.
    if tier is None or tier.organization_id != access.organization.id:
        raise HTTPException(status_code=404, detail="tier not found")
    return tier


# --- Dashboard endpoints ---


@router.get("/v1/orgs/{org_id}/tiers", response_model=list[TierOut])
def list_tiers(
    access: Annotated[OrgAccess, Depends(resolve_org_access)],
) -> list[TierOut]:
    return [
        _tier_out(t)
        for t in sorted_catalog(tier_repo.list_by_org(access.organization.id))
    ]


@router.post(
    "/v1/orgs/{org_id}/tiers",
    response_model=TierOut,
    status_code=status.HTTP_201_CREATED,
)
def create_tier(
    body: TierIn,
    access: Annotated[OrgAccess, Depends(_require_admin)],
) -> TierOut:
    try:
        fields = validate_tier_fields(
            name=body.name,
            price=body.price,
            interval=body.interval,
            description=body.description,
            features=body.features,
        )
    except TierValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from None

    oid = access.organization.id
    tier = MembershipTier.new(
        organization_id=oid,
        name=fields.name,
        price=fields.price,
        interval=fields.interval,
        position=next_position(tier_repo.list_by_org(oid)),
        description=fields.description,
        features=fields.features,
    )
    tier_repo.add(tier)
    logger.info("Created tier=%s org=%s price=%s", tier.id, oid, tier.price)
    return _tier_out(tier)


@router.put("/v1/orgs/{org_id}/tiers/order", response_model=list[TierOut])
def reorder_tiers(
    body: TierOrderIn,
    access: Annotated[OrgAccess, Depends(_require_admin)],
) -> list[TierOut]:
    tiers = tier_repo.list_by_org(access.organization.id)
    try:
        positions = reorder(tiers, body.tier_ids)
    except TierValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from None

    for t in tiers:
        tier_repo.update(replace(t, position=positions[t.id]))
    return [
        _tier_out(t)
        for t in sorted_catalog(tier_repo.list_by_org(access.organization.id))
    ]


@router.patch("/v1/orgs/{org_id}/tiers/{tier_id}", response_model=TierOut)
def update_tier(
    tier_id: UUID,
    body: TierPatchIn,
    access: Annotated[OrgAccess, Depends(_require_admin)],
) -> TierOut:
    tier = _get_tier(access, tier_id)
    try:
        fields = validate_tier_fields(
            name=body.name if body.name is not None else tier.name,
            price=body.price if body.price is not None else tier.price,
            interval=(
                body.interval if body.interval is not None else tier.interval.value
            ),
            description=(
                body.description if body.description is not None else tier.description
            ),
            features=body.features if body.features is not None else tier.features,
        )
    except TierValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from None

    updated = replace(
        tier,
        name=fields.name,
        price=fields.price,
        interval=fields.interval,
        description=fields.description,
        features=fields.features,
        is_active=body.is_active if body.is_active is not None else tier.is_active,
    )
    tier_repo.update(updated)
    return _tier_out(updated)


@router.delete(
    "/v1/orgs/{org_id}/tiers/{tier_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_tier(
    tier_id: UUID,
    access: Annotated[OrgAccess, Depends(_require_admin)],
) -> None:
    tier = _get_tier(access, tier_id)
    try:
        ensure_deletable(tier, membership_repo.count_by_tier(tier.id))
    except TierInUseError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None
    tier_repo.remove(tier.id)
    logger.info("Deleted tier=%s org=%s", tier.id, access.organization.id)


# --- Member-facing ---


@router.get("/v1/upgrade", response_model=UpgradePageOut)
def upgrade_page(
    viewer: Annotated[Viewer, Depends(require_viewer_user)],
) -> UpgradePageOut:
    """Active tiers of the tenant, flagged current / upgrade for the viewer."""
    current_tier_id = viewer.membership.tier_id if viewer.membership else None
    options = upgrade_options(
        tier_repo.list_by_org(viewer.organization.id), current_tier_id
    )
    return UpgradePageOut(
        organization=viewer.organization.name,
        current_tier_id=str(current_tier_id) if current_tier_id else None,
        options=[
            UpgradeOptionOut(
                tier=_tier_out(o.tier), is_current=o.is_current, is_upgrade=o.is_upgrade
            )
            for o in options
        ],
    )


class JoinOut(BaseModel):
    membership_id: str
    organization: str
    role: str
    status: str
    tier_id: str | None


def _join_out(viewer: Viewer, m: Membership) -> JoinOut:
    return JoinOut(
        membership_id=str(m.id),
        organization=viewer.organization.slug,
        role=m.role.value,
        status=m.status.value,
        tier_id=str(m.tier_id) if m.tier_id else None,
    )


@router.post(
    "/v1/join", response_model=JoinOut, status_code=status.HTTP_201_CREATED
)
def join_organization(
    response: Response,
    viewer: Annotated[Viewer, Depends(require_viewer_user)],
) -> JoinOut:
    """Join the tenant as an active MEMBER on its free tier.

    Joining again returns the existing membership unchanged with 200.
    """
    if viewer.membership is not None:
        response.status_code = status.HTTP_200_OK
        return _join_out(viewer, viewer.membership)
    if viewer.is_owner:
        raise HTTPException(status_code=409, detail="owner already belongs")
    if viewer.user_id is None:
        raise HTTPException(status_code=500, detail="viewer not resolved")

    oid = viewer.organization.id
    tier = join_tier(tier_repo.list_by_org(oid))
    membership = Membership.new(
        user_id=viewer.user_id,
        organization_id=oid,
        role=Role.MEMBER,
        tier_id=tier.id if tier is not None else None,
        status=MembershipStatus.ACTIVE,
    )
    try:
        membership_repo.add(membership)
    except ValueError:
        # Concurrent join landed first.
        existing = membership_repo.get(oid, viewer.user_id)
        if existing is None:
            raise
        response.status_code = status.HTTP_200_OK
        return _join_out(viewer, existing)
    logger.info(
        "User=%s joined org=%s tier=%s",
        viewer.user_id,
        oid,
        tier.id if tier is not None else None,
    )
    return _join_out(viewer, membership)
