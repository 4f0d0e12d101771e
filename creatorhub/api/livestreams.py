"""Livestream endpoints.

The playback id is only handed out once the viewer passes the entitlement
check; a locked stream still reveals its title so the upgrade prompt has
something to show.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from creatorhub.api.dependencies import (
    OrgAccess,
    Viewer,
    check_access,
    locked,
    require_org_role,
    resolve_viewer,
)
from creatorhub.models.livestream import Livestream
from creatorhub.models.membership import Role
from creatorhub.repos.store import livestream_repo, tier_repo
from creatorhub.services.entitlements import can_view_livestream

logger = logging.getLogger(__name__)

router = APIRouter(tags=["livestreams"])

_require_admin = require_org_role(Role.ADMIN)


class LivestreamOut(BaseModel):
    id: str
    title: str
    status: str
    is_public: bool
    scheduled_for: int | None
    playback_id: str | None


class LivestreamCreateIn(BaseModel):
    title: str = Field(min_length=2, max_length=255)
    is_public: bool = False
    access_tier_ids: list[UUID] = []
    playback_id: str | None = None
    scheduled_for: int | None = None


def _livestream_out(stream: Livestream) -> LivestreamOut:
    return LivestreamOut(
        id=str(stream.id),
        title=stream.title,
        status=stream.status.value,
        is_public=stream.is_public,
        scheduled_for=stream.scheduled_for,
        playback_id=stream.playback_id,
    )


@router.get("/v1/live/{stream_id}", response_model=LivestreamOut)
def get_livestream(
    stream_id: UUID,
    viewer: Annotated[Viewer, Depends(resolve_viewer)],
) -> LivestreamOut:
    stream = livestream_repo.get(stream_id)
    if stream is None or stream.organization_id != viewer.organization.id:
        raise HTTPException(status_code=404, detail="livestream not found")

    granted = can_view_livestream(stream, viewer.membership, viewer.is_owner)
    if not check_access("livestream", granted, viewer, stream):
        raise locked(f"Upgrade your membership to watch {stream.title}")
    return _livestream_out(stream)


@router.post(
    "/v1/orgs/{org_id}/livestreams",
    response_model=LivestreamOut,
    status_code=status.HTTP_201_CREATED,
)
def create_livestream(
    body: LivestreamCreateIn,
    access: Annotated[OrgAccess, Depends(_require_admin)],
) -> LivestreamOut:
    oid = access.organization.id
    for tier_id in body.access_tier_ids:
        tier = tier_repo.get(tier_id)
        if tier is None or tier.organization_id != oid:
            raise HTTPException(status_code=422, detail="unknown tier")

    stream = Livestream.new(
        organization_id=oid,
        title=body.title.strip(),
        is_public=body.is_public,
        access_tier_ids=frozenset(body.access_tier_ids),
        playback_id=body.playback_id,
        scheduled_for=body.scheduled_for,
    )
    livestream_repo.add(stream)
    logger.info("Scheduled livestream=%s org=%s", stream.id, oid)
    return _livestream_out(stream)
