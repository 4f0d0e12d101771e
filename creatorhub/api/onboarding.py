"""Onboarding endpoints: wizard submission and guided-tour persistence.

The wizard posts its accumulated data once, camelCased as the client
holds it.  Everything the new organization needs is created as a unit by
``complete_onboarding``; this router only maps its errors onto HTTP.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from creatorhub.api.dependencies import require_user
from creatorhub.models.organization import DEFAULT_PRIMARY_COLOR
from creatorhub.models.principal import Principal
from creatorhub.repos.store import (
    community_repo,
    membership_repo,
    org_repo,
    tier_repo,
)
from creatorhub.services.onboarding import (
    DEFAULT_CHANNELS,
    DEFAULT_COMMUNITY_NAME,
    DEFAULT_FREE_TIER_NAME,
    OnboardingConflictError,
    OnboardingError,
    OnboardingPayload,
    OnboardingValidationError,
    complete_onboarding,
    dismiss_tour,
    restart_tour,
)
from creatorhub.services.subdomains import organization_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/onboarding", tags=["onboarding"])


# --- Pydantic schemas ---


class OnboardingIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    display_name: str = ""
    bio: str = ""
    organization_name: str
    organization_description: str = ""
    use_case: str | None = None
    features: list[str] = ["community"]
    primary_color: str = DEFAULT_PRIMARY_COLOR
    community_name: str = DEFAULT_COMMUNITY_NAME
    default_channels: list[str] = list(DEFAULT_CHANNELS)
    subdomain: str | None = None
    free_tier_name: str = DEFAULT_FREE_TIER_NAME

    def to_payload(self) -> OnboardingPayload:
        return OnboardingPayload(
            display_name=self.display_name.strip(),
            bio=self.bio.strip(),
            organization_name=self.organization_name.strip(),
            organization_description=self.organization_description.strip(),
            use_case=self.use_case,
            features=tuple(self.features),
            primary_color=self.primary_color,
            community_name=self.community_name.strip(),
            default_channels=tuple(self.default_channels),
            subdomain=self.subdomain.strip().lower() if self.subdomain else None,
            free_tier_name=self.free_tier_name.strip() or DEFAULT_FREE_TIER_NAME,
        )


class OnboardingOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    organization_id: str
    slug: str
    url: str
    community_id: str
    free_tier_id: str
    channels: list[str]


class TourStateOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    organization_id: str
    show_tour: bool


# --- Endpoints ---


@router.post(
    "/complete",
    response_model=OnboardingOut,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
def complete(
    body: OnboardingIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> OnboardingOut:
    try:
        result = complete_onboarding(
            principal.user_id,
            body.to_payload(),
            org_repo=org_repo,
            membership_repo=membership_repo,
            tier_repo=tier_repo,
            community_repo=community_repo,
        )
    except OnboardingValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from None
    except OnboardingConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None
    except OnboardingError as e:
        raise HTTPException(status_code=500, detail=str(e)) from None

    org = result.organization
    return OnboardingOut(
        organization_id=str(org.id),
        slug=org.slug,
        url=organization_url(org.slug),
        community_id=str(result.community.id),
        free_tier_id=str(result.free_tier.id),
        channels=[c.slug for c in result.channels],
    )


@router.post(
    "/tour/dismiss",
    response_model=TourStateOut,
    response_model_by_alias=True,
)
def dismiss(
    principal: Annotated[Principal, Depends(require_user)],
) -> TourStateOut:
    try:
        org = dismiss_tour(principal.user_id, org_repo)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return TourStateOut(organization_id=str(org.id), show_tour=org.settings.show_tour)


@router.post(
    "/tour/restart",
    response_model=TourStateOut,
    response_model_by_alias=True,
)
def restart(
    principal: Annotated[Principal, Depends(require_user)],
) -> TourStateOut:
    try:
        org = restart_tour(principal.user_id, org_repo)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return TourStateOut(organization_id=str(org.id), show_tour=org.settings.show_tour)
