from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated, Any
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Path, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from creatorhub.core.metrics import record_decision
from creatorhub.middleware.request_context import request_host
from creatorhub.models.membership import Membership, Role
from creatorhub.models.organization import Organization
from creatorhub.models.principal import PermissionContext, Principal
from creatorhub.repos.store import membership_repo, org_repo
from creatorhub.services import token_service
from creatorhub.services.cache import cache_service
from creatorhub.services.permissions import build_permission_context, has_role
from creatorhub.services.tenancy import resolve_organization

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

UPGRADE_URL = "/v1/upgrade"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _principal_from_token(raw_token: str) -> Principal:
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    try:
        user_id = UUID(str(claims["sub"]))
    except ValueError:
        logger.warning("Token subject is not a user id: %r", claims["sub"])
        raise _unauthorized("Invalid token") from None

    return Principal(user_id=user_id, roles=frozenset(claims.get("roles", [])))


def require_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal:
    """Validate the bearer token issued by the identity provider."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    return _principal_from_token(credentials.credentials)


def optional_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal | None:
    """Anonymous visitors are allowed; a bad token is still rejected."""
    if credentials is None:
        return None
    return _principal_from_token(credentials.credentials)


# ---------------------------------------------------------------------------
# Dashboard routes: organization addressed by id in the path
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OrgAccess:
    organization: Organization
    context: PermissionContext


def resolve_org_access(
    org_id: Annotated[UUID, Path()],
    principal: Annotated[Principal, Depends(require_user)],
) -> OrgAccess:
    """Load the organization and the caller's standing in it.

    404 for an unknown organization, 403 when the caller is neither a
    member nor the owner.
    """
    org = org_repo.get_by_id(org_id)
    if org is None:
        raise HTTPException(status_code=404, detail="organization not found")

    membership = membership_repo.get(org_id, principal.user_id)
    context = build_permission_context(principal.user_id, org, membership)
    if context is None:
        logger.warning(
            "Access denied: user=%s not a member of org=%s",
            principal.user_id,
            org_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a member of this organization",
        )
    return OrgAccess(organization=org, context=context)


def require_org_role(minimum: Role):
    """Dependency factory: demand at least ``minimum`` in the path's org.

    Usage::

        _require_admin = require_org_role(Role.ADMIN)

        @router.post("/v1/orgs/{org_id}/tiers")
        def create_tier(access: Annotated[OrgAccess, Depends(_require_admin)]):
            ...
    """

    def _guard(
        access: Annotated[OrgAccess, Depends(resolve_org_access)],
    ) -> OrgAccess:
        if not has_role(access.context, minimum):
            logger.warning(
                "Access denied: user=%s role=%s required=%s org=%s",
                access.context.user_id,
                access.context.role.value,
                minimum.value,
                access.organization.id,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient org permissions",
            )
        return access

    return _guard


# ---------------------------------------------------------------------------
# Member-facing routes: organization addressed by host
# ---------------------------------------------------------------------------


async def resolve_tenant(request: Request) -> Organization:
    host = request_host(request)
    org = await resolve_organization(host, org_repo, cache_service)
    if org is None:
        raise HTTPException(status_code=404, detail="organization not found")
    return org


@dataclass(frozen=True, slots=True)
class Viewer:
    """Whoever is looking at a tenant's content, signed in or not."""

    organization: Organization
    principal: Principal | None
    membership: Membership | None
    context: PermissionContext | None

    @property
    def user_id(self) -> UUID | None:
        return self.principal.user_id if self.principal is not None else None

    @property
    def is_owner(self) -> bool:
        return self.principal is not None and self.organization.is_owned_by(
            self.principal.user_id
        )


def resolve_viewer(
    organization: Annotated[Organization, Depends(resolve_tenant)],
    principal: Annotated[Principal | None, Depends(optional_user)],
) -> Viewer:
    if principal is None:
        return Viewer(organization, None, None, None)
    membership = membership_repo.get(organization.id, principal.user_id)
    context = build_permission_context(principal.user_id, organization, membership)
    return Viewer(organization, principal, membership, context)


def require_viewer_user(
    viewer: Annotated[Viewer, Depends(resolve_viewer)],
) -> Viewer:
    if viewer.principal is None:
        raise _unauthorized("Not authenticated")
    return viewer


def require_member(
    viewer: Annotated[Viewer, Depends(require_viewer_user)],
) -> Viewer:
    """Signed-in viewer who has joined the organization (or owns it).

    Public resources are readable by anyone, but writing to them still
    takes a membership row.
    """
    if viewer.membership is None and not viewer.is_owner:
        logger.warning(
            "Access denied: user=%s not a member of org=%s",
            viewer.user_id,
            viewer.organization.id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not a member"
        )
    return viewer


def locked(message: str) -> HTTPException:
    """403 carrying the upgrade prompt shown in place of gated content."""
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"message": message, "locked": True, "upgrade_url": UPGRADE_URL},
    )


def check_access(resource: str, granted: bool, viewer: Viewer, target: Any) -> bool:
    """Count the decision and log denials; returns ``granted`` unchanged."""
    record_decision(resource, granted)
    if not granted:
        logger.warning(
            "Access denied: user=%s %s=%s org=%s",
            viewer.user_id,
            resource,
            getattr(target, "id", target),
            viewer.organization.id,
        )
    return granted
