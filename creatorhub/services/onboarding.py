"""First-run onboarding: the setup wizard and its completion handler.

The wizard is a strictly linear state machine over eight steps.  Each
step has a predicate over the data entered so far, and the wizard only
moves forward while the current predicate holds.  At the last step the
accumulated data is handed to the completion handler as one payload.

``complete_onboarding`` creates the organization and everything a new
creator needs on day one (owner membership, a free tier, the default
community and its channels) as a single unit: if any write fails, the
rows already written are removed again and OnboardingError is raised.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from decimal import Decimal
from uuid import UUID

from creatorhub.core.metrics import ONBOARDING_COMPLETIONS
from creatorhub.models.community import Channel, ChannelType, Community
from creatorhub.models.membership import Membership, MembershipStatus, Role
from creatorhub.models.organization import (
    DEFAULT_PRIMARY_COLOR,
    FEATURES,
    USE_CASES,
    Organization,
    OrgSettings,
)
from creatorhub.models.tier import BillingInterval, MembershipTier
from creatorhub.repos.community_repo import CommunityRepo
from creatorhub.repos.membership_repo import MembershipRepo
from creatorhub.repos.org_repo import OrgRepo
from creatorhub.repos.tier_repo import TierRepo
from creatorhub.services.subdomains import (
    format_error,
    slugify,
    unique_slug,
)

logger = logging.getLogger(__name__)

STEPS: tuple[str, ...] = (
    "welcome",
    "about",
    "organization",
    "features",
    "branding",
    "payments",
    "community",
    "complete",
)

MIN_NAME_LENGTH = 2
GENERIC_ERROR = "Something went wrong. Please try again."

DEFAULT_COMMUNITY_NAME = "General"
DEFAULT_CHANNELS: tuple[str, ...] = ("announcements", "general")
DEFAULT_FREE_TIER_NAME = "Free"
FREE_TIER_FEATURES: tuple[str, ...] = (
    "Access to community",
    "Join discussions",
    "View public content",
)

CHANNEL_PRESETS: dict[str, tuple[str, ChannelType]] = {
    "announcements": ("Announcements", ChannelType.ANNOUNCEMENTS),
    "general": ("General Discussion", ChannelType.DISCUSSION),
    "prayer": ("Prayer Requests", ChannelType.DISCUSSION),
    "introductions": ("Introductions", ChannelType.DISCUSSION),
    "resources": ("Resources", ChannelType.RESOURCES),
}

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


class OnboardingError(Exception):
    """Completion failed; nothing was left behind in the data store."""


class OnboardingValidationError(OnboardingError):
    pass


class OnboardingConflictError(OnboardingError):
    """The chosen subdomain was claimed before the wizard was submitted."""


# ---------------------------------------------------------------------------
# Wizard
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class WizardData:
    display_name: str = ""
    bio: str = ""
    organization_name: str = ""
    organization_description: str = ""
    use_case: str | None = None
    features: list[str] = field(default_factory=lambda: ["community"])
    primary_color: str = DEFAULT_PRIMARY_COLOR
    skip_payments: bool = False
    community_name: str = DEFAULT_COMMUNITY_NAME
    default_channels: list[str] = field(default_factory=lambda: list(DEFAULT_CHANNELS))
    subdomain: str | None = None
    free_tier_name: str = DEFAULT_FREE_TIER_NAME


@dataclass(frozen=True, slots=True)
class OnboardingPayload:
    """Everything the completion handler needs, captured at submit time."""

    display_name: str
    bio: str
    organization_name: str
    organization_description: str
    use_case: str | None
    features: tuple[str, ...]
    primary_color: str
    community_name: str
    default_channels: tuple[str, ...]
    subdomain: str | None = None
    free_tier_name: str = DEFAULT_FREE_TIER_NAME

    @staticmethod
    def from_data(data: WizardData) -> OnboardingPayload:
        return OnboardingPayload(
            display_name=data.display_name.strip(),
            bio=data.bio.strip(),
            organization_name=data.organization_name.strip(),
            organization_description=data.organization_description.strip(),
            use_case=data.use_case,
            features=tuple(data.features),
            primary_color=data.primary_color,
            community_name=data.community_name.strip(),
            default_channels=tuple(data.default_channels),
            subdomain=data.subdomain,
            free_tier_name=data.free_tier_name.strip() or DEFAULT_FREE_TIER_NAME,
        )


def _always(_: WizardData) -> bool:
    return True


def _about_ready(data: WizardData) -> bool:
    return len(data.display_name.strip()) >= MIN_NAME_LENGTH


def _organization_ready(data: WizardData) -> bool:
    return (
        len(data.organization_name.strip()) >= MIN_NAME_LENGTH
        and data.use_case is not None
    )


def _features_ready(data: WizardData) -> bool:
    return len(data.features) > 0


def _community_ready(data: WizardData) -> bool:
    return len(data.community_name.strip()) >= MIN_NAME_LENGTH


STEP_PREDICATES: dict[str, Callable[[WizardData], bool]] = {
    "welcome": _always,
    "about": _about_ready,
    "organization": _organization_ready,
    "features": _features_ready,
    "branding": _always,
    "payments": _always,
    "community": _community_ready,
    "complete": _always,
}


class OnboardingWizard:
    """Session-local wizard state.  One owner; transitions are serialized."""

    def __init__(
        self,
        on_complete: Callable[[OnboardingPayload], object],
        data: WizardData | None = None,
    ) -> None:
        self.data = data or WizardData()
        self.error: str | None = None
        self.completed = False
        self._on_complete = on_complete
        self._index = 0

    @property
    def index(self) -> int:
        return self._index

    @property
    def step(self) -> str:
        return STEPS[self._index]

    @property
    def is_last_step(self) -> bool:
        return self._index == len(STEPS) - 1

    def can_proceed(self) -> bool:
        return STEP_PREDICATES[self.step](self.data)

    def next(self) -> bool:
        if not self.can_proceed() or self.is_last_step:
            return False
        self._index += 1
        self.error = None
        return True

    def back(self) -> bool:
        if self._index == 0:
            return False
        self._index -= 1
        self.error = None
        return True

    def complete(self) -> bool:
        """Submit the accumulated data once.

        On failure the message lands in ``error`` and the wizard stays on
        the last step; resubmitting is the user's call.
        """
        if not self.is_last_step or self.completed:
            return self.completed
        self.error = None
        try:
            self._on_complete(OnboardingPayload.from_data(self.data))
        except OnboardingError as exc:
            self.error = str(exc) or GENERIC_ERROR
            return False
        except Exception:
            logger.exception("Onboarding completion raised unexpectedly")
            self.error = GENERIC_ERROR
            return False
        self.completed = True
        return True


# ---------------------------------------------------------------------------
# Completion handler
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OnboardingResult:
    organization: Organization
    membership: Membership
    free_tier: MembershipTier
    community: Community
    channels: tuple[Channel, ...]


def validate_payload(payload: OnboardingPayload) -> None:
    if len(payload.organization_name.strip()) < MIN_NAME_LENGTH:
        raise OnboardingValidationError(
            f"Organization name must be at least {MIN_NAME_LENGTH} characters"
        )
    if payload.use_case not in USE_CASES:
        raise OnboardingValidationError(
            "Choose what best describes your organization"
        )
    if not payload.features:
        raise OnboardingValidationError("Select at least one feature")
    unknown = [f for f in payload.features if f not in FEATURES]
    if unknown:
        raise OnboardingValidationError(f"Unknown features: {', '.join(unknown)}")
    if not _HEX_COLOR.match(payload.primary_color or ""):
        raise OnboardingValidationError(
            "Primary color must be a hex color like #D4A84B"
        )
    if len(payload.community_name.strip()) < MIN_NAME_LENGTH:
        raise OnboardingValidationError(
            f"Community name must be at least {MIN_NAME_LENGTH} characters"
        )


def _channel_slugs(requested: tuple[str, ...]) -> list[str]:
    seen: list[str] = []
    for raw in requested:
        slug = slugify(raw)
        if slug and slug not in seen:
            seen.append(slug)
    return seen


def _claim_slug(payload: OnboardingPayload, org_repo: OrgRepo) -> str:
    """Use the chosen subdomain if still free, else derive one from the name."""

    def is_taken(slug: str) -> bool:
        return org_repo.get_by_slug(slug) is not None

    if not payload.subdomain:
        return unique_slug(payload.organization_name, is_taken)
    subdomain = payload.subdomain.strip().lower()
    error = format_error(subdomain)
    if error is not None:
        raise OnboardingValidationError(error)
    if is_taken(subdomain):
        logger.warning("Subdomain=%s claimed before onboarding completed", subdomain)
        raise OnboardingConflictError(
            "This subdomain is no longer available. Please choose another."
        )
    return subdomain


def complete_onboarding(
    user_id: UUID,
    payload: OnboardingPayload,
    *,
    org_repo: OrgRepo,
    membership_repo: MembershipRepo,
    tier_repo: TierRepo,
    community_repo: CommunityRepo,
) -> OnboardingResult:
    try:
        validate_payload(payload)
        slug = _claim_slug(payload, org_repo)
    except OnboardingError:
        ONBOARDING_COMPLETIONS.labels(outcome="failure").inc()
        raise

    undo: list[Callable[[], object]] = []
    try:
        org = Organization.new(
            name=payload.organization_name.strip(),
            slug=slug,
            owner_id=user_id,
            description=payload.organization_description.strip() or None,
            settings=OrgSettings(
                primary_color=payload.primary_color,
                use_case=payload.use_case,
                features=tuple(payload.features),
                onboarding_complete=True,
                show_tour=True,
            ),
        )
        org_repo.add(org)
        undo.append(lambda: org_repo.remove(org.id))

        membership = Membership.new(
            user_id=user_id,
            organization_id=org.id,
            role=Role.OWNER,
            status=MembershipStatus.ACTIVE,
        )
        membership_repo.add(membership)
        undo.append(lambda: membership_repo.remove(org.id, user_id))

        free_tier = MembershipTier.new(
            organization_id=org.id,
            name=payload.free_tier_name,
            price=Decimal("0.00"),
            interval=BillingInterval.ONE_TIME,
            position=0,
            description=f"Free access to {org.name}",
            features=FREE_TIER_FEATURES,
        )
        tier_repo.add(free_tier)
        undo.append(lambda: tier_repo.remove(free_tier.id))

        community_name = payload.community_name.strip()
        community = Community.new(
            organization_id=org.id,
            name=community_name,
            slug=slugify(community_name) or "community",
            description=f"Welcome to {community_name}!",
            is_default=True,
        )
        community_repo.add_community(community)
        # Removing the community removes its channels with it.
        undo.append(lambda: community_repo.remove_community(community.id))

        channels: list[Channel] = []
        for position, channel_slug in enumerate(
            _channel_slugs(payload.default_channels)
        ):
            name, channel_type = CHANNEL_PRESETS.get(
                channel_slug, (channel_slug, ChannelType.DISCUSSION)
            )
            channel = Channel.new(
                community_id=community.id,
                name=name,
                slug=channel_slug,
                type=channel_type,
                is_public=True,
                access_tier_ids=frozenset({free_tier.id}),
                position=position,
            )
            community_repo.add_channel(channel)
            channels.append(channel)
    except Exception as exc:
        for step in reversed(undo):
            try:
                step()
            except Exception:
                logger.exception("Onboarding rollback step failed for user=%s", user_id)
        ONBOARDING_COMPLETIONS.labels(outcome="failure").inc()
        logger.error("Onboarding failed for user=%s: %s", user_id, exc)
        raise OnboardingError(
            "Failed to set up your organization. Please try again."
        ) from exc

    ONBOARDING_COMPLETIONS.labels(outcome="success").inc()
    logger.info(
        "Onboarded org=%s slug=%s owner=%s channels=%d",
        org.id,
        org.slug,
        user_id,
        len(channels),
    )
    return OnboardingResult(
        organization=org,
        membership=membership,
        free_tier=free_tier,
        community=community,
        channels=tuple(channels),
    )


# ---------------------------------------------------------------------------
# Tour persistence
# ---------------------------------------------------------------------------


def _set_show_tour(user_id: UUID, org_repo: OrgRepo, show: bool) -> Organization:
    owned = org_repo.list_owned_by(user_id)
    if not owned:
        raise LookupError("Organization not found")
    org = owned[0]
    updated = replace(org, settings=org.settings.with_changes(show_tour=show))
    org_repo.update(updated)
    logger.info("Set show_tour=%s for org=%s", show, org.id)
    return updated


def dismiss_tour(user_id: UUID, org_repo: OrgRepo) -> Organization:
    return _set_show_tour(user_id, org_repo, False)


def restart_tour(user_id: UUID, org_repo: OrgRepo) -> Organization:
    return _set_show_tour(user_id, org_repo, True)
