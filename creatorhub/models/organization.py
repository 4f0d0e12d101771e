from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any
from uuid import UUID, uuid4

DEFAULT_PRIMARY_COLOR = "#D4A84B"
DEFAULT_FEATURES: tuple[str, ...] = ("community",)

FEATURES = ("community", "courses", "livestreams", "messaging")
USE_CASES = ("church", "creator", "coach", "ministry", "nonprofit", "other")

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


@dataclass(frozen=True, slots=True)
class OrgSettings:
    """Typed view of an organization's settings blob.

    The persisted blob is free-form JSON (camelCase keys).  It is parsed
    once, when the organization is loaded, and every consumer reads these
    named fields instead of poking at the raw dict.
    """

    primary_color: str = DEFAULT_PRIMARY_COLOR
    use_case: str | None = None
    features: tuple[str, ...] = DEFAULT_FEATURES
    onboarding_complete: bool = False
    show_tour: bool = False
    community_public: bool = True
    show_member_count: bool = True
    logo: str | None = None

    @staticmethod
    def from_blob(blob: Mapping[str, Any] | None) -> OrgSettings:
        """Parse a raw settings blob; bad or missing values fall back to defaults."""
        if not isinstance(blob, Mapping):
            return OrgSettings()

        color = blob.get("primaryColor")
        if not isinstance(color, str) or not _HEX_COLOR.match(color):
            color = DEFAULT_PRIMARY_COLOR

        use_case = blob.get("useCase")
        if use_case not in USE_CASES:
            use_case = None

        raw_features = blob.get("features")
        if isinstance(raw_features, (list, tuple)):
            features = tuple(f for f in raw_features if f in FEATURES)
        else:
            features = DEFAULT_FEATURES

        logo = blob.get("logo")

        return OrgSettings(
            primary_color=color,
            use_case=use_case,
            features=features,
            onboarding_complete=_as_bool(blob.get("onboardingComplete"), False),
            show_tour=_as_bool(blob.get("showTour"), False),
            community_public=_as_bool(blob.get("communityPublic"), True),
            show_member_count=_as_bool(blob.get("showMemberCount"), True),
            logo=logo if isinstance(logo, str) and logo else None,
        )

    def to_blob(self) -> dict[str, Any]:
        return {
            "primaryColor": self.primary_color,
            "useCase": self.use_case,
            "features": list(self.features),
            "onboardingComplete": self.onboarding_complete,
            "showTour": self.show_tour,
            "communityPublic": self.community_public,
            "showMemberCount": self.show_member_count,
            "logo": self.logo,
        }

    def with_changes(self, **changes: Any) -> OrgSettings:
        return replace(self, **changes)

    def has_feature(self, feature: str) -> bool:
        return feature in self.features


def _as_bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


@dataclass(frozen=True, slots=True)
class Organization:
    id: UUID
    name: str
    slug: str
    owner_id: UUID
    description: str | None = None
    custom_domain: str | None = None
    custom_domain_verified: bool = False
    settings: OrgSettings = field(default_factory=OrgSettings)
    billing_account_id: str | None = None
    # not_connected|pending|active|restricted
    billing_account_status: str = "not_connected"

    @staticmethod
    def new(
        *,
        name: str,
        slug: str,
        owner_id: UUID,
        description: str | None = None,
        settings: OrgSettings | None = None,
    ) -> Organization:
        return Organization(
            id=uuid4(),
            name=name,
            slug=slug,
            owner_id=owner_id,
            description=description,
            settings=settings or OrgSettings(),
        )

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.owner_id == user_id
