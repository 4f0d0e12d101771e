"""Membership tier catalog helpers and upgrade eligibility.

Upgrade prompts compare tiers by price only: a candidate is an upgrade
when it costs strictly more than the member's current tier.  Position is
the catalog's display order and is not consulted, so a misordered catalog
never turns a cheaper tier into an "upgrade".
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from uuid import UUID

from creatorhub.models.tier import BillingInterval, MembershipTier

logger = logging.getLogger(__name__)

MIN_TIER_NAME_LENGTH = 2


class TierValidationError(ValueError):
    pass


class TierInUseError(Exception):
    """Raised when deleting a tier that memberships still reference."""


def is_upgrade(current: MembershipTier | None, candidate: MembershipTier) -> bool:
    """Return True if ``candidate`` costs strictly more than ``current``.

    ``current`` None is the free/default tier: any priced tier is an upgrade.
    """
    current_price = current.price if current is not None else Decimal(0)
    return candidate.price > current_price


def sorted_catalog(tiers: Iterable[MembershipTier]) -> list[MembershipTier]:
    return sorted(tiers, key=lambda t: (t.position, t.name))


@dataclass(frozen=True, slots=True)
class UpgradeOption:
    tier: MembershipTier
    is_current: bool
    is_upgrade: bool


def upgrade_options(
    catalog: Iterable[MembershipTier], current_tier_id: UUID | None
) -> list[UpgradeOption]:
    """Active tiers in display order, flagged as current and/or upgrade."""
    active = [t for t in sorted_catalog(catalog) if t.is_active]
    current = next((t for t in active if t.id == current_tier_id), None)
    return [
        UpgradeOption(
            tier=t,
            is_current=t.id == current_tier_id,
            is_upgrade=t.id != current_tier_id and is_upgrade(current, t),
        )
        for t in active
    ]


def join_tier(catalog: Iterable[MembershipTier]) -> MembershipTier | None:
    """Tier a self-joining member lands on: the first free active tier.

    Paid tiers are only reached through checkout, so a catalog without a
    free tier yields None and the member joins with no tier.
    """
    for tier in sorted_catalog(catalog):
        if tier.is_active and tier.price == 0:
            return tier
    return None


def next_position(tiers: Iterable[MembershipTier]) -> int:
    positions = [t.position for t in tiers]
    if not positions:
        return 0
    return max(positions) + 1


@dataclass(frozen=True, slots=True)
class TierFields:
    name: str
    price: Decimal
    interval: BillingInterval
    description: str | None
    features: tuple[str, ...]


def validate_tier_fields(
    *,
    name: str,
    price: str | int | Decimal,
    interval: str,
    description: str | None = None,
    features: Sequence[str] = (),
) -> TierFields:
    """Normalize dashboard form input for a tier, raising on bad values."""
    name = (name or "").strip()
    if len(name) < MIN_TIER_NAME_LENGTH:
        raise TierValidationError(
            f"Tier name must be at least {MIN_TIER_NAME_LENGTH} characters"
        )

    try:
        amount = Decimal(str(price))
    except InvalidOperation:
        raise TierValidationError(f"Invalid price {price!r}") from None
    if not amount.is_finite() or amount < 0:
        raise TierValidationError("Price must be zero or greater")

    try:
        billing_interval = BillingInterval(interval)
    except ValueError:
        allowed = "|".join(i.value for i in BillingInterval)
        raise TierValidationError(
            f"Interval must be {allowed} (got {interval!r})"
        ) from None

    cleaned_features = tuple(f.strip() for f in features if f and f.strip())
    description = description.strip() if description else None

    return TierFields(
        name=name,
        price=amount.quantize(Decimal("0.01")),
        interval=billing_interval,
        description=description or None,
        features=cleaned_features,
    )


def reorder(
    tiers: Iterable[MembershipTier], ordered_ids: Sequence[UUID]
) -> dict[UUID, int]:
    """Compute new positions from an ordered id list.

    The list must name every tier of the catalog exactly once.
    """
    known = {t.id for t in tiers}
    if len(set(ordered_ids)) != len(ordered_ids):
        raise TierValidationError("Tier order contains duplicates")
    if set(ordered_ids) != known:
        raise TierValidationError("Tier order must list every tier exactly once")
    positions = {tier_id: index for index, tier_id in enumerate(ordered_ids)}
    logger.debug("Reordered %d tiers", len(positions))
    return positions


def ensure_deletable(tier: MembershipTier, member_count: int) -> None:
    if member_count > 0:
        logger.warning(
            "Refused to delete tier=%s with %d memberships", tier.id, member_count
        )
        raise TierInUseError("Cannot delete tier with active members")
