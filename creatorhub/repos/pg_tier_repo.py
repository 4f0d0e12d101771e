"""PostgreSQL implementation of TierRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from creatorhub.db.tables import MembershipTierRow
from creatorhub.models.tier import BillingInterval, MembershipTier


class PgTierRepo:
    """Satisfies the TierRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, sessions: sessionmaker[Session]) -> None:
        self._sessions = sessions

    def get(self, tier_id: UUID) -> MembershipTier | None:
        with self._sessions() as session:
            row = session.get(MembershipTierRow, tier_id)
            return _row_to_tier(row) if row is not None else None

    def add(self, tier: MembershipTier) -> None:
        try:
            with self._sessions.begin() as session:
                session.add(_tier_to_row(tier))
        except IntegrityError:
            raise ValueError("tier already exists") from None

    def update(self, tier: MembershipTier) -> None:
        with self._sessions.begin() as session:
            row = session.get(MembershipTierRow, tier.id)
            if row is None:
                raise KeyError("tier not found")
            _copy_into(row, tier)

    def remove(self, tier_id: UUID) -> bool:
        with self._sessions.begin() as session:
            result = session.execute(
                delete(MembershipTierRow).where(MembershipTierRow.id == tier_id)
            )
            return result.rowcount > 0

    def list_by_org(self, org_id: UUID) -> list[MembershipTier]:
        with self._sessions() as session:
            rows = session.execute(
                select(MembershipTierRow)
                .where(MembershipTierRow.organization_id == org_id)
                .order_by(MembershipTierRow.position)
            ).scalars()
            return [_row_to_tier(r) for r in rows]


def _copy_into(row: MembershipTierRow, tier: MembershipTier) -> None:
    row.name = tier.name
    row.price = tier.price
    row.interval = tier.interval.value
    row.position = tier.position
    row.is_active = tier.is_active
    row.description = tier.description
    row.features = list(tier.features)


def _tier_to_row(tier: MembershipTier) -> MembershipTierRow:
    row = MembershipTierRow(id=tier.id, organization_id=tier.organization_id)
    _copy_into(row, tier)
    return row


def _row_to_tier(row: MembershipTierRow) -> MembershipTier:
    try:
        interval = BillingInterval(row.interval)
    except ValueError:
        interval = BillingInterval.MONTH
    return MembershipTier(
        id=row.id,
        organization_id=row.organization_id,
        name=row.name,
        price=row.price,
        interval=interval,
        position=row.position,
        is_active=row.is_active,
        description=row.description,
        features=tuple(row.features or ()),
    )
