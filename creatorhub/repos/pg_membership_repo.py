"""PostgreSQL implementation of MembershipRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from creatorhub.db.tables import MembershipRow
from creatorhub.models.membership import Membership, MembershipStatus, Role


class PgMembershipRepo:
    """Satisfies the MembershipRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, sessions: sessionmaker[Session]) -> None:
        self._sessions = sessions

    def _one(self, *where) -> Membership | None:
        with self._sessions() as session:
            row = session.execute(
                select(MembershipRow).where(*where)
            ).scalar_one_or_none()
            return _row_to_membership(row) if row is not None else None

    def _many(self, *where) -> list[Membership]:
        with self._sessions() as session:
            rows = session.execute(select(MembershipRow).where(*where)).scalars()
            return [_row_to_membership(r) for r in rows]

    def get(self, org_id: UUID, user_id: UUID) -> Membership | None:
        return self._one(
            MembershipRow.organization_id == org_id,
            MembershipRow.user_id == user_id,
        )

    def get_by_subscription(self, subscription_id: str) -> Membership | None:
        return self._one(MembershipRow.subscription_id == subscription_id)

    def add(self, membership: Membership) -> None:
        try:
            with self._sessions.begin() as session:
                session.add(_membership_to_row(membership))
        except IntegrityError:
            raise ValueError("membership already exists") from None

    def update(self, membership: Membership) -> None:
        with self._sessions.begin() as session:
            row = session.execute(
                select(MembershipRow).where(
                    MembershipRow.organization_id == membership.organization_id,
                    MembershipRow.user_id == membership.user_id,
                )
            ).scalar_one_or_none()
            if row is None:
                raise KeyError("membership not found")
            _copy_into(row, membership)

    def update_role(
        self, org_id: UUID, user_id: UUID, new_role: Role
    ) -> Membership | None:
        with self._sessions.begin() as session:
            result = session.execute(
                update(MembershipRow)
                .where(
                    MembershipRow.organization_id == org_id,
                    MembershipRow.user_id == user_id,
                )
                .values(role=new_role.value)
            )
            if result.rowcount == 0:
                return None
        return self.get(org_id, user_id)

    def remove(self, org_id: UUID, user_id: UUID) -> bool:
        with self._sessions.begin() as session:
            result = session.execute(
                delete(MembershipRow).where(
                    MembershipRow.organization_id == org_id,
                    MembershipRow.user_id == user_id,
                )
            )
            return result.rowcount > 0

    def list_by_org(self, org_id: UUID) -> list[Membership]:
        return self._many(MembershipRow.organization_id == org_id)

    def list_by_user(self, user_id: UUID) -> list[Membership]:
        return self._many(MembershipRow.user_id == user_id)

    def count_by_tier(self, tier_id: UUID) -> int:
        with self._sessions() as session:
            return session.execute(
                select(func.count())
                .select_from(MembershipRow)
                .where(MembershipRow.tier_id == tier_id)
            ).scalar_one()


def _parse_status(raw: str) -> MembershipStatus:
    try:
        return MembershipStatus(raw)
    except ValueError:
        # Unknown states grant nothing.
        return MembershipStatus.CANCELLED


def _copy_into(row: MembershipRow, m: Membership) -> None:
    row.role = m.role.value
    row.status = m.status.value
    row.tier_id = m.tier_id
    row.joined_at = m.joined_at
    row.subscription_id = m.subscription_id
    row.customer_id = m.customer_id
    row.current_period_end = m.current_period_end
    row.cancel_at_period_end = m.cancel_at_period_end


def _membership_to_row(m: Membership) -> MembershipRow:
    row = MembershipRow(id=m.id, user_id=m.user_id, organization_id=m.organization_id)
    _copy_into(row, m)
    return row


def _row_to_membership(row: MembershipRow) -> Membership:
    return Membership(
        id=row.id,
        user_id=row.user_id,
        organization_id=row.organization_id,
        role=Role.parse(row.role),
        status=_parse_status(row.status),
        tier_id=row.tier_id,
        joined_at=row.joined_at,
        subscription_id=row.subscription_id,
        customer_id=row.customer_id,
        current_period_end=row.current_period_end,
        cancel_at_period_end=row.cancel_at_period_end,
    )
