"""PostgreSQL implementation of OrgRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from creatorhub.db.tables import OrganizationRow
from creatorhub.models.organization import Organization, OrgSettings


class PgOrgRepo:
    """Satisfies the OrgRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, sessions: sessionmaker[Session]) -> None:
        self._sessions = sessions

    def _one(self, *where) -> Organization | None:
        with self._sessions() as session:
            row = session.execute(
                select(OrganizationRow).where(*where)
            ).scalar_one_or_none()
            return _row_to_org(row) if row is not None else None

    def get_by_id(self, org_id: UUID) -> Organization | None:
        return self._one(OrganizationRow.id == org_id)

    def get_by_slug(self, slug: str) -> Organization | None:
        return self._one(OrganizationRow.slug == slug)

    def get_by_custom_domain(self, domain: str) -> Organization | None:
        # Only verified domains route traffic to a tenant.
        return self._one(
            OrganizationRow.custom_domain == domain,
            OrganizationRow.custom_domain_verified.is_(True),
        )

    def list_owned_by(self, user_id: UUID) -> list[Organization]:
        with self._sessions() as session:
            rows = session.execute(
                select(OrganizationRow).where(OrganizationRow.owner_id == user_id)
            ).scalars()
            return [_row_to_org(r) for r in rows]

    def get_by_billing_account(self, account_id: str) -> Organization | None:
        with self._sessions() as session:
            row = session.execute(
                select(OrganizationRow)
                .where(OrganizationRow.billing_account_id == account_id)
                .limit(1)
            ).scalar_one_or_none()
            return _row_to_org(row) if row is not None else None

    def add(self, org: Organization) -> None:
        try:
            with self._sessions.begin() as session:
                session.add(_org_to_row(org))
        except IntegrityError:
            raise ValueError("slug already exists") from None

    def update(self, org: Organization) -> None:
        try:
            with self._sessions.begin() as session:
                row = session.get(OrganizationRow, org.id)
                if row is None:
                    raise KeyError("organization not found")
                _copy_into(row, org)
        except IntegrityError:
            raise ValueError("slug already exists") from None

    def remove(self, org_id: UUID) -> bool:
        with self._sessions.begin() as session:
            result = session.execute(
                delete(OrganizationRow).where(OrganizationRow.id == org_id)
            )
            return result.rowcount > 0


def _copy_into(row: OrganizationRow, org: Organization) -> None:
    row.name = org.name
    row.slug = org.slug
    row.owner_id = org.owner_id
    row.description = org.description
    row.custom_domain = org.custom_domain
    row.custom_domain_verified = org.custom_domain_verified
    row.settings = org.settings.to_blob()
    row.billing_account_id = org.billing_account_id
    row.billing_account_status = org.billing_account_status


def _org_to_row(org: Organization) -> OrganizationRow:
    row = OrganizationRow(id=org.id)
    _copy_into(row, org)
    return row


def _row_to_org(row: OrganizationRow) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        slug=row.slug,
        owner_id=row.owner_id,
        description=row.description,
        custom_domain=row.custom_domain,
        custom_domain_verified=row.custom_domain_verified,
        settings=OrgSettings.from_blob(row.settings),
        billing_account_id=row.billing_account_id,
        billing_account_status=row.billing_account_status,
    )
