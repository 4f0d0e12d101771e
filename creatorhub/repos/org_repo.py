from __future__ import annotations

from typing import Protocol
from uuid import UUID

from creatorhub.models.organization import Organization


class OrgRepo(Protocol):
    def get_by_id(self, org_id: UUID) -> Organization | None: ...
    def get_by_slug(self, slug: str) -> Organization | None: ...
    def get_by_custom_domain(self, domain: str) -> Organization | None: ...
    def list_owned_by(self, user_id: UUID) -> list[Organization]: ...
    def get_by_billing_account(self, account_id: str) -> Organization | None: ...
    def add(self, org: Organization) -> None: ...
    def update(self, org: Organization) -> None: ...
    def remove(self, org_id: UUID) -> bool: ...


class InMemoryOrgRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Organization] = {}
        self._by_slug: dict[str, UUID] = {}

    def get_by_id(self, org_id: UUID) -> Organization | None:
        return self._by_id.get(org_id)

    def get_by_slug(self, slug: str) -> Organization | None:
        org_id = self._by_slug.get(slug)
        return self._by_id.get(org_id) if org_id is not None else None

    def get_by_custom_domain(self, domain: str) -> Organization | None:
        # Only verified domains route traffic to a tenant.
        for org in self._by_id.values():
            if org.custom_domain == domain and org.custom_domain_verified:
                return org
        return None

    def list_owned_by(self, user_id: UUID) -> list[Organization]:
        return [o for o in self._by_id.values() if o.owner_id == user_id]

    def get_by_billing_account(self, account_id: str) -> Organization | None:
        for org in self._by_id.values():
            if org.billing_account_id == account_id:
                return org
        return None

    def add(self, org: Organization) -> None:
        if org.slug in self._by_slug:
            raise ValueError("slug already exists")
        self._by_id[org.id] = org
        self._by_slug[org.slug] = org.id

    def update(self, org: Organization) -> None:
        existing = self._by_id.get(org.id)
        if existing is None:
            raise KeyError("organization not found")
        if org.slug != existing.slug:
            if org.slug in self._by_slug:
                raise ValueError("slug already exists")
            del self._by_slug[existing.slug]
            self._by_slug[org.slug] = org.id
        self._by_id[org.id] = org

    def remove(self, org_id: UUID) -> bool:
        org = self._by_id.pop(org_id, None)
        if org is None:
            return False
        self._by_slug.pop(org.slug, None)
        return True
