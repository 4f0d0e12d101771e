from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from creatorhub.models.membership import Membership, Role


class MembershipRepo(Protocol):
    def get(self, org_id: UUID, user_id: UUID) -> Membership | None: ...
    def get_by_subscription(self, subscription_id: str) -> Membership | None: ...
    def add(self, membership: Membership) -> None: ...
    def update(self, membership: Membership) -> None: ...
    def update_role(
        self, org_id: UUID, user_id: UUID, new_role: Role
    ) -> Membership | None: ...
    def remove(self, org_id: UUID, user_id: UUID) -> bool: ...
    def list_by_org(self, org_id: UUID) -> list[Membership]: ...
    def list_by_user(self, user_id: UUID) -> list[Membership]: ...
    def count_by_tier(self, tier_id: UUID) -> int: ...


class InMemoryMembershipRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Membership] = {}

    def get(self, org_id: UUID, user_id: UUID) -> Membership | None:
        return self._store.get((org_id, user_id))

    def get_by_subscription(self, subscription_id: str) -> Membership | None:
        for m in self._store.values():
            if m.subscription_id == subscription_id:
                return m
        return None

    def add(self, membership: Membership) -> None:
        key = (membership.organization_id, membership.user_id)
        if key in self._store:
            raise ValueError("membership already exists")
        self._store[key] = membership

    def update(self, membership: Membership) -> None:
        key = (membership.organization_id, membership.user_id)
        if key not in self._store:
            raise KeyError("membership not found")
        self._store[key] = membership

    def update_role(
        self, org_id: UUID, user_id: UUID, new_role: Role
    ) -> Membership | None:
        key = (org_id, user_id)
        existing = self._store.get(key)
        if existing is None:
            return None
        updated = replace(existing, role=new_role)
        self._store[key] = updated
        return updated

    def remove(self, org_id: UUID, user_id: UUID) -> bool:
        return self._store.pop((org_id, user_id), None) is not None

    def list_by_org(self, org_id: UUID) -> list[Membership]:
        return [m for m in self._store.values() if m.organization_id == org_id]

    def list_by_user(self, user_id: UUID) -> list[Membership]:
        return [m for m in self._store.values() if m.user_id == user_id]

    def count_by_tier(self, tier_id: UUID) -> int:
        return sum(1 for m in self._store.values() if m.tier_id == tier_id)
