from __future__ import annotations

from typing import Protocol
from uuid import UUID

from creatorhub.models.tier import MembershipTier


class TierRepo(Protocol):
    def get(self, tier_id: UUID) -> MembershipTier | None: ...
    def add(self, tier: MembershipTier) -> None: ...
    def update(self, tier: MembershipTier) -> None: ...
    def remove(self, tier_id: UUID) -> bool: ...
    def list_by_org(self, org_id: UUID) -> list[MembershipTier]: ...


class InMemoryTierRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, MembershipTier] = {}

    def get(self, tier_id: UUID) -> MembershipTier | None:
        return self._store.get(tier_id)

    def add(self, tier: MembershipTier) -> None:
        if tier.id in self._store:
            raise ValueError("tier already exists")
        self._store[tier.id] = tier

    def update(self, tier: MembershipTier) -> None:
        if tier.id not in self._store:
            raise KeyError("tier not found")
        self._store[tier.id] = tier

    def remove(self, tier_id: UUID) -> bool:
        return self._store.pop(tier_id, None) is not None

    def list_by_org(self, org_id: UUID) -> list[MembershipTier]:
        tiers = [t for t in self._store.values() if t.organization_id == org_id]
        return sorted(tiers, key=lambda t: t.position)
