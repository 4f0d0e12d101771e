from __future__ import annotations

from typing import Protocol
from uuid import UUID

from creatorhub.models.livestream import Livestream


class LivestreamRepo(Protocol):
    def add(self, livestream: Livestream) -> None: ...
    def get(self, livestream_id: UUID) -> Livestream | None: ...
    def list_by_org(self, org_id: UUID) -> list[Livestream]: ...


class InMemoryLivestreamRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, Livestream] = {}

    def add(self, livestream: Livestream) -> None:
        self._store[livestream.id] = livestream

    def get(self, livestream_id: UUID) -> Livestream | None:
        return self._store.get(livestream_id)

    def list_by_org(self, org_id: UUID) -> list[Livestream]:
        return [s for s in self._store.values() if s.organization_id == org_id]
