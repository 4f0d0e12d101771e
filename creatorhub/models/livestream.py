from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID, uuid4


class LivestreamStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    ENDED = "ENDED"


@dataclass(frozen=True, slots=True)
class Livestream:
    id: UUID
    organization_id: UUID
    title: str
    status: LivestreamStatus = LivestreamStatus.SCHEDULED
    is_public: bool = False
    access_tier_ids: frozenset[UUID] = frozenset()
    playback_id: str | None = None  # issued by the video provider
    scheduled_for: int | None = None

    @staticmethod
    def new(
        *,
        organization_id: UUID,
        title: str,
        is_public: bool = False,
        access_tier_ids: frozenset[UUID] = frozenset(),
        playback_id: str | None = None,
        scheduled_for: int | None = None,
    ) -> Livestream:
        return Livestream(
            id=uuid4(),
            organization_id=organization_id,
            title=title,
            is_public=is_public,
            access_tier_ids=access_tier_ids,
            playback_id=playback_id,
            scheduled_for=scheduled_for,
        )
