from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from uuid import UUID, uuid4


class ChannelType(str, Enum):
    DISCUSSION = "DISCUSSION"
    ANNOUNCEMENTS = "ANNOUNCEMENTS"
    EVENTS = "EVENTS"
    RESOURCES = "RESOURCES"
    LIVESTREAM = "LIVESTREAM"


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


@dataclass(frozen=True, slots=True)
class Community:
    id: UUID
    organization_id: UUID
    name: str
    slug: str
    description: str | None = None
    is_default: bool = False

    @staticmethod
    def new(
        *,
        organization_id: UUID,
        name: str,
        slug: str,
        description: str | None = None,
        is_default: bool = False,
    ) -> Community:
        return Community(
            id=uuid4(),
            organization_id=organization_id,
            name=name,
            slug=slug,
            description=description,
            is_default=is_default,
        )


@dataclass(frozen=True, slots=True)
class Channel:
    id: UUID
    community_id: UUID
    name: str
    slug: str
    type: ChannelType = ChannelType.DISCUSSION
    is_public: bool = False
    access_tier_ids: frozenset[UUID] = frozenset()  # empty = all members
    position: int = 0
    description: str | None = None

    @staticmethod
    def new(
        *,
        community_id: UUID,
        name: str,
        slug: str,
        type: ChannelType = ChannelType.DISCUSSION,
        is_public: bool = False,
        access_tier_ids: frozenset[UUID] = frozenset(),
        position: int = 0,
        description: str | None = None,
    ) -> Channel:
        return Channel(
            id=uuid4(),
            community_id=community_id,
            name=name,
            slug=slug,
            type=type,
            is_public=is_public,
            access_tier_ids=access_tier_ids,
            position=position,
            description=description,
        )


@dataclass(frozen=True, slots=True)
class Post:
    id: UUID
    channel_id: UUID
    author_id: UUID
    content: str
    is_pinned: bool = False
    is_published: bool = True
    created_at: int = 0

    @staticmethod
    def new(*, channel_id: UUID, author_id: UUID, content: str) -> Post:
        return Post(
            id=uuid4(),
            channel_id=channel_id,
            author_id=author_id,
            content=content,
            created_at=_now(),
        )


@dataclass(frozen=True, slots=True)
class Comment:
    id: UUID
    post_id: UUID
    author_id: UUID
    content: str
    created_at: int = 0

    @staticmethod
    def new(*, post_id: UUID, author_id: UUID, content: str) -> Comment:
        return Comment(
            id=uuid4(),
            post_id=post_id,
            author_id=author_id,
            content=content,
            created_at=_now(),
        )
