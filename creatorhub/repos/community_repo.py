from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from creatorhub.models.community import Channel, Comment, Community, Post


class CommunityRepo(Protocol):
    def add_community(self, community: Community) -> None: ...
    def get_community(self, community_id: UUID) -> Community | None: ...
    def get_default_community(self, org_id: UUID) -> Community | None: ...
    def remove_community(self, community_id: UUID) -> bool: ...
    def add_channel(self, channel: Channel) -> None: ...
    def get_channel(self, channel_id: UUID) -> Channel | None: ...
    def get_channel_by_slug(self, community_id: UUID, slug: str) -> Channel | None: ...
    def list_channels(self, community_id: UUID) -> list[Channel]: ...
    def remove_channel(self, channel_id: UUID) -> bool: ...


class InMemoryCommunityRepo:
    def __init__(self) -> None:
        self._communities: dict[UUID, Community] = {}
        self._channels: dict[UUID, Channel] = {}

    def add_community(self, community: Community) -> None:
        self._communities[community.id] = community

    def get_community(self, community_id: UUID) -> Community | None:
        return self._communities.get(community_id)

    def get_default_community(self, org_id: UUID) -> Community | None:
        candidates = [
            c for c in self._communities.values() if c.organization_id == org_id
        ]
        for c in candidates:
            if c.is_default:
                return c
        return candidates[0] if candidates else None

    def remove_community(self, community_id: UUID) -> bool:
        removed = self._communities.pop(community_id, None) is not None
        for channel_id in [
            ch.id for ch in self._channels.values() if ch.community_id == community_id
        ]:
            del self._channels[channel_id]
        return removed

    def add_channel(self, channel: Channel) -> None:
        if self.get_channel_by_slug(channel.community_id, channel.slug) is not None:
            raise ValueError("channel slug already exists in community")
        self._channels[channel.id] = channel

    def get_channel(self, channel_id: UUID) -> Channel | None:
        return self._channels.get(channel_id)

    def get_channel_by_slug(self, community_id: UUID, slug: str) -> Channel | None:
        for ch in self._channels.values():
            if ch.community_id == community_id and ch.slug == slug:
                return ch
        return None

    def list_channels(self, community_id: UUID) -> list[Channel]:
        channels = [
            ch for ch in self._channels.values() if ch.community_id == community_id
        ]
        return sorted(channels, key=lambda ch: ch.position)

    def remove_channel(self, channel_id: UUID) -> bool:
        return self._channels.pop(channel_id, None) is not None


class PostRepo(Protocol):
    def add(self, post: Post) -> None: ...
    def get(self, post_id: UUID) -> Post | None: ...
    def set_pinned(self, post_id: UUID, pinned: bool) -> Post | None: ...
    def remove(self, post_id: UUID) -> bool: ...
    def list_by_channel(self, channel_id: UUID) -> list[Post]: ...
    def add_comment(self, comment: Comment) -> None: ...
    def get_comment(self, comment_id: UUID) -> Comment | None: ...
    def remove_comment(self, comment_id: UUID) -> bool: ...
    def list_comments(self, post_id: UUID) -> list[Comment]: ...


class InMemoryPostRepo:
    def __init__(self) -> None:
        self._posts: dict[UUID, Post] = {}
        self._comments: dict[UUID, Comment] = {}

    def add(self, post: Post) -> None:
        self._posts[post.id] = post

    def get(self, post_id: UUID) -> Post | None:
        return self._posts.get(post_id)

    def set_pinned(self, post_id: UUID, pinned: bool) -> Post | None:
        existing = self._posts.get(post_id)
        if existing is None:
            return None
        updated = replace(existing, is_pinned=pinned)
        self._posts[post_id] = updated
        return updated

    def remove(self, post_id: UUID) -> bool:
        removed = self._posts.pop(post_id, None) is not None
        for comment_id in [
            c.id for c in self._comments.values() if c.post_id == post_id
        ]:
            del self._comments[comment_id]
        return removed

    def list_by_channel(self, channel_id: UUID) -> list[Post]:
        posts = [
            p
            for p in self._posts.values()
            if p.channel_id == channel_id and p.is_published
        ]
        # Pinned first, then newest first.
        return sorted(posts, key=lambda p: (not p.is_pinned, -p.created_at))

    def add_comment(self, comment: Comment) -> None:
        if comment.post_id not in self._posts:
            raise KeyError("post not found")
        self._comments[comment.id] = comment

    def get_comment(self, comment_id: UUID) -> Comment | None:
        return self._comments.get(comment_id)

    def remove_comment(self, comment_id: UUID) -> bool:
        return self._comments.pop(comment_id, None) is not None

    def list_comments(self, post_id: UUID) -> list[Comment]:
        comments = [c for c in self._comments.values() if c.post_id == post_id]
        return sorted(comments, key=lambda c: -c.created_at)
