"""Community endpoints: channels, posts and moderation.

Channel pages are served on the tenant host.  Every channel is listed,
locked ones included, so members can see what an upgrade unlocks; opening
a locked channel answers 403 with the upgrade prompt instead of content.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from creatorhub.api.dependencies import (
    OrgAccess,
    Viewer,
    check_access,
    locked,
    require_member,
    require_viewer_user,
    resolve_org_access,
    resolve_viewer,
)
from creatorhub.models.community import Channel, ChannelType, Comment, Community, Post
from creatorhub.models.membership import Role
from creatorhub.repos.store import community_repo, post_repo, tier_repo
from creatorhub.services.entitlements import (
    can_access_resource,
    can_post_in_channel,
    visible_resources,
)
from creatorhub.services.permissions import (
    can_delete_comment,
    can_manage_community,
    can_modify_post,
    can_pin_post,
    role_badge,
)
from creatorhub.services.subdomains import slugify

logger = logging.getLogger(__name__)

router = APIRouter(tags=["community"])


# --- Pydantic schemas ---


class ChannelOut(BaseModel):
    id: str
    name: str
    slug: str
    type: str
    is_public: bool
    locked: bool
    can_post: bool


class PostOut(BaseModel):
    id: str
    author_id: str
    content: str
    is_pinned: bool
    created_at: int


class CommentOut(BaseModel):
    id: str
    post_id: str
    author_id: str
    content: str
    created_at: int


class ChannelDetailOut(BaseModel):
    channel: ChannelOut
    posts: list[PostOut]
    viewer_badge: str


class PostIn(BaseModel):
    content: str = Field(min_length=1, max_length=10_000)


class PinIn(BaseModel):
    pinned: bool = True


class ChannelCreateIn(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    slug: str | None = None
    type: ChannelType = ChannelType.DISCUSSION
    is_public: bool = False
    access_tier_ids: list[UUID] = []
    description: str | None = None


def _channel_out(ch: Channel, viewer: Viewer, unlocked: bool) -> ChannelOut:
    return ChannelOut(
        id=str(ch.id),
        name=ch.name,
        slug=ch.slug,
        type=ch.type.value,
        is_public=ch.is_public,
        locked=not unlocked,
        can_post=unlocked
        and (viewer.membership is not None or viewer.is_owner)
        and can_post_in_channel(ch, viewer.membership, viewer.is_owner),
    )


def _post_out(p: Post) -> PostOut:
    return PostOut(
        id=str(p.id),
        author_id=str(p.author_id),
        content=p.content,
        is_pinned=p.is_pinned,
        created_at=p.created_at,
    )


def _comment_out(c: Comment) -> CommentOut:
    return CommentOut(
        id=str(c.id),
        post_id=str(c.post_id),
        author_id=str(c.author_id),
        content=c.content,
        created_at=c.created_at,
    )


def _user_id(viewer: Viewer) -> UUID:
    """The signed-in viewer's id; routes using this depend on require_viewer_user."""
    if viewer.user_id is None:
        raise HTTPException(status_code=500, detail="viewer not resolved")
    return viewer.user_id


def _default_community(viewer: Viewer) -> Community:
    community = community_repo.get_default_community(viewer.organization.id)
    if community is None:
        raise HTTPException(status_code=404, detail="community not found")
    return community


def _channel_by_slug(viewer: Viewer, slug: str) -> Channel:
    channel = community_repo.get_channel_by_slug(_default_community(viewer).id, slug)
    if channel is None:
        raise HTTPException(status_code=404, detail="channel not found")
    return channel


def _tenant_post(viewer: Viewer, post_id: UUID) -> tuple[Post, Channel]:
    """Load a post, 404 unless it belongs to the tenant being viewed."""
    post = post_repo.get(post_id)
    channel = community_repo.get_channel(post.channel_id) if post else None
    community = community_repo.get_community(channel.community_id) if channel else None
    if (
        post is None
        or channel is None
        or community is None
        or community.organization_id != viewer.organization.id
    ):
        raise HTTPException(status_code=404, detail="post not found")
    return post, channel


# --- Member-facing endpoints ---


@router.get("/v1/community/channels", response_model=list[ChannelOut])
def list_channels(
    viewer: Annotated[Viewer, Depends(resolve_viewer)],
) -> list[ChannelOut]:
    channels = community_repo.list_channels(_default_community(viewer).id)
    return [
        _channel_out(ch, viewer, unlocked)
        for ch, unlocked in visible_resources(
            channels, viewer.membership, viewer.is_owner
        )
    ]


@router.get("/v1/community/channels/{slug}", response_model=ChannelDetailOut)
def get_channel(
    slug: str,
    viewer: Annotated[Viewer, Depends(resolve_viewer)],
) -> ChannelDetailOut:
    channel = _channel_by_slug(viewer, slug)
    granted = can_access_resource(channel, viewer.membership, viewer.is_owner)
    if not check_access("channel", granted, viewer, channel):
        raise locked(f"Upgrade your membership to join #{channel.name}")

    role = viewer.context.role if viewer.context else Role.MEMBER
    return ChannelDetailOut(
        channel=_channel_out(channel, viewer, True),
        posts=[_post_out(p) for p in post_repo.list_by_channel(channel.id)],
        viewer_badge=role_badge(role).label,
    )


@router.post(
    "/v1/community/channels/{slug}/posts",
    response_model=PostOut,
    status_code=status.HTTP_201_CREATED,
)
def create_post(
    slug: str,
    body: PostIn,
    viewer: Annotated[Viewer, Depends(require_member)],
) -> PostOut:
    channel = _channel_by_slug(viewer, slug)
    if not can_access_resource(channel, viewer.membership, viewer.is_owner):
        check_access("channel", False, viewer, channel)
        raise locked(f"Upgrade your membership to join #{channel.name}")
    if not can_post_in_channel(channel, viewer.membership, viewer.is_owner):
        logger.warning(
            "Post denied: user=%s channel=%s type=%s",
            viewer.user_id,
            channel.id,
            channel.type.value,
        )
        raise HTTPException(status_code=403, detail="This channel is read-only")

    post = Post.new(
        channel_id=channel.id, author_id=_user_id(viewer), content=body.content
    )
    post_repo.add(post)
    logger.info("Created post=%s channel=%s", post.id, channel.id)
    return _post_out(post)


@router.delete("/v1/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    post_id: UUID,
    viewer: Annotated[Viewer, Depends(require_viewer_user)],
) -> None:
    post, _ = _tenant_post(viewer, post_id)
    if not can_modify_post(viewer.context, post):
        logger.warning("Delete denied: user=%s post=%s", viewer.user_id, post.id)
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    post_repo.remove(post.id)
    logger.info("Deleted post=%s by user=%s", post.id, viewer.user_id)


@router.post("/v1/posts/{post_id}/pin", response_model=PostOut)
def pin_post(
    post_id: UUID,
    viewer: Annotated[Viewer, Depends(require_viewer_user)],
    body: PinIn | None = None,
) -> PostOut:
    post, _ = _tenant_post(viewer, post_id)
    if not can_pin_post(viewer.context):
        logger.warning("Pin denied: user=%s post=%s", viewer.user_id, post.id)
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    pinned = body.pinned if body is not None else True
    updated = post_repo.set_pinned(post.id, pinned)
    if updated is None:
        raise HTTPException(status_code=404, detail="post not found")
    return _post_out(updated)


def _readable_post(viewer: Viewer, post_id: UUID) -> Post:
    post, channel = _tenant_post(viewer, post_id)
    granted = can_access_resource(channel, viewer.membership, viewer.is_owner)
    if not check_access("channel", granted, viewer, channel):
        raise locked(f"Upgrade your membership to join #{channel.name}")
    return post


@router.get("/v1/posts/{post_id}/comments", response_model=list[CommentOut])
def list_comments(
    post_id: UUID,
    viewer: Annotated[Viewer, Depends(resolve_viewer)],
) -> list[CommentOut]:
    post = _readable_post(viewer, post_id)
    return [_comment_out(c) for c in post_repo.list_comments(post.id)]


@router.post(
    "/v1/posts/{post_id}/comments",
    response_model=CommentOut,
    status_code=status.HTTP_201_CREATED,
)
def create_comment(
    post_id: UUID,
    body: PostIn,
    viewer: Annotated[Viewer, Depends(require_member)],
) -> CommentOut:
    """Comment on a post.  Read-only channels still take comments."""
    post = _readable_post(viewer, post_id)
    comment = Comment.new(
        post_id=post.id, author_id=_user_id(viewer), content=body.content
    )
    try:
        post_repo.add_comment(comment)
    except KeyError:
        raise HTTPException(status_code=404, detail="post not found") from None
    logger.info("Created comment=%s post=%s", comment.id, post.id)
    return _comment_out(comment)


@router.delete(
    "/v1/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT
)
def delete_comment(
    comment_id: UUID,
    viewer: Annotated[Viewer, Depends(require_viewer_user)],
) -> None:
    comment = post_repo.get_comment(comment_id)
    if comment is None:
        raise HTTPException(status_code=404, detail="comment not found")
    try:
        _tenant_post(viewer, comment.post_id)
    except HTTPException:
        raise HTTPException(status_code=404, detail="comment not found") from None
    if not can_delete_comment(viewer.context, comment):
        logger.warning(
            "Delete denied: user=%s comment=%s", viewer.user_id, comment.id
        )
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    post_repo.remove_comment(comment.id)
    logger.info("Deleted comment=%s by user=%s", comment.id, viewer.user_id)


# --- Dashboard ---


@router.post(
    "/v1/orgs/{org_id}/channels",
    response_model=ChannelOut,
    status_code=status.HTTP_201_CREATED,
)
def create_channel(
    body: ChannelCreateIn,
    access: Annotated[OrgAccess, Depends(resolve_org_access)],
) -> ChannelOut:
    oid = access.organization.id
    if not can_manage_community(access.context):
        logger.warning(
            "Channel create denied: user=%s role=%s org=%s",
            access.context.user_id,
            access.context.role.value,
            oid,
        )
        raise HTTPException(status_code=403, detail="Insufficient org permissions")
    community = community_repo.get_default_community(oid)
    if community is None:
        raise HTTPException(status_code=409, detail="organization has no community")

    slug = slugify(body.slug or body.name)
    if not slug:
        raise HTTPException(status_code=422, detail="invalid channel slug")
    if community_repo.get_channel_by_slug(community.id, slug) is not None:
        raise HTTPException(status_code=409, detail="channel slug already taken")

    for tier_id in body.access_tier_ids:
        tier = tier_repo.get(tier_id)
        if tier is None or tier.organization_id != oid:
            raise HTTPException(status_code=422, detail="unknown tier")

    channel = Channel.new(
        community_id=community.id,
        name=body.name.strip(),
        slug=slug,
        type=body.type,
        is_public=body.is_public,
        access_tier_ids=frozenset(body.access_tier_ids),
        position=len(community_repo.list_channels(community.id)),
        description=body.description,
    )
    community_repo.add_channel(channel)
    logger.info("Created channel=%s slug=%s org=%s", channel.id, slug, oid)
    return ChannelOut(
        id=str(channel.id),
        name=channel.name,
        slug=channel.slug,
        type=channel.type.value,
        is_public=channel.is_public,
        locked=False,
        can_post=True,
    )
