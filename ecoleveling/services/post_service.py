"""
ecoleveling.services.post_service — Post Submission, Feed & Deletion
=====================================================================

Every new post starts ``pending``.  Only approved posts (or legacy posts
with no status at all) are publicly visible; moderation itself lives in
:mod:`ecoleveling.services.moderation_service`.

Counters (``likes``, ``comments``) are never written from here except on
creation; they belong to the engagement and comment services.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from ecoleveling.database.models import (
    AuditAction,
    Comment,
    Post,
    PostLike,
    PostStatus,
)
from ecoleveling.errors import Forbidden, NotFound, Unauthorized, ValidationError
from ecoleveling.services import audit_service

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Engine

    from ecoleveling.database.models import User

logger = logging.getLogger(__name__)


def visible_clause() -> ColumnElement[bool]:
    """Public-visibility filter: approved, or legacy with no status."""
    return or_(Post.status == PostStatus.APPROVED.value, Post.status.is_(None))


def is_visible(post: Post) -> bool:
    return post.status is None or post.status == PostStatus.APPROVED.value


def can_view(post: Post, user: User | None) -> bool:
    """Hidden posts remain readable by their author and by moderators."""
    if is_visible(post):
        return True
    if user is None:
        return False
    return user.is_moderator or (post.author_id is not None and post.author_id == user.id)


def _clean_body(body: str | None) -> str:
    cleaned = (body or "").strip()
    if not cleaned:
        raise ValidationError("Post body is required", field="body")
    return cleaned


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------
def submit_post(
    engine: Engine,
    *,
    body: str,
    media_url: str | None = None,
    quest_id: str | None = None,
    anonymous: bool | None = None,
    user: User | None = None,
    require_media: bool = True,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> Post:
    """Store a new post in ``pending`` status.

    The post is anonymous when the caller asks for it or when there is no
    logged-in user.  Otherwise the author id and a snapshot of the
    author's display name are recorded.
    """
    body = _clean_body(body)
    media_url = (media_url or "").strip() or None
    if require_media and media_url is None:
        raise ValidationError("A photo or video is required", field="media_url")

    is_anonymous = bool(anonymous) or user is None

    post = Post(
        author_id=user.id if user is not None else None,
        author_name=None if is_anonymous else user.name,
        anonymous=is_anonymous,
        body=body,
        media_url=media_url,
        quest_id=(quest_id or "").strip() or None,
        likes=0,
        comments=0,
        status=PostStatus.PENDING.value,
    )
    with Session(engine, expire_on_commit=False) as session:
        session.add(post)
        session.commit()

    logger.info(
        "Post %s submitted by %s (quest=%s), pending review",
        post.id, user.id if user else "guest", post.quest_id,
    )
    audit_service.record(
        engine,
        action=AuditAction.POST_CREATE,
        target_table="posts",
        target_id=post.id,
        actor=user,
        details={"quest_id": post.quest_id, "anonymous": is_anonymous},
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return post


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------
def list_feed(engine: Engine, limit: int | None = None) -> list[Post]:
    """Publicly visible posts, newest first."""
    query = select(Post).where(visible_clause()).order_by(Post.created_at.desc(), Post.id)
    if limit is not None:
        query = query.limit(limit)
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(query).all())


def get_post(engine: Engine, post_id: str) -> Post:
    with Session(engine, expire_on_commit=False) as session:
        post = session.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


def list_by_author(engine: Engine, author_id: str) -> list[Post]:
    """An author's public, attributed posts, newest first."""
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(Post)
            .where(
                Post.author_id == author_id,
                Post.anonymous.is_(False),
                visible_clause(),
            )
            .order_by(Post.created_at.desc(), Post.id)
        ).all())


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------
def update_post(
    engine: Engine,
    post_id: str,
    user: User | None,
    *,
    body: str | None = None,
    media_url: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> Post:
    """Edit body/media of the caller's own post.  Status is never touched."""
    if user is None:
        raise Unauthorized()

    with Session(engine, expire_on_commit=False) as session:
        post = session.get(Post, post_id)
        if post is None:
            raise NotFound("Post not found")
        if post.author_id is None or post.author_id != user.id:
            raise Forbidden("Only the author can edit this post")

        changed: list[str] = []
        if body is not None:
            post.body = _clean_body(body)
            changed.append("body")
        if media_url is not None:
            post.media_url = media_url.strip() or None
            changed.append("media_url")
        session.commit()

    if changed:
        audit_service.record(
            engine,
            action=AuditAction.POST_UPDATE,
            target_table="posts",
            target_id=post_id,
            actor=user,
            details={"changed": changed},
            ip_address=ip_address,
            user_agent=user_agent,
        )
    return post


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------
def delete_post(
    engine: Engine,
    post_id: str,
    user: User | None,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> int:
    """Delete a post together with its comments and likes.

    Allowed for the post's author and for moderators.  Returns the number
    of comments removed.
    """
    if user is None:
        raise Unauthorized()

    with Session(engine) as session:
        post = session.get(Post, post_id)
        if post is None:
            raise NotFound("Post not found")
        is_author = post.author_id is not None and post.author_id == user.id
        if not (is_author or user.is_moderator):
            raise Forbidden("Only the author or a moderator can delete this post")

        removed = session.execute(
            delete(Comment).where(Comment.post_id == post_id)
        ).rowcount
        session.execute(delete(PostLike).where(PostLike.post_id == post_id))
        session.execute(delete(Post).where(Post.id == post_id))
        session.commit()

    logger.info("Post %s deleted by %s (%d comments)", post_id, user.id, removed)
    audit_service.record(
        engine,
        action=AuditAction.POST_DELETE,
        target_table="posts",
        target_id=post_id,
        actor=user,
        details={"comments_removed": removed},
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return removed
