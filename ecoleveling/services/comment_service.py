"""
ecoleveling.services.comment_service — Comments
================================================

Comments hang off an existing post.  Threads on pending or declined posts
are only reachable by the post's author and by moderators; anyone else
gets :class:`NotFound`, as for the post itself.

The parent's ``comments`` counter moves with relative UPDATEs in the same
transaction as the insert/delete.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from ecoleveling.database.models import AuditAction, Comment, Post
from ecoleveling.errors import Forbidden, NotFound, Unauthorized, ValidationError
from ecoleveling.services import audit_service
from ecoleveling.services.post_service import can_view

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from ecoleveling.database.models import User

logger = logging.getLogger(__name__)


def _clean_body(body: str | None) -> str:
    cleaned = (body or "").strip()
    if not cleaned:
        raise ValidationError("Comment body is required", field="body")
    return cleaned


def list_for_post(
    engine: Engine, post_id: str, user: User | None = None
) -> list[Comment]:
    """Comments on *post_id*, oldest first.  Empty for an unknown post."""
    with Session(engine, expire_on_commit=False) as session:
        post = session.get(Post, post_id)
        if post is None:
            return []
        if not can_view(post, user):
            raise NotFound("Post not found")
        return list(session.scalars(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.asc(), Comment.id)
        ).all())


def get_comment(engine: Engine, comment_id: str) -> Comment:
    with Session(engine, expire_on_commit=False) as session:
        comment = session.get(Comment, comment_id)
    if comment is None:
        raise NotFound("Comment not found")
    return comment


def create_comment(
    engine: Engine,
    *,
    post_id: str,
    body: str,
    user: User | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> Comment:
    """Attach a comment to *post_id*; anonymous when there is no user."""
    body = _clean_body(body)

    with Session(engine, expire_on_commit=False) as session:
        post = session.get(Post, post_id)
        if post is None or not can_view(post, user):
            raise NotFound("Post not found")

        comment = Comment(
            post_id=post_id,
            author_id=user.id if user else None,
            author_name=user.name if user else None,
            anonymous=user is None,
            body=body,
            likes=0,
        )
        session.add(comment)
        session.execute(
            update(Post).where(Post.id == post_id).values(comments=Post.comments + 1)
        )
        session.commit()

    audit_service.record(
        engine,
        action=AuditAction.COMMENT_CREATE,
        target_table="comments",
        target_id=comment.id,
        actor=user,
        details={"post_id": post_id},
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return comment


def update_comment(
    engine: Engine,
    comment_id: str,
    user: User | None,
    body: str,
) -> Comment:
    if user is None:
        raise Unauthorized()
    body = _clean_body(body)

    with Session(engine, expire_on_commit=False) as session:
        comment = session.get(Comment, comment_id)
        if comment is None:
            raise NotFound("Comment not found")
        if comment.author_id is None or comment.author_id != user.id:
            raise Forbidden("Only the author can edit this comment")
        comment.body = body
        session.commit()

    audit_service.record(
        engine,
        action=AuditAction.COMMENT_UPDATE,
        target_table="comments",
        target_id=comment_id,
        actor=user,
        details={"changed": ["body"]},
    )
    return comment


def delete_comment(engine: Engine, comment_id: str, user: User | None) -> None:
    """Delete a comment (author or moderator) and decrement its post's counter."""
    if user is None:
        raise Unauthorized()

    with Session(engine) as session:
        comment = session.get(Comment, comment_id)
        if comment is None:
            raise NotFound("Comment not found")
        is_author = comment.author_id is not None and comment.author_id == user.id
        if not (is_author or user.is_moderator):
            raise Forbidden("Only the author or a moderator can delete this comment")

        post_id = comment.post_id
        session.delete(comment)
        session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(comments=case((Post.comments > 0, Post.comments - 1), else_=0))
        )
        session.commit()

    logger.info("Comment %s on post %s deleted by %s", comment_id, post_id, user.id)
    audit_service.record(
        engine,
        action=AuditAction.COMMENT_DELETE,
        target_table="comments",
        target_id=comment_id,
        actor=user,
        details={"post_id": post_id},
    )
