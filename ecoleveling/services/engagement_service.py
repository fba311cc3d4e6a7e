"""
ecoleveling.services.engagement_service — Like Toggle
======================================================

Liking a post is a toggle keyed on ``(post_id, user_id)`` in the
``post_likes`` table.  Each like is worth one point to the post's author.

One transaction per toggle:
  * ``DELETE`` the like row.  If a row went away the user *was* liking the
    post: decrement the post's counter and the author's points.
  * Otherwise ``INSERT`` the like row inside a SAVEPOINT.  The primary key
    admits at most one row, so a concurrent duplicate toggle fails with
    ``IntegrityError`` and is reported as already-liked without touching
    any counter.

Counters only ever move with relative ``SET x = x ± 1`` statements.  The
author's balance is clamped at zero on the way down.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import case, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ecoleveling.database.models import Post, PostLike, PostStatus, User
from ecoleveling.errors import NotFound, Unauthorized

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LikeResult:
    liked: bool
    likes: int


def _adjust_author_points(session: Session, author_id: str | None, delta: int) -> None:
    if author_id is None or delta == 0:
        return
    if delta > 0:
        new_points = User.points + delta
    else:
        new_points = case((User.points + delta > 0, User.points + delta), else_=0)
    session.execute(
        update(User).where(User.id == author_id).values(points=new_points)
    )


def toggle_like(engine: Engine, post_id: str, user: User | None) -> LikeResult:
    """Flip *user*'s like on *post_id* and return the new state."""
    if user is None:
        raise Unauthorized("Log in to like posts")

    with Session(engine) as session:
        row = session.execute(
            select(Post.author_id, Post.status).where(Post.id == post_id)
        ).one_or_none()
        # Pending and declined posts are not public, so they cannot be liked
        if row is None or row.status not in (None, PostStatus.APPROVED.value):
            raise NotFound("Post not found")
        author_id = row.author_id

        removed = session.execute(
            delete(PostLike).where(
                PostLike.post_id == post_id, PostLike.user_id == user.id
            )
        ).rowcount

        if removed:
            liked = False
            delta = -1
            session.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(likes=case((Post.likes > 0, Post.likes - 1), else_=0))
            )
        else:
            liked = True
            delta = 1
            try:
                with session.begin_nested():
                    session.add(PostLike(post_id=post_id, user_id=user.id))
            except IntegrityError:
                # A concurrent toggle inserted the same row first
                delta = 0
            if delta:
                session.execute(
                    update(Post)
                    .where(Post.id == post_id)
                    .values(likes=Post.likes + 1)
                )

        _adjust_author_points(session, author_id, delta)
        likes = session.scalar(select(Post.likes).where(Post.id == post_id)) or 0
        session.commit()

    logger.debug(
        "User %s %s post %s (likes=%d)",
        user.id, "liked" if liked else "unliked", post_id, likes,
    )
    return LikeResult(liked=liked, likes=likes)


def has_liked(engine: Engine, post_id: str, user_id: str) -> bool:
    with Session(engine) as session:
        return session.get(PostLike, (post_id, user_id)) is not None


def liked_post_ids(engine: Engine, user_id: str, post_ids: list[str]) -> set[str]:
    """Subset of *post_ids* that *user_id* currently likes."""
    if not post_ids:
        return set()
    with Session(engine) as session:
        return set(session.scalars(
            select(PostLike.post_id).where(
                PostLike.user_id == user_id, PostLike.post_id.in_(post_ids)
            )
        ).all())
