"""
ecoleveling.services.moderation_service — Moderation Pipeline
==============================================================

Moderators move a post ``pending → approved`` or ``pending → declined``,
exactly once.  Approval of a quest-tagged post credits its author with the
quest's point value from :mod:`ecoleveling.engine.quests`.

Each decision is one transaction:
  1. Conditional UPDATE ``... WHERE id = :id AND status = 'pending'``
  2. Zero rows matched → the post is missing (404) or already decided (409)
  3. On approve: relative ``points = points + :value`` on the author
  4. Commit, then a best-effort audit row

Because step 1 only matches pending posts, replaying an approval can never
credit points twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ecoleveling.database.models import AuditAction, Post, PostStatus, User
from ecoleveling.engine.quests import quest_points
from ecoleveling.errors import Conflict, Forbidden, NotFound, ValidationError
from ecoleveling.services import audit_service

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

DECISIONS: dict[str, PostStatus] = {
    "approve": PostStatus.APPROVED,
    "decline": PostStatus.DECLINED,
}


@dataclass(frozen=True, slots=True)
class ModerationResult:
    post_id: str
    status: str
    points_awarded: int = 0
    author_id: str | None = None


def _require_moderator(user: User | None) -> User:
    if user is None or not user.is_moderator:
        raise Forbidden("Moderator access required")
    return user


def list_pending(engine: Engine, moderator: User | None) -> list[Post]:
    """All pending posts, oldest first."""
    _require_moderator(moderator)
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(Post)
            .where(Post.status == PostStatus.PENDING.value)
            .order_by(Post.created_at.asc(), Post.id)
        ).all())


def moderate_post(
    engine: Engine,
    post_id: str,
    decision: str,
    moderator: User | None,
    reason: str | None = None,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> ModerationResult:
    """Approve or decline a pending post.

    Raises
    ------
    Forbidden
        *moderator* is missing or lacks the moderator flag.
    ValidationError
        *decision* is not ``approve`` / ``decline``.
    NotFound
        No post with *post_id*.
    Conflict
        The post has already been moderated.
    """
    _require_moderator(moderator)
    new_status = DECISIONS.get((decision or "").strip().lower())
    if new_status is None:
        raise ValidationError("Decision must be 'approve' or 'decline'", field="decision")

    values: dict = {
        "status": new_status.value,
        "moderated_at": datetime.now(UTC),
        "moderated_by": moderator.id,
    }
    if new_status is PostStatus.DECLINED and reason:
        values["decline_reason"] = reason.strip() or None

    with Session(engine) as session:
        matched = session.execute(
            update(Post)
            .where(Post.id == post_id, Post.status == PostStatus.PENDING.value)
            .values(**values)
        ).rowcount

        if matched == 0:
            session.rollback()
            if session.get(Post, post_id) is None:
                raise NotFound("Post not found")
            raise Conflict("Post has already been moderated")

        author_id, quest_id = session.execute(
            select(Post.author_id, Post.quest_id).where(Post.id == post_id)
        ).one()

        awarded = 0
        if new_status is PostStatus.APPROVED and author_id is not None:
            awarded = quest_points(quest_id)
            if awarded:
                session.execute(
                    update(User)
                    .where(User.id == author_id)
                    .values(points=User.points + awarded)
                )
        session.commit()

    logger.info(
        "Post %s %s by moderator %s (+%d pts to %s)",
        post_id, new_status.value, moderator.id, awarded, author_id,
    )
    audit_service.record(
        engine,
        action=AuditAction.POST_MODERATE,
        target_table="posts",
        target_id=post_id,
        actor=moderator,
        details={
            "decision": decision,
            "reason": reason,
            "quest_id": quest_id,
            "points_awarded": awarded,
        },
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return ModerationResult(
        post_id=post_id,
        status=new_status.value,
        points_awarded=awarded,
        author_id=author_id,
    )
