"""
ecoleveling.services.profile_service — Profile Reads & Edits
=============================================================

Posts and comments keep a snapshot of their author's display name.  When
a user renames themselves the snapshot is refreshed on every attributed
post and comment in the same transaction as the rename, so feeds never
need a live join.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ecoleveling.database.models import AuditAction, Comment, Post, User
from ecoleveling.errors import Conflict, NotFound, Unauthorized
from ecoleveling.services import audit_service
from ecoleveling.services.auth_service import clean_name, name_taken

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

_UNSET = object()


def get_profile(engine: Engine, user_id: str) -> User:
    with Session(engine, expire_on_commit=False) as session:
        user = session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def update_profile(
    engine: Engine,
    user: User | None,
    *,
    name: str | None = None,
    bio: str | None = None,
    school: str | None = None,
    profile_pic_url=_UNSET,
) -> User:
    """Apply the given profile fields; ``None`` means "leave unchanged".

    *profile_pic_url* may be set to ``None`` explicitly to clear the avatar.
    """
    if user is None:
        raise Unauthorized()

    with Session(engine, expire_on_commit=False) as session:
        current = session.get(User, user.id)
        if current is None:
            raise NotFound("User not found")

        changed: list[str] = []
        renamed = False
        if name is not None:
            new_name = clean_name(name)
            if new_name != current.name:
                if name_taken(session, new_name, exclude_id=current.id):
                    raise Conflict("That name is already taken")
                current.name = new_name
                renamed = True
                changed.append("name")
        if school is not None:
            current.school = school.strip() or None
            changed.append("school")
        if bio is not None:
            current.bio = bio or None
            changed.append("bio")
        if profile_pic_url is not _UNSET:
            current.profile_pic_url = profile_pic_url or None
            changed.append("profile_pic_url")

        if renamed:
            session.execute(
                update(Post)
                .where(Post.author_id == current.id, Post.anonymous.is_(False))
                .values(author_name=current.name)
            )
            session.execute(
                update(Comment)
                .where(Comment.author_id == current.id, Comment.anonymous.is_(False))
                .values(author_name=current.name)
            )
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise Conflict("That name is already taken") from exc

    if renamed:
        logger.info("User %s renamed to %r; snapshots refreshed", current.id, current.name)
    if changed:
        audit_service.record(
            engine,
            action=AuditAction.USER_UPDATE,
            target_table="users",
            target_id=current.id,
            actor=current,
            details={"changed": changed},
        )
    return current


def delete_account(engine: Engine, user: User | None) -> None:
    """Remove *user*.  Their posts stay, with the author reference cleared."""
    if user is None:
        raise Unauthorized()

    with Session(engine) as session:
        current = session.get(User, user.id)
        if current is None:
            raise NotFound("User not found")
        session.execute(
            update(Post).where(Post.author_id == user.id).values(author_id=None)
        )
        session.delete(current)
        session.commit()

    logger.info("User %s deleted their account", user.id)
    audit_service.record(
        engine,
        action=AuditAction.USER_DELETE,
        target_table="users",
        target_id=user.id,
        actor=user,
    )
