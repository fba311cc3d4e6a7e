"""
ecoleveling.services.auth_service — Registration, Login & Session Tokens
=========================================================================

Passwords are stored as salted Werkzeug hashes.  Session tokens are
HS256 JWTs whose ``sub`` claim is the user id; the HTTP layer carries
them in an httpOnly cookie.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import jwt
from jwt.exceptions import InvalidTokenError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from ecoleveling.constants import MAX_NAME_LENGTH, MIN_NAME_LENGTH, MIN_PASSWORD_LENGTH
from ecoleveling.database.models import User
from ecoleveling.errors import Conflict, Unauthorized, ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def clean_name(name: str | None) -> str:
    """Trim and validate a display name."""
    cleaned = (name or "").strip()
    if len(cleaned) < MIN_NAME_LENGTH:
        raise ValidationError(
            f"Name must be at least {MIN_NAME_LENGTH} characters", field="name"
        )
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"Name must be at most {MAX_NAME_LENGTH} characters", field="name"
        )
    return cleaned


def _check_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            field="password",
        )
    return password


def name_taken(session: Session, name: str, exclude_id: str | None = None) -> bool:
    query = select(User.id).where(User.name == name)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    return session.scalar(query) is not None


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------
def register(
    engine: Engine,
    name: str,
    password: str,
    profile_pic_url: str | None = None,
) -> User:
    """Create a user with 0 points and no moderator rights.

    Raises :class:`ValidationError` for short names/passwords and
    :class:`Conflict` when the name is taken.
    """
    name = clean_name(name)
    password = _check_password(password)

    with Session(engine, expire_on_commit=False) as session:
        if name_taken(session, name):
            raise Conflict("User already exists")

        user = User(
            name=name,
            password_hash=generate_password_hash(password),
            profile_pic_url=profile_pic_url or None,
            points=0,
            is_moderator=False,
        )
        session.add(user)
        try:
            session.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent registration with the same name
            session.rollback()
            raise Conflict("User already exists") from exc

    logger.info("Created user %s (%s)", user.id, user.name)
    return user


def authenticate(engine: Engine, name: str, password: str) -> User:
    """Return the user for valid credentials, else raise :class:`Unauthorized`."""
    with Session(engine, expire_on_commit=False) as session:
        user = session.scalar(select(User).where(User.name == (name or "").strip()))

    if user is None or not check_password_hash(user.password_hash, password or ""):
        logger.warning("Rejected login for %r", name)
        raise Unauthorized("Invalid credentials")
    return user


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------
def issue_token(user_id: str, secret: str, ttl_hours: int = 24) -> str:
    payload = {
        "sub": user_id,
        "exp": datetime.now(UTC) + timedelta(hours=ttl_hours),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str | None, secret: str) -> str | None:
    """Return the user id in *token*, or ``None`` for anything invalid."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        return None
    sub = payload.get("sub")
    return sub if isinstance(sub, str) and sub else None


def public_user(user: User) -> dict:
    """Shape returned by ``/auth/me`` and ``/auth/login``."""
    return {
        "id": user.id,
        "name": user.name,
        "profile_pic_url": user.profile_pic_url,
        "points": user.points,
        "is_moderator": user.is_moderator,
    }
