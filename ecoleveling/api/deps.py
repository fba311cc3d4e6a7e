"""
ecoleveling.api.deps — FastAPI dependency injection
====================================================

The engine and config are process-wide, created once and injected into
every handler.  The current user is resolved per request from the signed
session cookie (or an ``Authorization: Bearer`` header) and threaded into
handlers as ``User | None``.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from ecoleveling.config import EcoConfig, load_config
from ecoleveling.database.engine import create_db_engine
from ecoleveling.database.models import User
from ecoleveling.errors import Forbidden, Unauthorized
from ecoleveling.services.auth_service import JWT_ALGORITHM, decode_token

__all__ = [
    "JWT_ALGORITHM",
    "JWT_SECRET",
    "CurrentUser",
    "get_config",
    "get_current_user",
    "get_engine",
    "require_moderator",
    "require_user",
    "resolve_current_user",
]

_WEAK_SECRETS = frozenset({
    "eco-leveling-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> EcoConfig:
    return load_config()


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------
def _request_token(request: Request, cookie_name: str) -> str | None:
    token = request.cookies.get(cookie_name)
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    if authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


def resolve_current_user(request: Request, engine: Engine, cfg: EcoConfig) -> User | None:
    """Return the logged-in user, or ``None``.

    Missing, malformed, expired or orphaned tokens all resolve to ``None``
    so anonymous paths keep working.
    """
    user_id = decode_token(_request_token(request, cfg.session_cookie_name), JWT_SECRET)
    if user_id is None:
        return None
    with Session(engine, expire_on_commit=False) as session:
        return session.get(User, user_id)


def get_current_user(
    request: Request,
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[EcoConfig, Depends(get_config)],
) -> User | None:
    return resolve_current_user(request, engine, cfg)


CurrentUser = Annotated[User | None, Depends(get_current_user)]


def require_user(user: CurrentUser) -> User:
    """Current user, or 401."""
    if user is None:
        raise Unauthorized()
    return user


def require_moderator(user: CurrentUser) -> User:
    """Current user if they are a moderator, else 403."""
    if user is None or not user.is_moderator:
        raise Forbidden("Moderator access required")
    return user
