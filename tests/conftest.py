"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of ecoleveling.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, update  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from werkzeug.security import generate_password_hash  # noqa: E402

from ecoleveling.config import EcoConfig  # noqa: E402
from ecoleveling.database.engine import enable_sqlite_foreign_keys  # noqa: E402
from ecoleveling.database.models import Base, Post, PostStatus, User  # noqa: E402

TEST_PASSWORD = "pw123"


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Eco-Leveling tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def test_config() -> EcoConfig:
    return EcoConfig(community_name="Test Campus", require_media=False)


@pytest.fixture
def client(db_engine, test_config):
    """FastAPI TestClient bound to the in-memory database.

    The lifespan is not entered, so no real DATABASE_URL is needed.
    """
    from fastapi.testclient import TestClient

    from ecoleveling.api import deps
    from ecoleveling.api.main import app
    from ecoleveling.api.routes import posts as post_routes

    # Key the overrides on the functions the routers were built with
    app.dependency_overrides[post_routes.get_engine] = lambda: db_engine
    app.dependency_overrides[post_routes.get_config] = lambda: test_config
    # ...and on the current deps functions, in case deps was reloaded since
    # (test_startup reloads it), which rebinds lazily-resolved annotations
    app.dependency_overrides[deps.get_engine] = lambda: db_engine
    app.dependency_overrides[deps.get_config] = lambda: test_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories (plain functions so tests can call them with arguments)
# ---------------------------------------------------------------------------
def make_user(
    engine: Engine,
    name: str = "alice",
    *,
    moderator: bool = False,
    points: int = 0,
    password: str = TEST_PASSWORD,
) -> User:
    with Session(engine, expire_on_commit=False) as session:
        user = User(
            name=name,
            password_hash=generate_password_hash(password),
            is_moderator=moderator,
            points=points,
        )
        session.add(user)
        session.commit()
    return user


def make_post(
    engine: Engine,
    author: User | None = None,
    *,
    status: str | None = PostStatus.PENDING.value,
    quest_id: str | None = None,
    anonymous: bool = False,
    likes: int = 0,
    body: str = "Cleaned up the courtyard",
) -> Post:
    with Session(engine, expire_on_commit=False) as session:
        post = Post(
            author_id=author.id if author else None,
            author_name=None if anonymous or author is None else author.name,
            anonymous=anonymous or author is None,
            body=body,
            media_url="/api/uploads/abc.jpg",
            quest_id=quest_id,
            likes=likes,
            comments=0,
            status=status,
        )
        session.add(post)
        session.commit()
        if status is None:
            # Legacy row from before moderation existed
            session.execute(update(Post).where(Post.id == post.id).values(status=None))
            session.commit()
            post.status = None
    return post


def reload_user(engine: Engine, user_id: str) -> User | None:
    with Session(engine, expire_on_commit=False) as session:
        return session.get(User, user_id)


def reload_post(engine: Engine, post_id: str) -> Post | None:
    with Session(engine, expire_on_commit=False) as session:
        return session.get(Post, post_id)


def bearer(user: User) -> dict:
    """Authorization header carrying a fresh session token for *user*."""
    from ecoleveling.api.deps import JWT_SECRET
    from ecoleveling.services.auth_service import issue_token

    return {"Authorization": f"Bearer {issue_token(user.id, JWT_SECRET)}"}
