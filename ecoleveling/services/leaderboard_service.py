"""
ecoleveling.services.leaderboard_service — Leaderboard Aggregation
===================================================================

Recomputed on every request from current post and user state:

  1. ``GROUP BY author_id`` over approved (or legacy), non-anonymous,
     attributed posts → summed likes and post counts
  2. Load the live user rows for those authors
  3. Rank with :func:`ecoleveling.engine.leaderboard.build_leaderboard`
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ecoleveling.database.models import Post, User
from ecoleveling.engine.leaderboard import (
    AuthorAggregate,
    LeaderboardEntry,
    build_leaderboard,
)
from ecoleveling.services.post_service import visible_clause

if TYPE_CHECKING:
    from sqlalchemy import Engine


def author_aggregates(session: Session) -> list[AuthorAggregate]:
    rows = session.execute(
        select(
            Post.author_id,
            func.coalesce(func.sum(Post.likes), 0).label("likes"),
            func.count().label("posts"),
        )
        .where(
            visible_clause(),
            Post.anonymous.is_(False),
            Post.author_id.is_not(None),
        )
        .group_by(Post.author_id)
    ).all()
    return [
        AuthorAggregate(author_id=row.author_id, likes=int(row.likes), posts=int(row.posts))
        for row in rows
    ]


def get_leaderboard(engine: Engine, limit: int = 50) -> list[LeaderboardEntry]:
    with Session(engine) as session:
        aggregates = author_aggregates(session)
        author_ids = [agg.author_id for agg in aggregates]
        users = {
            u.id: u for u in session.scalars(
                select(User).where(User.id.in_(author_ids))
            ).all()
        } if author_ids else {}
        return build_leaderboard(aggregates, users, limit)
