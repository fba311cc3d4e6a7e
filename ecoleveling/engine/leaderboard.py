"""
ecoleveling.engine.leaderboard — Leaderboard Ranking
=====================================================

Pure ranking step.  No DB I/O: the service hands in per-author aggregates
(summed likes, post counts) and the live user rows, and gets back ranked
entries.

Ranking is by the author's *current* point balance, which already folds
in moderation credits and like deltas.  Summed likes and post counts are
annotations (and tie-breakers), not the ranking signal.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ecoleveling.constants import ANONYMOUS_NAME, handle_for

if TYPE_CHECKING:
    from ecoleveling.database.models import User


@dataclass(frozen=True, slots=True)
class AuthorAggregate:
    """Per-author totals over approved, non-anonymous posts."""

    author_id: str
    likes: int
    posts: int


@dataclass
class LeaderboardEntry:
    user_id: str
    name: str
    avatar_url: str | None
    school: str | None
    points: int
    likes: int
    posts: int
    rank: int = 0
    placeholder: bool = False

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "id": self.user_id,
            "name": self.name,
            "handle": handle_for(self.name),
            "avatar_url": self.avatar_url,
            "school": self.school,
            "points": self.points,
            "likes": self.likes,
            "posts": self.posts,
        }


def resolve_entry(agg: AuthorAggregate, user: User | None) -> LeaderboardEntry:
    """Join one aggregate with its live user row.

    A missing user yields an ``Anonymous`` placeholder with zero points.
    """
    if user is None:
        return LeaderboardEntry(
            user_id=agg.author_id,
            name=ANONYMOUS_NAME,
            avatar_url=None,
            school=None,
            points=0,
            likes=agg.likes,
            posts=agg.posts,
            placeholder=True,
        )
    return LeaderboardEntry(
        user_id=user.id,
        name=user.name,
        avatar_url=user.profile_pic_url,
        school=user.school,
        points=user.points,
        likes=agg.likes,
        posts=agg.posts,
    )


def build_leaderboard(
    aggregates: Iterable[AuthorAggregate],
    users: Mapping[str, User],
    limit: int,
) -> list[LeaderboardEntry]:
    """Rank authors by points (desc), then likes, posts and name.

    Placeholder entries are dropped before truncation, so the result holds
    up to *limit* identifiable users.
    """
    entries = [resolve_entry(agg, users.get(agg.author_id)) for agg in aggregates]
    entries = [e for e in entries if not e.placeholder]
    entries.sort(key=lambda e: (-e.points, -e.likes, -e.posts, e.name.lower()))

    ranked = entries[: max(limit, 0)]
    for i, entry in enumerate(ranked, start=1):
        entry.rank = i
    return ranked
