"""
ecoleveling.engine.quests — Daily Quest Catalog
================================================

The quest pool is static configuration.  The three quests "active today"
are a pure function of the wall-clock date, so every server instance
agrees on them without a database round-trip::

    day_index = floor(unix_seconds(now) / 86400)
    quests    = [pool[(day_index + i) % len(pool)] for i in range(3)]

This catalog is the only place quest point values are defined; the
moderation pipeline reads them through :func:`quest_points`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

__all__ = [
    "DAILY_QUEST_COUNT",
    "QUEST_POOL",
    "Quest",
    "day_index",
    "get_quest",
    "quest_points",
    "today_quests",
]

SECONDS_PER_DAY = 86_400
DAILY_QUEST_COUNT = 3


@dataclass(frozen=True, slots=True)
class Quest:
    id: str
    title: str
    description: str
    points: int

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# The pool.  Add new quests at the end to keep existing rotations stable
# ---------------------------------------------------------------------------
QUEST_POOL: tuple[Quest, ...] = (
    Quest(
        id="pick-litter",
        title="Pick up 5 pieces of litter",
        description="Upload a photo of trash you removed from campus or your neighborhood.",
        points=10,
    ),
    Quest(
        id="reusable-bottle",
        title="Bring a reusable bottle",
        description=(
            "Show your reusable water bottle or mug instead of a "
            "single-use plastic bottle."
        ),
        points=5,
    ),
    Quest(
        id="green-innovation",
        title="Spot a green innovation",
        description=(
            "Share a picture of an eco-friendly feature "
            "(solar panels, refill station, bike racks, etc.)."
        ),
        points=5,
    ),
    Quest(
        id="before-after-cleanup",
        title="Before & after cleanup",
        description="Take a before and after photo of an area you cleaned or organized.",
        points=50,
    ),
    Quest(
        id="plant-care",
        title="Care for a plant",
        description="Show yourself watering, repotting, or tending to a plant or garden.",
        points=10,
    ),
    Quest(
        id="recycling-check",
        title="Check recycling labels",
        description=(
            "Take a photo of you correctly sorting items into "
            "recycling / compost / trash."
        ),
        points=20,
    ),
)

_QUESTS_BY_ID: dict[str, Quest] = {q.id: q for q in QUEST_POOL}


def _as_utc(now: datetime) -> datetime:
    # Naive datetimes are read as UTC, never as server-local time.
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now


def day_index(now: datetime) -> int:
    """Whole days elapsed since the Unix epoch at *now*."""
    return int(_as_utc(now).timestamp() // SECONDS_PER_DAY)


def today_quests(
    now: datetime | None = None,
    pool: Sequence[Quest] = QUEST_POOL,
    count: int = DAILY_QUEST_COUNT,
) -> list[Quest]:
    """Return the quests active on the calendar day containing *now*."""
    if not pool:
        return []
    if now is None:
        now = datetime.now(UTC)

    start = day_index(now)
    return [pool[(start + i) % len(pool)] for i in range(min(count, len(pool)))]


def get_quest(quest_id: str | None) -> Quest | None:
    if not quest_id:
        return None
    return _QUESTS_BY_ID.get(quest_id)


def quest_points(quest_id: str | None) -> int:
    """Point value of *quest_id*; unknown or missing quests are worth 0."""
    quest = get_quest(quest_id)
    return quest.points if quest else 0
