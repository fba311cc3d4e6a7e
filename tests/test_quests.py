"""
tests/test_quests.py — Daily Quest Rotation
=============================================
The active quests are a pure function of the UTC calendar day.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from ecoleveling.engine.quests import (
    QUEST_POOL,
    Quest,
    day_index,
    get_quest,
    quest_points,
    today_quests,
)


def _ids(quests: list[Quest]) -> list[str]:
    return [q.id for q in quests]


class TestCatalog:
    def test_pool_has_six_unique_quests(self):
        assert len(QUEST_POOL) == 6
        assert len({q.id for q in QUEST_POOL}) == 6

    def test_known_point_values(self):
        assert quest_points("pick-litter") == 10
        assert quest_points("before-after-cleanup") == 50
        assert quest_points("recycling-check") == 20

    def test_unknown_or_missing_quest_is_worth_zero(self):
        assert quest_points("does-not-exist") == 0
        assert quest_points(None) == 0
        assert quest_points("") == 0
        assert get_quest("does-not-exist") is None


class TestTodayQuests:
    def test_epoch_day_starts_at_pool_head(self):
        quests = today_quests(datetime(1970, 1, 1, 12, tzinfo=UTC))
        assert _ids(quests) == ["pick-litter", "reusable-bottle", "green-innovation"]

    def test_same_day_is_identical(self):
        morning = datetime(2026, 3, 14, 0, 0, 1, tzinfo=UTC)
        night = datetime(2026, 3, 14, 23, 59, 59, tzinfo=UTC)
        assert _ids(today_quests(morning)) == _ids(today_quests(night))

    def test_consecutive_days_rotate_by_one(self):
        day = datetime(2026, 3, 14, 9, tzinfo=UTC)
        today = _ids(today_quests(day))
        tomorrow = _ids(today_quests(day + timedelta(days=1)))
        assert tomorrow[:2] == today[1:]

    def test_wraps_around_the_pool(self):
        # day index 5 → last pool entry followed by the first two
        day = datetime(1970, 1, 6, tzinfo=UTC)
        assert day_index(day) == 5
        assert _ids(today_quests(day)) == [
            "recycling-check",
            "pick-litter",
            "reusable-bottle",
        ]

    def test_naive_datetime_is_read_as_utc(self):
        naive = datetime(2026, 3, 14, 23, 30)
        aware = datetime(2026, 3, 14, 23, 30, tzinfo=UTC)
        assert _ids(today_quests(naive)) == _ids(today_quests(aware))

    def test_offset_datetime_uses_utc_day(self):
        # 01:00 at UTC+2 is still the previous UTC day
        local = datetime(2026, 3, 15, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        utc_prev = datetime(2026, 3, 14, 23, 0, tzinfo=UTC)
        assert _ids(today_quests(local)) == _ids(today_quests(utc_prev))

    def test_empty_pool(self):
        assert today_quests(datetime(2026, 1, 1, tzinfo=UTC), pool=()) == []

    def test_small_pool_returns_no_duplicates(self):
        pool = QUEST_POOL[:2]
        quests = today_quests(datetime(2026, 1, 1, tzinfo=UTC), pool=pool)
        assert len(quests) == 2
        assert len(set(_ids(quests))) == 2


class TestQuestRoutes:
    def test_today_endpoint(self, client):
        resp = client.get("/api/quests/today")
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["quests"]) == 3
        assert set(data["quests"][0]) == {"id", "title", "description", "points"}
        assert data["date"] == datetime.now(UTC).date().isoformat()

    def test_full_catalog_endpoint(self, client):
        resp = client.get("/api/quests")
        assert resp.status_code == 200
        assert len(resp.json()["quests"]) == len(QUEST_POOL)
