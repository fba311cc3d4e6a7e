"""
ecoleveling.api.routes.public — Quests and leaderboard (no auth)
=================================================================
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query

from ecoleveling.api.deps import get_config, get_engine
from ecoleveling.config import EcoConfig
from ecoleveling.constants import MAX_LEADERBOARD_LIMIT
from ecoleveling.database.engine import run_db
from ecoleveling.engine.quests import QUEST_POOL, today_quests
from ecoleveling.services import leaderboard_service

router = APIRouter(tags=["public"])


# ---------------------------------------------------------------------------
# GET /quests/today
# ---------------------------------------------------------------------------
@router.get("/quests/today")
def get_today_quests():
    """Today's three quests.  Identical on every server for a given UTC day."""
    now = datetime.now(UTC)
    return {
        "date": now.date().isoformat(),
        "quests": [q.to_dict() for q in today_quests(now)],
    }


@router.get("/quests")
def get_all_quests():
    return {"quests": [q.to_dict() for q in QUEST_POOL]}


# ---------------------------------------------------------------------------
# GET /leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard")
async def get_leaderboard(
    limit: int | None = Query(None, ge=1, le=MAX_LEADERBOARD_LIMIT),
    engine=Depends(get_engine),
    cfg: EcoConfig = Depends(get_config),
):
    """Users ranked by current points, annotated with likes and post counts."""
    entries = await run_db(
        leaderboard_service.get_leaderboard, engine, limit or cfg.leaderboard_limit
    )
    return [e.to_dict() for e in entries]
