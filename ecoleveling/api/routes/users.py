"""
ecoleveling.api.routes.users — Own profile and public profiles
===============================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from ecoleveling.api.deps import get_config, get_engine, require_user
from ecoleveling.config import EcoConfig
from ecoleveling.constants import handle_for
from ecoleveling.database.engine import run_db
from ecoleveling.database.models import User
from ecoleveling.services import profile_service

router = APIRouter(prefix="/users", tags=["users"])


class ProfileUpdate(BaseModel):
    name: str | None = None
    bio: str | None = None
    school: str | None = None
    profile_pic_url: str | None = None


def _profile_dict(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "handle": handle_for(u.name),
        "school": u.school or "",
        "bio": u.bio or "",
        "avatar_url": u.profile_pic_url,
        "points": u.points,
        "is_moderator": u.is_moderator,
        "joined_at": u.created_at.isoformat() if u.created_at else None,
    }


@router.get("/me")
def get_me(user: Annotated[User, Depends(require_user)]):
    return _profile_dict(user)


@router.patch("/me")
async def update_me(
    body: ProfileUpdate,
    user: Annotated[User, Depends(require_user)],
    engine=Depends(get_engine),
):
    """Edit the current profile.  A rename refreshes names on past posts and comments."""
    kwargs = {}
    if "profile_pic_url" in body.model_fields_set:
        kwargs["profile_pic_url"] = body.profile_pic_url
    updated = await run_db(
        profile_service.update_profile,
        engine,
        user,
        name=body.name,
        bio=body.bio,
        school=body.school,
        **kwargs,
    )
    return _profile_dict(updated)


@router.delete("/me")
async def delete_me(
    response: Response,
    user: Annotated[User, Depends(require_user)],
    engine=Depends(get_engine),
    cfg: EcoConfig = Depends(get_config),
):
    await run_db(profile_service.delete_account, engine, user)
    response.delete_cookie(key=cfg.session_cookie_name, path="/")
    return {"deleted": 1}


@router.get("/{user_id}")
async def get_profile(user_id: str, engine=Depends(get_engine)):
    """Public profile; moderator flag is omitted."""
    user = await run_db(profile_service.get_profile, engine, user_id)
    data = _profile_dict(user)
    data.pop("is_moderator")
    return data
