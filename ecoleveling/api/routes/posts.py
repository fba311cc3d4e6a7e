"""
ecoleveling.api.routes.posts — Feed, submission, moderation and likes
======================================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from ecoleveling.api.deps import (
    CurrentUser,
    get_config,
    get_engine,
    require_moderator,
    require_user,
)
from ecoleveling.config import EcoConfig
from ecoleveling.constants import ANONYMOUS_NAME, media_type
from ecoleveling.database.engine import run_db
from ecoleveling.database.models import Post, User
from ecoleveling.errors import NotFound
from ecoleveling.services import (
    engagement_service,
    moderation_service,
    post_service,
    upload_service,
)
from ecoleveling.services.audit_service import client_meta

router = APIRouter(prefix="/posts", tags=["posts"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class PostCreate(BaseModel):
    body: str
    media_url: str | None = None
    # Older clients send one of these instead of media_url
    image_url: str | None = None
    video_url: str | None = None
    quest_id: str | None = None
    anonymous: bool | None = None


class PostUpdate(BaseModel):
    body: str | None = None
    media_url: str | None = None


class ModerationDecision(BaseModel):
    decision: str
    reason: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _post_dict(p: Post, liked: bool | None = None) -> dict:
    data = {
        "id": p.id,
        "author_id": None if p.anonymous else p.author_id,
        "author_name": ANONYMOUS_NAME if p.anonymous else p.author_name,
        "anonymous": p.anonymous,
        "body": p.body,
        "media_url": p.media_url,
        "media_type": media_type(p.media_url),
        "likes": p.likes,
        "comments": p.comments,
        "quest_id": p.quest_id,
        "status": p.status or "approved",
        "decline_reason": p.decline_reason,
        "created_at": p.created_at.isoformat() if p.created_at else None,
        "moderated_at": p.moderated_at.isoformat() if p.moderated_at else None,
    }
    if liked is not None:
        data["liked_by_me"] = liked
    return data


# ---------------------------------------------------------------------------
# Feed & submission
# ---------------------------------------------------------------------------
@router.get("")
async def list_feed(
    user: CurrentUser,
    limit: int | None = Query(None, ge=1, le=500),
    engine=Depends(get_engine),
):
    """Approved posts, newest first.  Annotated with ``liked_by_me`` when logged in."""
    posts = await run_db(post_service.list_feed, engine, limit)
    if user is None:
        return [_post_dict(p) for p in posts]
    liked = await run_db(
        engagement_service.liked_post_ids, engine, user.id, [p.id for p in posts]
    )
    return [_post_dict(p, liked=p.id in liked) for p in posts]


@router.post("", status_code=201)
async def create_post(
    body: PostCreate,
    request: Request,
    user: CurrentUser,
    engine=Depends(get_engine),
    cfg: EcoConfig = Depends(get_config),
):
    ip, ua = client_meta(request)
    post = await run_db(
        post_service.submit_post,
        engine,
        body=body.body,
        media_url=body.media_url or body.image_url or body.video_url,
        quest_id=body.quest_id,
        anonymous=body.anonymous,
        user=user,
        require_media=cfg.require_media,
        ip_address=ip,
        user_agent=ua,
    )
    return {
        "id": post.id,
        "status": post.status,
        "message": "Post submitted and is pending moderator approval.",
    }


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------
@router.get("/moderation")
async def list_pending(
    moderator: Annotated[User, Depends(require_moderator)],
    engine=Depends(get_engine),
):
    posts = await run_db(moderation_service.list_pending, engine, moderator)
    return [_post_dict(p) for p in posts]


@router.post("/{post_id}/moderate")
async def moderate_post(
    post_id: str,
    body: ModerationDecision,
    request: Request,
    moderator: Annotated[User, Depends(require_moderator)],
    engine=Depends(get_engine),
):
    ip, ua = client_meta(request)
    result = await run_db(
        moderation_service.moderate_post,
        engine,
        post_id,
        body.decision,
        moderator,
        body.reason,
        ip_address=ip,
        user_agent=ua,
    )
    return {
        "success": True,
        "status": result.status,
        "points_awarded": result.points_awarded,
    }


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------
@router.post("/{post_id}/like")
async def toggle_like(
    post_id: str,
    user: Annotated[User, Depends(require_user)],
    engine=Depends(get_engine),
):
    result = await run_db(engagement_service.toggle_like, engine, post_id, user)
    return {"liked": result.liked, "likes": result.likes}


# ---------------------------------------------------------------------------
# Per-author listing
# ---------------------------------------------------------------------------
@router.get("/by-author/{author_id}")
async def list_by_author(author_id: str, engine=Depends(get_engine)):
    posts = await run_db(post_service.list_by_author, engine, author_id)
    return [_post_dict(p) for p in posts]


# ---------------------------------------------------------------------------
# Single post
# ---------------------------------------------------------------------------
@router.get("/{post_id}")
async def get_post(post_id: str, user: CurrentUser, engine=Depends(get_engine)):
    post = await run_db(post_service.get_post, engine, post_id)
    if not post_service.can_view(post, user):
        raise NotFound("Post not found")
    liked = None
    if user is not None:
        liked = await run_db(engagement_service.has_liked, engine, post_id, user.id)
    return _post_dict(post, liked=liked)


@router.patch("/{post_id}")
async def update_post(
    post_id: str,
    body: PostUpdate,
    request: Request,
    user: Annotated[User, Depends(require_user)],
    engine=Depends(get_engine),
):
    ip, ua = client_meta(request)
    post = await run_db(
        post_service.update_post,
        engine,
        post_id,
        user,
        body=body.body,
        media_url=body.media_url,
        ip_address=ip,
        user_agent=ua,
    )
    return _post_dict(post)


@router.delete("/{post_id}")
async def delete_post(
    post_id: str,
    request: Request,
    user: Annotated[User, Depends(require_user)],
    engine=Depends(get_engine),
):
    """Delete a post and its comments (author or moderator).

    The attached file goes too when the post's author uploaded it and
    nothing else references it.
    """
    post = await run_db(post_service.get_post, engine, post_id)
    ip, ua = client_meta(request)
    removed = await run_db(
        post_service.delete_post, engine, post_id, user, ip_address=ip, user_agent=ua
    )
    await run_db(upload_service.release_upload, engine, post.media_url, post.author_id)
    return {"deleted": 1, "comments_deleted": removed}
