"""
ecoleveling.api.routes.comments — Comment threads
==================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from ecoleveling.api.deps import CurrentUser, get_engine, require_user
from ecoleveling.constants import ANONYMOUS_NAME
from ecoleveling.database.engine import run_db
from ecoleveling.database.models import Comment, User
from ecoleveling.services import comment_service
from ecoleveling.services.audit_service import client_meta

router = APIRouter(prefix="/comments", tags=["comments"])


class CommentCreate(BaseModel):
    post_id: str
    body: str


class CommentUpdate(BaseModel):
    body: str


def _comment_dict(c: Comment) -> dict:
    return {
        "id": c.id,
        "post_id": c.post_id,
        "author_id": None if c.anonymous else c.author_id,
        "author_name": ANONYMOUS_NAME if c.anonymous else c.author_name,
        "anonymous": c.anonymous,
        "body": c.body,
        "likes": c.likes,
        "created_at": c.created_at.isoformat() if c.created_at else None,
    }


@router.get("/by-post/{post_id}")
async def list_for_post(post_id: str, user: CurrentUser, engine=Depends(get_engine)):
    """Comments on a post, oldest first."""
    comments = await run_db(comment_service.list_for_post, engine, post_id, user)
    return [_comment_dict(c) for c in comments]


@router.post("", status_code=201)
async def create_comment(
    body: CommentCreate,
    request: Request,
    user: CurrentUser,
    engine=Depends(get_engine),
):
    ip, ua = client_meta(request)
    comment = await run_db(
        comment_service.create_comment,
        engine,
        post_id=body.post_id,
        body=body.body,
        user=user,
        ip_address=ip,
        user_agent=ua,
    )
    return {"id": comment.id}


@router.get("/{comment_id}")
async def get_comment(comment_id: str, engine=Depends(get_engine)):
    comment = await run_db(comment_service.get_comment, engine, comment_id)
    return _comment_dict(comment)


@router.patch("/{comment_id}")
async def update_comment(
    comment_id: str,
    body: CommentUpdate,
    user: Annotated[User, Depends(require_user)],
    engine=Depends(get_engine),
):
    comment = await run_db(
        comment_service.update_comment, engine, comment_id, user, body.body
    )
    return _comment_dict(comment)


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str,
    user: Annotated[User, Depends(require_user)],
    engine=Depends(get_engine),
):
    await run_db(comment_service.delete_comment, engine, comment_id, user)
    return {"deleted": 1}
