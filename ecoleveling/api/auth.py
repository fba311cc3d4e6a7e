"""
ecoleveling.api.auth — Registration, login and the session cookie
==================================================================
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from ecoleveling.api.deps import (
    JWT_SECRET,
    get_config,
    get_engine,
    require_user,
)
from ecoleveling.config import EcoConfig
from ecoleveling.database.engine import run_db
from ecoleveling.database.models import AuditAction, User
from ecoleveling.services import audit_service, auth_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class RegistrationBody(BaseModel):
    name: str
    password: str
    profile_pic_url: str | None = None


class LoginBody(BaseModel):
    name: str
    password: str


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.post("/register")
async def register(
    body: RegistrationBody,
    request: Request,
    engine=Depends(get_engine),
):
    """Create an account.  409 when the name is taken."""
    user = await run_db(
        auth_service.register, engine, body.name, body.password, body.profile_pic_url
    )
    ip, ua = audit_service.client_meta(request)
    await run_db(
        audit_service.record,
        engine,
        action=AuditAction.USER_REGISTER,
        target_table="users",
        target_id=user.id,
        actor=user,
        ip_address=ip,
        user_agent=ua,
    )
    return {"id": user.id}


@router.post("/login")
async def login(
    body: LoginBody,
    response: Response,
    engine=Depends(get_engine),
    cfg: EcoConfig = Depends(get_config),
):
    """Verify credentials and set the session cookie."""
    user = await run_db(auth_service.authenticate, engine, body.name, body.password)
    token = auth_service.issue_token(user.id, JWT_SECRET, cfg.session_ttl_hours)
    response.set_cookie(
        key=cfg.session_cookie_name,
        value=token,
        httponly=True,
        max_age=cfg.session_ttl_hours * 3600,
        path="/",
        samesite="lax",
        secure=cfg.cookie_secure,
    )
    logger.info("User %s logged in", user.id)
    return auth_service.public_user(user)


@router.post("/logout")
def logout(response: Response, cfg: EcoConfig = Depends(get_config)):
    response.delete_cookie(key=cfg.session_cookie_name, path="/")
    return {"success": True}


@router.get("/me")
def me(user: Annotated[User, Depends(require_user)]):
    """Return the current logged-in user."""
    return auth_service.public_user(user)
