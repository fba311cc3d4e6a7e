"""
ecoleveling.api.routes.media — Photo/video upload for posts
============================================================
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, UploadFile

from ecoleveling.api.deps import require_user
from ecoleveling.constants import media_type
from ecoleveling.database.models import User
from ecoleveling.errors import ValidationError
from ecoleveling.services.upload_service import save_upload

router = APIRouter(tags=["media"])
logger = logging.getLogger(__name__)


@router.post("/media", status_code=201)
async def upload_media(
    file: UploadFile,
    user: Annotated[User, Depends(require_user)],
):
    """Store a photo or video and return the URL to put on a post."""
    content = await file.read()
    try:
        url = await save_upload(
            user.id, file.filename or "upload.jpg", content, file.content_type
        )
    except ValueError as exc:
        raise ValidationError(str(exc), field="file") from exc

    logger.info("User %s uploaded %s (%d bytes)", user.id, url, len(content))
    return {"url": url, "media_type": media_type(url)}
