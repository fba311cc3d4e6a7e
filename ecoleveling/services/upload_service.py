"""
ecoleveling.services.upload_service — Post media uploads
=========================================================

Photos and short videos attached to posts.  Files land in
``$ECO_UPLOAD_DIR`` (default ``uploads/``) and are served back from
``/api/uploads/``.

Stored names are ``<owner_id>-<token><ext>``.  A file is only removed
when the author of a deleted post uploaded it and nothing else still
points at it.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from ecoleveling.database.models import Post, User

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

UPLOAD_DIR = Path(os.getenv("ECO_UPLOAD_DIR", "uploads"))
UPLOAD_URL_PREFIX = "/api/uploads/"
MAX_FILE_SIZE = 25 * 1024 * 1024  # 25 MB

IMAGE_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
VIDEO_TYPES = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
}
MEDIA_TYPES = {**IMAGE_TYPES, **VIDEO_TYPES}

_STORED_NAME = re.compile(r"^(?P<owner>[0-9a-f]{32})-[0-9a-f]{32}\.[a-z0-9]+$")


def ensure_upload_dir() -> None:
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)


def check_media(filename: str, content: bytes, content_type: str | None) -> str:
    """Return the normalised extension, or raise ``ValueError``."""
    if not content:
        raise ValueError("Empty file")
    if len(content) > MAX_FILE_SIZE:
        raise ValueError(
            f"File too large: {len(content)} bytes (max {MAX_FILE_SIZE // 1024 // 1024}MB)"
        )

    ext = Path(filename).suffix.lower()
    if ext not in MEDIA_TYPES:
        raise ValueError(
            f"File type not allowed: {ext!r}. Use one of {', '.join(sorted(MEDIA_TYPES))}"
        )
    if content_type and content_type not in MEDIA_TYPES.values():
        raise ValueError(f"MIME type not allowed: {content_type!r}")
    return ext


async def save_upload(
    owner_id: str,
    filename: str,
    content: bytes,
    content_type: str | None = None,
) -> str:
    """Store a photo or video for *owner_id* and return its public URL."""
    ext = check_media(filename, content, content_type)

    ensure_upload_dir()
    stored_name = f"{owner_id}-{uuid.uuid4().hex}{ext}"
    await asyncio.to_thread((UPLOAD_DIR / stored_name).write_bytes, content)
    return UPLOAD_URL_PREFIX + stored_name


def upload_owner(url: str | None) -> str | None:
    """Id of the user who uploaded the file behind *url*.

    ``None`` for external links, ``data:`` URLs and names this service
    did not produce.
    """
    if not url or not url.startswith(UPLOAD_URL_PREFIX):
        return None
    match = _STORED_NAME.match(url[len(UPLOAD_URL_PREFIX):])
    return match["owner"] if match else None


def release_upload(engine: Engine, url: str | None, author_id: str | None) -> bool:
    """Delete the file behind *url* once its last reference is gone.

    Called after a post is deleted.  The file is only removed when
    *author_id* uploaded it and no remaining post or profile picture
    still points at it.  Returns True when a file was unlinked.
    """
    owner = upload_owner(url)
    if owner is None or owner != author_id:
        return False

    with Session(engine) as session:
        still_used = (
            session.scalar(select(Post.id).where(Post.media_url == url).limit(1))
            or session.scalar(select(User.id).where(User.profile_pic_url == url).limit(1))
        )
    if still_used:
        logger.debug("Upload %s is still referenced; keeping it", url)
        return False

    path = UPLOAD_DIR / url[len(UPLOAD_URL_PREFIX):]
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.info("Removed upload %s of user %s", url, owner)
    return True
