"""
ecoleveling.constants — Shared Constants & Helpers
===================================================

Validation limits and presentation helpers used by services and routes.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Registration / profile limits
# ---------------------------------------------------------------------------
MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 3

# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------
ANONYMOUS_NAME = "Anonymous"
MAX_LEADERBOARD_LIMIT = 200

VIDEO_EXTENSIONS: frozenset[str] = frozenset({".mp4", ".webm", ".mov"})


def handle_for(name: str) -> str:
    """``"Jane Doe"`` → ``"@janedoe"``."""
    return "@" + "".join(name.lower().split())


def media_type(url: str | None) -> str | None:
    """Classify a media reference as ``"image"`` or ``"video"``.

    Handles both uploaded file URLs and inline ``data:`` URLs.
    """
    if not url:
        return None
    if url.startswith("data:"):
        return "video" if url.startswith("data:video/") else "image"
    path = url.split("?", 1)[0].lower()
    if any(path.endswith(ext) for ext in VIDEO_EXTENSIONS):
        return "video"
    return "image"
