"""
ecoleveling.config — YAML Configuration Loader
===============================================

Reads ``config.yaml`` for application tuning (community name, session
cookie, moderation and leaderboard knobs).  Secrets and connection strings
never live here; they come from the environment (``JWT_SECRET``,
``DATABASE_URL``).

Usage::

    from ecoleveling.config import load_config

    cfg = load_config()          # reads $ECO_CONFIG or ./config.yaml
    print(cfg.community_name)    # "Eco-Leveling"
    print(cfg.leaderboard_limit) # 50
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class EcoConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # Session cookie
    session_cookie_name: str = "auth"
    session_ttl_hours: int = 24
    cookie_secure: bool = False  # keep False for http://localhost

    # Content
    require_media: bool = True

    # Leaderboard
    leaderboard_limit: int = 50


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def default_config_path() -> Path:
    return Path(os.getenv("ECO_CONFIG", "config.yaml"))


def load_config(path: str | Path | None = None) -> EcoConfig:
    """Read *path* and return an :class:`EcoConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to
        ``$ECO_CONFIG`` or ``config.yaml`` in the working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path) if path is not None else default_config_path()
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return EcoConfig(
        community_name=raw["community_name"],
        session_cookie_name=str(raw.get("session_cookie_name", "auth")),
        session_ttl_hours=int(raw.get("session_ttl_hours", 24)),
        cookie_secure=bool(raw.get("cookie_secure", False)),
        require_media=bool(raw.get("require_media", True)),
        leaderboard_limit=int(raw.get("leaderboard_limit", 50)),
    )
