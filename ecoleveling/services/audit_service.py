"""
ecoleveling.services.audit_service — Best-Effort Audit Trail
=============================================================

Every user-facing mutation appends one ``audit_log`` row *after* the
primary write has committed, in its own session.  A failing audit write is
logged and dropped: it can never roll back or fail the operation that
triggered it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from ecoleveling.database.models import AuditLog

if TYPE_CHECKING:
    from fastapi import Request
    from sqlalchemy import Engine

    from ecoleveling.database.models import User

logger = logging.getLogger(__name__)


def client_meta(request: Request | None) -> tuple[str | None, str | None]:
    """Return ``(ip_address, user_agent)`` for *request*.

    Proxy headers win over the socket peer.
    """
    if request is None:
        return None, None
    headers = request.headers
    ip = headers.get("x-forwarded-for") or headers.get("cf-connecting-ip")
    if ip:
        ip = ip.split(",", 1)[0].strip()
    elif request.client is not None:
        ip = request.client.host
    return ip, headers.get("user-agent")


def record(
    engine: Engine,
    *,
    action: str,
    target_table: str,
    target_id: str | None,
    actor: User | None = None,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> bool:
    """Append one audit row.  Returns ``False`` (never raises) on failure."""
    try:
        with Session(engine) as session:
            session.add(AuditLog(
                action=str(action),
                actor_id=actor.id if actor else None,
                actor_name=actor.name if actor else None,
                target_table=target_table,
                target_id=target_id,
                details=details,
                ip_address=ip_address[:45] if ip_address else None,
                user_agent=user_agent[:500] if user_agent else None,
            ))
            session.commit()
        return True
    except Exception:
        logger.warning(
            "Audit write failed for %s on %s/%s", action, target_table, target_id,
            exc_info=True,
        )
        return False
