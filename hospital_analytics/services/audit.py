"""Audit logging for writes to the live admission store."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from hospital_analytics.models.admission import AuditLog

logger = logging.getLogger(__name__)


def log_action(
    db: Session,
    *,
    actor: str,
    action: str,
    resource_type: str,
    resource_id: str,
    detail: dict[str, Any] | None = None,
) -> None:
    """Add an audit entry to the caller's transaction (committed with the write)."""
    db.add(
        AuditLog(
            actor=actor,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            detail=detail,
        )
    )
    logger.info("AUDIT: %s %s %s/%s", actor, action, resource_type, resource_id)
