"""Audit trail of state-changing operations.

``log`` is called by services *after* their own commit, so a failing audit
write can never undo the operation it describes. Reads are admin-only.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.user import AuditLog

logger = logging.getLogger(__name__)


def log(
    db: Session,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[dict] = None,
) -> None:
    """Append one entry. Errors are logged and rolled back, never raised."""
    db.add(AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=json.dumps(details, default=str) if details else None,
    ))
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(
            "Audit entry dropped: %s", e,
            extra={"action": action, "resource_type": resource_type, "resource_id": resource_id},
        )


def list_entries(
    db: Session,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = 100,
) -> List[AuditLog]:
    """Newest entries first, optionally narrowed to one resource or actor."""
    q = db.query(AuditLog)
    if resource_type is not None:
        q = q.filter(AuditLog.resource_type == resource_type)
    if resource_id is not None:
        q = q.filter(AuditLog.resource_id == resource_id)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)
    return q.order_by(AuditLog.id.desc()).limit(limit).all()


def purge_old_entries(db: Session, days: int) -> int:
    """Delete entries older than *days*; ``days <= 0`` keeps everything."""
    if days <= 0:
        return 0
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    try:
        count = db.query(AuditLog).filter(AuditLog.created_at < cutoff).delete()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Audit purge failed: %s", e)
        return 0
    return count
