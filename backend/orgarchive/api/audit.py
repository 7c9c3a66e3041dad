"""Audit trail API (admin only)."""

import json
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_admin
from ..database import get_db
from ..models.user import AuditLog
from ..services import audit_service

router = APIRouter(prefix="/api/audit", tags=["audit"])


class AuditEntryResponse(BaseModel):
    id: int
    user_id: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    details: Optional[dict] = None
    created_at: Optional[datetime] = None


def _to_response(entry: AuditLog) -> AuditEntryResponse:
    return AuditEntryResponse(
        id=entry.id,
        user_id=entry.user_id,
        action=entry.action,
        resource_type=entry.resource_type,
        resource_id=entry.resource_id,
        details=json.loads(entry.details) if entry.details else None,
        created_at=entry.created_at,
    )


@router.get("", response_model=List[AuditEntryResponse])
def list_audit_entries(
    resource_type: Optional[str] = Query(None, description="category, organigram_node, document, role, user, settings"),
    resource_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
):
    """Most recent audit entries, newest first."""
    entries = audit_service.list_entries(
        db, resource_type=resource_type, resource_id=resource_id, user_id=user_id, limit=limit,
    )
    return [_to_response(e) for e in entries]
