"""Global settings API: company name and reference format."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_admin
from ..database import get_db
from ..schemas.settings import SettingsResponse, SettingsUpdate
from ..services import audit_service, settings_service

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=SettingsResponse)
def get_settings(db: Session = Depends(get_db)):
    row = settings_service.get_settings(db)
    db.commit()
    return settings_service.to_response(row)


@router.put("", response_model=SettingsResponse)
def update_settings(
    data: SettingsUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
):
    """Update settings. A new reference format only affects future references."""
    row = settings_service.update_settings(db, data)
    audit_service.log(db, auth.user_id, "update", "settings", "global")
    return settings_service.to_response(row)
