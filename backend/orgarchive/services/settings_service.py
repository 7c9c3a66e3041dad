"""Global settings: one row, created lazily with defaults."""

import logging

from sqlalchemy.orm import Session

from ..models.settings import GlobalSettings, GLOBAL_SETTINGS_ID
from ..schemas.settings import ReferenceFormat, SettingsResponse, SettingsUpdate

logger = logging.getLogger(__name__)


def get_settings(db: Session) -> GlobalSettings:
    """Return the settings row, inserting the defaults on first use."""
    row = db.query(GlobalSettings).filter(GlobalSettings.id == GLOBAL_SETTINGS_ID).first()
    if row is None:
        row = GlobalSettings(id=GLOBAL_SETTINGS_ID)
        db.add(row)
        db.flush()
        db.refresh(row)
    return row


def get_reference_format(db: Session) -> ReferenceFormat:
    row = get_settings(db)
    return ReferenceFormat(
        sequence_length=row.sequence_length,
        category_mode=row.category_mode,
        separator=row.separator,
        pattern=row.pattern or "",
    )


def to_response(row: GlobalSettings) -> SettingsResponse:
    return SettingsResponse(
        company_name=row.company_name,
        reference_format=ReferenceFormat(
            sequence_length=row.sequence_length,
            category_mode=row.category_mode,
            separator=row.separator,
            pattern=row.pattern or "",
        ),
        updated_at=row.updated_at,
    )


def update_settings(db: Session, data: SettingsUpdate) -> GlobalSettings:
    """Apply a partial update.

    Existing references are not rewritten; the new format applies to
    references generated from now on.
    """
    row = get_settings(db)
    if data.company_name is not None:
        row.company_name = data.company_name
    if data.reference_format is not None:
        fmt = data.reference_format
        row.sequence_length = fmt.sequence_length
        row.category_mode = fmt.category_mode.value
        row.separator = fmt.separator
        row.pattern = fmt.pattern
    db.commit()
    db.refresh(row)
    logger.info("Global settings updated")
    return row
