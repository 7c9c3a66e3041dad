"""Global settings singleton: company name and reference format."""

from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.sql import func
from ..database import Base

GLOBAL_SETTINGS_ID = 1


class GlobalSettings(Base):
    """Single-row table. Always read through settings_service.get_settings()."""

    __tablename__ = "global_settings"

    id = Column(Integer, primary_key=True, default=GLOBAL_SETTINGS_ID)
    company_name = Column(String(255), nullable=False, default="Document Archive")

    # Reference format
    sequence_length = Column(Integer, nullable=False, default=4)
    category_mode = Column(String(10), nullable=False, default="all")
    separator = Column(String(10), nullable=False, default="/")
    pattern = Column(String(255), nullable=False, default="")

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
