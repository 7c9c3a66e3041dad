"""Global settings schemas, including the reference format."""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional

from ..core.enums import CategoryMode


class ReferenceFormat(BaseModel):
    """How document and version references are rendered.

    With an empty ``pattern`` a reference is ``<seq><separator><categories>``.
    A pattern may use the placeholders ``{seq}``, ``{cat}``, ``{sep}``,
    ``{year}`` and ``{name}``.
    """
    sequence_length: int = Field(default=4, ge=1, le=12)
    category_mode: CategoryMode = CategoryMode.ALL
    separator: str = Field(default="/", max_length=10)
    pattern: str = Field(default="", max_length=255)

    model_config = {"from_attributes": True}

    @field_validator("separator")
    @classmethod
    def validate_separator(cls, v: str) -> str:
        if not v:
            raise ValueError("Separator cannot be empty")
        return v


class SettingsUpdate(BaseModel):
    company_name: Optional[str] = Field(default=None, max_length=255)
    reference_format: Optional[ReferenceFormat] = None

    @field_validator("company_name")
    @classmethod
    def validate_company_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Company name cannot be empty")
        return v


class SettingsResponse(BaseModel):
    company_name: str
    reference_format: ReferenceFormat
    updated_at: Optional[datetime] = None
