"""Archive document schemas."""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List


class DocumentCreate(BaseModel):
    """Schema for filing a document under a category.

    ``year`` defaults to the current year; the code and reference are
    generated server-side.
    """
    category_id: str
    name: str
    year: Optional[int] = Field(default=None, ge=1900, le=9999)
    file_urls: List[str] = []

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "category_id": "cat-3f2a9c1b0d4e",
                    "name": "Quality manual",
                    "year": 2024,
                    "file_urls": ["/uploads/quality-manual.pdf"],
                }
            ]
        }
    }

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v


class DocumentUpdate(BaseModel):
    """Partial update. Changing the name re-renders the reference."""
    name: Optional[str] = None
    file_urls: Optional[List[str]] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v


class DocumentResponse(BaseModel):
    id: str
    category_id: str
    name: str
    year: int
    code: str
    reference: str
    file_urls: List[str] = []
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DocumentListResponse(BaseModel):
    """Paginated document listing."""
    items: List[DocumentResponse]
    total: int
    skip: int
    limit: int
