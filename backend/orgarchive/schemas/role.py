"""Role schemas: named grant sets over both trees."""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List

from ..core.enums import PermissionLevel


class CategoryGrantItem(BaseModel):
    category_id: str
    permission: PermissionLevel = PermissionLevel.VIEW

    model_config = {"from_attributes": True}


class OrganigramGrantItem(BaseModel):
    node_id: str
    permission: PermissionLevel = PermissionLevel.VIEW

    model_config = {"from_attributes": True}


class RoleCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    category_grants: List[CategoryGrantItem] = []
    organigram_grants: List[OrganigramGrantItem] = []

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Role name cannot be empty")
        return v


class RoleUpdate(BaseModel):
    """Partial update. A grant list, when given, replaces the existing one."""
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    category_grants: Optional[List[CategoryGrantItem]] = None
    organigram_grants: Optional[List[OrganigramGrantItem]] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Role name cannot be empty")
        return v


class RoleResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    category_grants: List[CategoryGrantItem] = []
    organigram_grants: List[OrganigramGrantItem] = []
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
