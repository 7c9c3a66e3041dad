"""Tree schemas: node create/update requests and assembled tree responses."""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List

from ..core.enums import DisplayPermission, NodeKind


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name cannot be empty")
    return v


# --- Assembled trees ---------------------------------------------------------

class AnnotatedNode(BaseModel):
    """A node of an assembled tree with its display permission.

    ``permissions`` is a rendering hint. Authorization always goes back to
    the resolved effective permission.
    """
    id: str
    name: str
    parent_id: Optional[str] = None
    reference: Optional[str] = None
    permissions: DisplayPermission
    children: List['AnnotatedNode'] = []


class DocumentSummary(BaseModel):
    """Archive document as embedded in the category tree."""
    id: str
    name: str
    code: str
    year: int
    reference: str
    file_urls: List[str] = []
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CategoryTreeNode(AnnotatedNode):
    """Category tree node carrying the documents filed directly under it."""
    documents: List[DocumentSummary] = []
    children: List['CategoryTreeNode'] = []


class OrganigramTreeNode(AnnotatedNode):
    """Organigram tree node."""
    kind: NodeKind
    order_key: float = 0.0
    has_file: bool = False
    file_url: Optional[str] = None
    children: List['OrganigramTreeNode'] = []


# --- Categories --------------------------------------------------------------

class CategoryCreate(BaseModel):
    name: str
    parent_id: Optional[str] = None
    reference: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)


class CategoryUpdate(BaseModel):
    """Partial update. ``parent_id`` is only applied when ``move`` is true,
    so that ``null`` can mean "move to root"."""
    name: Optional[str] = None
    reference: Optional[str] = None
    move: bool = False
    parent_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _clean_name(v)


class CategoryResponse(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    reference: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# --- Organigram --------------------------------------------------------------

class OrganigramNodeCreate(BaseModel):
    name: str
    parent_id: Optional[str] = None
    kind: NodeKind = NodeKind.CONTAINER_WITH_FILE
    # Position among the new siblings; None appends at the end.
    position: Optional[int] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)


class OrganigramNodeUpdate(BaseModel):
    """Partial update. Set ``move`` to re-parent (``parent_id=None`` = root);
    ``position`` alone reorders among the current siblings."""
    name: Optional[str] = None
    kind: Optional[NodeKind] = None
    move: bool = False
    parent_id: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _clean_name(v)


class OrganigramVersionResponse(BaseModel):
    id: int
    reference: str
    file_url: str
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrganigramNodeResponse(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    kind: NodeKind
    order_key: float
    file_url: Optional[str] = None
    has_file: bool = False
    updated_by: Optional[str] = None
    versions: List[OrganigramVersionResponse] = []

    model_config = {"from_attributes": True}


class FileAttach(BaseModel):
    """Attach an already stored file (by URL) to an organigram node."""
    file_url: str

    @field_validator("file_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("file_url cannot be empty")
        return v


# --- Completion --------------------------------------------------------------

class MissingNode(BaseModel):
    """Eligible organigram node still waiting for its file."""
    id: str
    name: str
    kind: NodeKind
    path: List[str]


class CompletionReport(BaseModel):
    total: int
    completed_count: int
    percent: int
    missing: List[MissingNode] = []


class ProgressResponse(BaseModel):
    total: int
    completed: int
    percent: int


class SubtreeDeleteResponse(BaseModel):
    deleted_ids: List[str]
