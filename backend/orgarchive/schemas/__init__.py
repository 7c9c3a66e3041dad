"""Pydantic schemas for API validation."""

from .tree import (
    AnnotatedNode,
    CategoryTreeNode,
    OrganigramTreeNode,
    CompletionReport,
    MissingNode,
)
from .settings import ReferenceFormat

__all__ = [
    "AnnotatedNode",
    "CategoryTreeNode",
    "OrganigramTreeNode",
    "CompletionReport",
    "MissingNode",
    "ReferenceFormat",
]
