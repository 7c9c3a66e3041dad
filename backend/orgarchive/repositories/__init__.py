"""Data access repositories."""

from .base import BaseRepository
from .category_repository import CategoryRepository
from .document_repository import DocumentRepository
from .organigram_repository import OrganigramRepository
from .role_repository import RoleRepository

__all__ = [
    "BaseRepository",
    "CategoryRepository",
    "DocumentRepository",
    "OrganigramRepository",
    "RoleRepository",
]
