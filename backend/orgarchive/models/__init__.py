"""Database models."""

from .category import Category
from .organigram import OrganigramNode, OrganigramVersion
from .document import ArchiveDocument
from .settings import GlobalSettings
from .user import User, Role, RoleCategoryGrant, RoleOrganigramGrant, AuditLog, user_roles

__all__ = [
    "Category", "OrganigramNode", "OrganigramVersion", "ArchiveDocument",
    "GlobalSettings", "User", "Role", "RoleCategoryGrant", "RoleOrganigramGrant",
    "AuditLog", "user_roles",
]
