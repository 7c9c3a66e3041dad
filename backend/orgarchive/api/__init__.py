"""API routes."""

from .audit import router as audit_router
from .auth_routes import router as auth_router
from .categories import router as categories_router
from .documents import router as documents_router
from .organigram import router as organigram_router
from .roles import router as roles_router
from .settings import router as settings_router

__all__ = [
    "audit_router",
    "auth_router",
    "categories_router",
    "documents_router",
    "organigram_router",
    "roles_router",
    "settings_router",
]
