"""Authentication module exposing FastAPI dependencies.

Public interface:
    ``require_auth``  returns AuthContext or raises 401.
    ``optional_auth`` always returns AuthContext, never raises. Without a
                      valid token the context has no grants (or is the public
                      reader when ``PUBLIC_READ=true``).
    ``require_admin`` returns AuthContext, raises 403 if not admin.

When ``settings.auth_enabled`` is False all dependencies return an anonymous
admin context so the development workflow is unbroken.

Grants are loaded from the database on every request: the context holds the
union of the explicit grants of all the user's roles, per tree. Resolution
against the forest happens later, in permission_service.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .enums import ADMIN_ROLE_NAME, PermissionLevel, TreeType
from .token_factory import TokenPayload, decode_token
from ..database import get_db
from ..exceptions import AuthenticationError, ForbiddenError
from ..services.permission_service import GrantSet, PermissionGrant

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Resolved authentication context available to every endpoint.

    ``public_reader`` marks an unauthenticated visitor allowed to browse the
    category tree in display-only form.
    """

    user_id: Optional[str]
    username: str = "anonymous"
    is_admin: bool = False
    is_authenticated: bool = False
    public_reader: bool = False
    category_grants: Tuple[PermissionGrant, ...] = field(default_factory=tuple)
    organigram_grants: Tuple[PermissionGrant, ...] = field(default_factory=tuple)

    def grant_set(self, tree: TreeType) -> GrantSet:
        grants = self.category_grants if tree == TreeType.CATEGORY else self.organigram_grants
        return GrantSet(is_admin=self.is_admin, grants=grants)


# Dev-mode anonymous context: admin on both trees.
_ANONYMOUS = AuthContext(user_id=None, is_admin=True)

# Auth enabled but no token: no grants, every permission check fails.
_UNAUTHENTICATED = AuthContext(user_id=None)

# Public-read mode: anonymous may browse the full category tree.
_PUBLIC_READER = AuthContext(user_id=None, public_reader=True)


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Require a valid JWT and return the user's AuthContext.

    When ``AUTH_ENABLED=false`` returns the anonymous admin context.
    """
    if not settings.auth_enabled:
        return _ANONYMOUS

    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    return _load_auth_context(payload, db)


def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Validate a token if present, falling back to an unauthenticated context.

    A token for a deleted or deactivated user also falls back. Never raises.
    """
    if not settings.auth_enabled:
        return _ANONYMOUS

    fallback = _PUBLIC_READER if settings.public_read else _UNAUTHENTICATED

    if credentials is None:
        return fallback

    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        return fallback

    try:
        return _load_auth_context(payload, db)
    except AuthenticationError as e:
        logger.info("Ignoring token for optional auth: %s", e.message)
        return fallback


def require_admin(
    auth: AuthContext = Depends(require_auth),
) -> AuthContext:
    """Require the authenticated user to be an admin. Raises 403 otherwise."""
    if not auth.is_admin:
        raise ForbiddenError("Admin access required")
    return auth


def _load_auth_context(payload: TokenPayload, db: Session) -> AuthContext:
    """Load the user and the union of their role grants."""
    from ..models.user import User

    user = db.query(User).filter(User.user_id == payload.sub).first()
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    category_grants = []
    organigram_grants = []
    for role in user.roles:
        category_grants.extend(
            PermissionGrant(g.category_id, PermissionLevel(g.permission))
            for g in role.category_grants
        )
        organigram_grants.extend(
            PermissionGrant(g.node_id, PermissionLevel(g.permission))
            for g in role.organigram_grants
        )

    return AuthContext(
        user_id=user.user_id,
        username=user.username,
        is_admin=any(role.name == ADMIN_ROLE_NAME for role in user.roles),
        is_authenticated=True,
        category_grants=tuple(category_grants),
        organigram_grants=tuple(organigram_grants),
    )
