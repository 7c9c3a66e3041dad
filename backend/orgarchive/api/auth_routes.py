"""Authentication and user management API endpoints.

Public endpoints:
    POST /api/auth/register  create account (open for first user, admin-only after)
    POST /api/auth/login     authenticate and receive JWT
    GET  /api/auth/me        current user info and roles

Admin-only endpoints:
    GET /api/auth/users                       list all users
    PUT /api/auth/users/{user_id}/roles       replace a user's roles
    PUT /api/auth/users/{user_id}/deactivate  deactivate account
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, optional_auth, require_admin, require_auth
from ..core.config import settings
from ..core.enums import ADMIN_ROLE_NAME
from ..core.token_factory import create_token
from ..database import get_db
from ..exceptions import AuthenticationError, ForbiddenError
from ..models.user import User
from ..services import audit_service, auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# --- Request/Response schemas ---


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")

    model_config = {
        "json_schema_extra": {
            "examples": [{"username": "alice", "password": "securepass"}]
        }
    }


class LoginRequest(BaseModel):
    username: str
    password: str


class UserRolesRequest(BaseModel):
    role_ids: List[str] = Field(default_factory=list)


class RoleSummary(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    user_id: str
    username: str
    is_active: bool
    is_admin: bool = False
    roles: List[RoleSummary] = []


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


def _to_response(user: User) -> UserResponse:
    return UserResponse(
        user_id=user.user_id,
        username=user.username,
        is_active=user.is_active,
        is_admin=any(r.name == ADMIN_ROLE_NAME for r in user.roles),
        roles=[RoleSummary.model_validate(r) for r in user.roles],
    )


# --- Endpoints ---


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    summary="Register a new user",
    description="First registration is open (creates admin). After that, admin auth required.",
)
def register_user(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    if db.query(User).count() > 0 and not auth.is_admin:
        raise ForbiddenError("Only admins can register new users")

    user = auth_service.register_user(db, body.username, body.password)
    audit_service.log(db, auth.user_id or user.user_id, "create", "user", user.user_id)
    return _to_response(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate and receive JWT",
)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = auth_service.authenticate(db, body.username, body.password)
    except AuthenticationError:
        audit_service.log(db, None, "login_failed", "user", None, {"username": body.username})
        raise
    token = create_token(
        subject=user.user_id,
        username=user.username,
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_hours=settings.jwt_expiry_hours,
    )
    audit_service.log(db, user.user_id, "login", "user", user.user_id)
    return LoginResponse(token=token, user=_to_response(user))


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user info and roles",
)
def get_me(auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    if auth.user_id is None:
        # Auth disabled: the anonymous development admin.
        return UserResponse(user_id="anonymous", username=auth.username, is_active=True, is_admin=True)
    user = auth_service.get_user_by_id(db, auth.user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return _to_response(user)


@router.get(
    "/users",
    response_model=List[UserResponse],
    summary="List all users (admin only)",
)
def list_users(
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [_to_response(u) for u in auth_service.list_users(db)]


@router.put(
    "/users/{user_id}/roles",
    response_model=UserResponse,
    summary="Replace a user's roles (admin only)",
)
def set_roles(
    user_id: str,
    body: UserRolesRequest,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = auth_service.set_user_roles(db, user_id, body.role_ids)
    audit_service.log(db, auth.user_id, "role_assign", "user", user_id, {"role_ids": body.role_ids})
    return _to_response(user)


@router.put(
    "/users/{user_id}/deactivate",
    response_model=UserResponse,
    summary="Deactivate a user account (admin only)",
)
def deactivate(
    user_id: str,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = auth_service.deactivate_user(db, user_id)
    audit_service.log(db, auth.user_id, "update", "user", user_id, {"is_active": False})
    return _to_response(user)
