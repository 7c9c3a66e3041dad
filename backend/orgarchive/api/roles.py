"""Role management API (admin only)."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_admin
from ..database import get_db
from ..schemas.role import RoleCreate, RoleResponse, RoleUpdate
from ..services.role_service import RoleService

router = APIRouter(prefix="/api/roles", tags=["roles"])


@router.get("", response_model=List[RoleResponse])
def list_roles(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
):
    return RoleService(db).list_roles()


@router.get("/{role_id}", response_model=RoleResponse)
def get_role(
    role_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
):
    return RoleService(db).get_role(role_id)


@router.post("", response_model=RoleResponse, status_code=201)
def create_role(
    data: RoleCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
):
    return RoleService(db).create_role(data, actor_id=auth.user_id)


@router.put("/{role_id}", response_model=RoleResponse)
def update_role(
    role_id: str,
    data: RoleUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
):
    return RoleService(db).update_role(role_id, data, actor_id=auth.user_id)


@router.delete("/{role_id}", status_code=204)
def delete_role(
    role_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
):
    RoleService(db).delete_role(role_id, actor_id=auth.user_id)
