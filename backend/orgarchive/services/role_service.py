"""Role management. Only admins reach this service.

The built-in ``admin`` role cannot be created, renamed to, edited or
deleted through the API.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import ADMIN_ROLE_NAME, PermissionLevel
from ..exceptions import ConflictError, ForbiddenError, ValidationError
from ..models.user import Role
from ..repositories.category_repository import CategoryRepository
from ..repositories.organigram_repository import OrganigramRepository
from ..repositories.role_repository import RoleRepository
from ..schemas.role import CategoryGrantItem, OrganigramGrantItem, RoleCreate, RoleUpdate
from . import audit_service

logger = logging.getLogger(__name__)


def _is_admin_name(name: str) -> bool:
    return name.strip().lower() == ADMIN_ROLE_NAME


def _strongest(items, key: str) -> Dict[str, PermissionLevel]:
    """Collapse duplicate node ids, keeping crud over view."""
    result: Dict[str, PermissionLevel] = {}
    for item in items:
        node_id = getattr(item, key)
        if result.get(node_id) != PermissionLevel.CRUD:
            result[node_id] = item.permission
    return result


class RoleService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = RoleRepository(db)

    def list_roles(self) -> List[Role]:
        return self.repo.list_all()

    def get_role(self, role_id: str) -> Role:
        return self.repo.get_by_id(role_id)

    def create_role(self, data: RoleCreate, actor_id: Optional[str] = None) -> Role:
        if _is_admin_name(data.name):
            raise ValidationError("Cannot create or overwrite the admin role", field="name")
        if self.repo.get_by_name(data.name) is not None:
            raise ConflictError(f"Role name already exists: {data.name}", details={"name": data.name})

        role = self.repo.create(data.name, data.description)
        self._set_grants(role, data.category_grants, data.organigram_grants)
        self.db.commit()
        self.db.refresh(role)
        logger.info("Created role %s (%s)", role.id, role.name)
        audit_service.log(self.db, actor_id, "create", "role", role.id, {"name": role.name})
        return role

    def update_role(self, role_id: str, data: RoleUpdate, actor_id: Optional[str] = None) -> Role:
        role = self.repo.get_by_id(role_id)
        if role.name == ADMIN_ROLE_NAME:
            raise ForbiddenError("Cannot update the admin role")

        if data.name is not None and data.name != role.name:
            if _is_admin_name(data.name):
                raise ValidationError("Cannot rename a role to admin", field="name")
            existing = self.repo.get_by_name(data.name)
            if existing is not None and existing.id != role.id:
                raise ConflictError(f"Role name already exists: {data.name}", details={"name": data.name})
            role.name = data.name
        if data.description is not None:
            role.description = data.description

        if data.category_grants is not None or data.organigram_grants is not None:
            self._set_grants(
                role,
                data.category_grants if data.category_grants is not None else [
                    CategoryGrantItem.model_validate(g) for g in role.category_grants
                ],
                data.organigram_grants if data.organigram_grants is not None else [
                    OrganigramGrantItem.model_validate(g) for g in role.organigram_grants
                ],
            )

        self.db.commit()
        self.db.refresh(role)
        audit_service.log(self.db, actor_id, "update", "role", role.id)
        return role

    def delete_role(self, role_id: str, actor_id: Optional[str] = None) -> None:
        role = self.repo.get_by_id(role_id)
        if role.name == ADMIN_ROLE_NAME:
            raise ForbiddenError("Cannot delete the admin role")
        self.repo.delete(role)
        self.db.commit()
        logger.info("Deleted role %s", role_id)
        audit_service.log(self.db, actor_id, "delete", "role", role_id)

    def _set_grants(
        self,
        role: Role,
        category_grants: List[CategoryGrantItem],
        organigram_grants: List[OrganigramGrantItem],
    ) -> None:
        """Replace the role's grants after checking every node exists."""
        categories = _strongest(category_grants, "category_id")
        nodes = _strongest(organigram_grants, "node_id")

        category_forest = CategoryRepository(self.db).snapshot()
        unknown = sorted(cid for cid in categories if cid not in category_forest)
        if unknown:
            raise ValidationError(f"Unknown categories: {', '.join(unknown)}", field="category_grants")

        organigram_forest = OrganigramRepository(self.db).snapshot()
        unknown = sorted(nid for nid in nodes if nid not in organigram_forest)
        if unknown:
            raise ValidationError(f"Unknown organigram nodes: {', '.join(unknown)}", field="organigram_grants")

        self.repo.replace_grants(role, categories, nodes)
