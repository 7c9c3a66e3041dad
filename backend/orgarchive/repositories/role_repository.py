"""Repository for roles and their per-node grants."""

import uuid
from typing import Dict, List, Optional

from ..core.enums import ADMIN_ROLE_NAME, PermissionLevel
from ..exceptions import RoleNotFoundError
from ..models.user import Role, RoleCategoryGrant, RoleOrganigramGrant
from .base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    """Data access layer for roles."""

    model_class = Role
    not_found_error = RoleNotFoundError

    def list_all(self) -> List[Role]:
        return self.db.query(Role).order_by(Role.name).all()

    def get_by_name(self, name: str) -> Optional[Role]:
        return self.db.query(Role).filter(Role.name == name).first()

    def get_or_create_admin(self) -> Role:
        role = self.get_by_name(ADMIN_ROLE_NAME)
        if role is None:
            role = self.create(ADMIN_ROLE_NAME, "Full access to every tree")
        return role

    def get_many(self, role_ids: List[str]) -> List[Role]:
        if not role_ids:
            return []
        return self.db.query(Role).filter(Role.id.in_(role_ids)).all()

    def create(self, name: str, description: Optional[str] = None) -> Role:
        role = Role(id=f"role-{uuid.uuid4().hex[:12]}", name=name, description=description)
        self.db.add(role)
        self.db.flush()
        self.db.refresh(role)
        return role

    def replace_grants(
        self,
        role: Role,
        category_grants: Dict[str, PermissionLevel],
        organigram_grants: Dict[str, PermissionLevel],
    ) -> None:
        """Replace all grants of *role* with the given node -> level maps."""
        role.category_grants = [
            RoleCategoryGrant(role_id=role.id, category_id=node_id, permission=PermissionLevel(level).value)
            for node_id, level in category_grants.items()
        ]
        role.organigram_grants = [
            RoleOrganigramGrant(role_id=role.id, node_id=node_id, permission=PermissionLevel(level).value)
            for node_id, level in organigram_grants.items()
        ]
        self.db.flush()

    def delete(self, role: Role) -> None:
        self.db.delete(role)
        self.db.flush()
