"""Repository for organigram nodes and their file versions."""

import uuid
from typing import Dict, List, Optional

from ..core.enums import NodeKind
from ..exceptions import OrganigramNodeNotFoundError
from ..models.organigram import OrganigramNode, OrganigramVersion
from ..models.user import RoleOrganigramGrant
from ..services.forest import Forest, NodeRecord
from .base import BaseRepository


class OrganigramRepository(BaseRepository[OrganigramNode]):
    """Data access layer for the organigram forest."""

    model_class = OrganigramNode
    not_found_error = OrganigramNodeNotFoundError

    def list_all(self) -> List[OrganigramNode]:
        return (
            self.db.query(OrganigramNode)
            .order_by(OrganigramNode.order_key, OrganigramNode.id)
            .all()
        )

    def snapshot(self, nodes: Optional[List[OrganigramNode]] = None) -> Forest:
        """Whole organigram forest in one query, or from rows already loaded."""
        if nodes is None:
            nodes = self.list_all()
        return Forest(
            NodeRecord(
                id=n.id,
                parent_id=n.parent_id,
                name=n.name,
                order_key=n.order_key or 0.0,
                kind=NodeKind(n.kind),
                has_file=n.has_file,
            )
            for n in nodes
        )

    def create(
        self,
        name: str,
        parent_id: Optional[str],
        kind: NodeKind,
        order_key: float,
        updated_by: Optional[str] = None,
    ) -> OrganigramNode:
        node = OrganigramNode(
            id=f"org-{uuid.uuid4().hex[:12]}",
            name=name,
            parent_id=parent_id,
            kind=kind.value,
            order_key=order_key,
            updated_by=updated_by,
        )
        self.db.add(node)
        self.db.flush()
        self.db.refresh(node)
        return node

    def apply_order_keys(self, keys: Dict[str, float]) -> None:
        """Write a renumbering plan produced by place_in_siblings."""
        if not keys:
            return
        for node in self.db.query(OrganigramNode).filter(OrganigramNode.id.in_(list(keys))).all():
            node.order_key = keys[node.id]
        self.db.flush()

    def add_version(
        self,
        node: OrganigramNode,
        reference: str,
        file_url: str,
        uploaded_by: Optional[str] = None,
    ) -> OrganigramVersion:
        version = OrganigramVersion(
            node_id=node.id,
            reference=reference,
            file_url=file_url,
            uploaded_by=uploaded_by,
        )
        self.db.add(version)
        node.file_url = file_url
        node.updated_by = uploaded_by
        self.db.flush()
        self.db.refresh(node)
        return version

    def count_versions(self, node_id: str) -> int:
        return (
            self.db.query(OrganigramVersion)
            .filter(OrganigramVersion.node_id == node_id)
            .count()
        )

    def delete_subtree(self, node_ids: List[str]) -> int:
        """Delete the given nodes with their versions and grants."""
        if not node_ids:
            return 0
        (
            self.db.query(OrganigramVersion)
            .filter(OrganigramVersion.node_id.in_(node_ids))
            .delete(synchronize_session=False)
        )
        (
            self.db.query(RoleOrganigramGrant)
            .filter(RoleOrganigramGrant.node_id.in_(node_ids))
            .delete(synchronize_session=False)
        )
        return self.delete_ids(node_ids)
