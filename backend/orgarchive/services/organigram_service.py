"""Organigram service: chart tree, node lifecycle, file versions, completion."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import DisplayPermission, NodeKind, PermissionLevel, TreeType
from ..exceptions import OrganigramNodeNotFoundError, ValidationError
from ..models.organigram import OrganigramNode, OrganigramVersion
from ..repositories.organigram_repository import OrganigramRepository
from ..schemas.tree import (
    CompletionReport, OrganigramNodeCreate, OrganigramNodeUpdate, OrganigramTreeNode,
)
from . import audit_service
from .forest import NodeRecord, by_order_key
from .move_validator import validate_create, validate_delete, validate_kind_change, validate_move
from .ordering import place_in_siblings
from .permission_service import EffectiveMap, GrantSet, require_permission, resolve_grant_set
from .progress_service import aggregate
from .reference_service import build_reference
from .settings_service import get_reference_format
from .tree_assembler import AssemblyMode, assemble

logger = logging.getLogger(__name__)


class OrganigramService:
    """Business logic for the organigram.

    Public methods:
        get_tree     -- permission-filtered chart, siblings by order_key
        create_node  -- new root (admin) or child of a container
        update_node  -- rename, change kind, move and/or reorder
        delete_node  -- delete a node with its subtree
        attach_file  -- record a new file version on a node
        get_versions -- version history of one node
        completion   -- totals and missing nodes for the caller
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrganigramRepository(db)

    # -- Reads ------------------------------------------------------------

    def get_tree(self, grant_set: GrantSet) -> List[OrganigramTreeNode]:
        nodes = self.repo.list_all()
        forest = self.repo.snapshot(nodes)
        file_urls: Dict[str, Optional[str]] = {n.id: n.file_url for n in nodes}

        if grant_set.is_admin:
            effective: EffectiveMap = {}
            mode = AssemblyMode.FULL
        else:
            effective = resolve_grant_set(forest, grant_set)
            mode = AssemblyMode.PRUNED

        def build(record: NodeRecord, annotation: DisplayPermission, children: list) -> OrganigramTreeNode:
            return OrganigramTreeNode(
                id=record.id,
                name=record.name,
                parent_id=record.parent_id,
                permissions=annotation,
                kind=record.kind,
                order_key=record.order_key,
                has_file=record.has_file,
                file_url=file_urls.get(record.id),
                children=children,
            )

        return assemble(forest, effective, mode, order=by_order_key, build_node=build)

    def get_node(self, node_id: str, grant_set: GrantSet) -> OrganigramNode:
        node = self.repo.get_by_id(node_id)
        require_permission(
            resolve_grant_set(self.repo.snapshot(), grant_set), node_id, PermissionLevel.VIEW,
            f"No view access to organigram node {node_id}",
        )
        return node

    def get_versions(self, node_id: str, grant_set: GrantSet) -> List[OrganigramVersion]:
        return list(self.get_node(node_id, grant_set).versions)

    def completion(self, grant_set: GrantSet) -> CompletionReport:
        forest = self.repo.snapshot()
        if grant_set.is_admin:
            return aggregate(forest, {}, is_admin=True)
        return aggregate(forest, resolve_grant_set(forest, grant_set))

    # -- Mutations --------------------------------------------------------

    def create_node(
        self,
        data: OrganigramNodeCreate,
        grant_set: GrantSet,
        actor_id: Optional[str] = None,
    ) -> OrganigramNode:
        forest = self.repo.snapshot()
        effective = resolve_grant_set(forest, grant_set)
        validate_create(forest, data.parent_id, effective, grant_set.is_admin, TreeType.ORGANIGRAM)

        placement = place_in_siblings(forest.children_of(data.parent_id), data.position)
        self.repo.apply_order_keys(placement.renumber)
        node = self.repo.create(
            name=data.name,
            parent_id=data.parent_id,
            kind=data.kind,
            order_key=placement.order_key,
            updated_by=actor_id,
        )
        self.db.commit()
        self.db.refresh(node)
        logger.info("Created organigram node %s under %s", node.id, data.parent_id or "root")
        audit_service.log(
            self.db, actor_id, "create", "organigram_node", node.id,
            {"name": node.name, "parent_id": node.parent_id, "kind": node.kind},
        )
        return node

    def update_node(
        self,
        node_id: str,
        data: OrganigramNodeUpdate,
        grant_set: GrantSet,
        actor_id: Optional[str] = None,
    ) -> OrganigramNode:
        """Rename, change kind, move and/or reorder a node.

        Without ``move`` a ``position`` reorders the node among its current
        siblings. A move without ``position`` appends to the new parent.
        """
        forest = self.repo.snapshot()
        effective = resolve_grant_set(forest, grant_set)

        if data.move:
            validate_move(forest, node_id, data.parent_id, effective, TreeType.ORGANIGRAM)
        else:
            if node_id not in forest:
                raise OrganigramNodeNotFoundError(node_id)
            require_permission(
                effective, node_id, PermissionLevel.CRUD,
                f"No crud access to organigram node {node_id}",
            )

        node = self.repo.get_by_id(node_id)
        changes: dict = {}

        if data.kind is not None and data.kind.value != node.kind:
            validate_kind_change(forest, node_id, data.kind, node.has_file)
            changes["kind"] = data.kind.value
            node.kind = data.kind.value
        if data.name is not None and data.name != node.name:
            changes["name"] = data.name
            node.name = data.name

        parent_id = data.parent_id if data.move else node.parent_id
        if data.move and parent_id != node.parent_id:
            changes["parent_id"] = parent_id
            node.parent_id = parent_id
        if "parent_id" in changes or data.position is not None:
            placement = place_in_siblings(forest.children_of(parent_id), data.position, node_id=node_id)
            self.repo.apply_order_keys(placement.renumber)
            node.order_key = placement.order_key
            changes["order_key"] = placement.order_key

        node.updated_by = actor_id
        self.db.commit()
        self.db.refresh(node)
        if changes:
            action = "move" if "parent_id" in changes else "update"
            audit_service.log(self.db, actor_id, action, "organigram_node", node_id, changes)
        return node

    def delete_node(
        self,
        node_id: str,
        grant_set: GrantSet,
        actor_id: Optional[str] = None,
    ) -> List[str]:
        forest = self.repo.snapshot()
        effective = resolve_grant_set(forest, grant_set)
        subtree = validate_delete(forest, node_id, effective, TreeType.ORGANIGRAM)

        self.repo.delete_subtree(subtree)
        self.db.commit()
        logger.info("Deleted organigram node %s (%d nodes)", node_id, len(subtree))
        audit_service.log(
            self.db, actor_id, "delete", "organigram_node", node_id, {"deleted": len(subtree)},
        )
        return subtree

    def attach_file(
        self,
        node_id: str,
        file_url: str,
        grant_set: GrantSet,
        actor_id: Optional[str] = None,
    ) -> OrganigramNode:
        """Record *file_url* as the node's current file and a new version.

        The version reference uses the version number as sequence and the
        node's own path as the category part.
        """
        forest = self.repo.snapshot()
        if node_id not in forest:
            raise OrganigramNodeNotFoundError(node_id)
        require_permission(
            resolve_grant_set(forest, grant_set), node_id, PermissionLevel.CRUD,
            f"No crud access to organigram node {node_id}",
        )

        node = self.repo.get_by_id(node_id)
        if not NodeKind(node.kind).accepts_file:
            raise ValidationError(f"Node {node_id} of kind {node.kind} cannot hold a file", field="kind")

        seq = self.repo.count_versions(node_id) + 1
        reference = build_reference(
            forest.path_names(node_id), seq, get_reference_format(self.db),
            year=datetime.now(timezone.utc).year, name=node.name,
        )
        self.repo.add_version(node, reference, file_url, uploaded_by=actor_id)
        self.db.commit()
        self.db.refresh(node)
        logger.info("Attached version %d to organigram node %s", seq, node_id)
        audit_service.log(
            self.db, actor_id, "upload", "organigram_node", node_id, {"reference": reference},
        )
        return node
