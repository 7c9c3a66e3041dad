"""Archive category service: tree view, create, update/move, subtree delete."""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import DisplayPermission, PermissionLevel, TreeType
from ..exceptions import CategoryNotFoundError, ConflictError
from ..models.category import Category
from ..models.document import ArchiveDocument
from ..repositories.category_repository import CategoryRepository
from ..repositories.document_repository import DocumentRepository
from ..schemas.tree import CategoryCreate, CategoryTreeNode, CategoryUpdate, DocumentSummary
from . import audit_service
from .forest import Forest, NodeRecord, by_name
from .move_validator import validate_create, validate_delete, validate_move
from .permission_service import (
    EffectiveMap, GrantSet, require_permission, resolve_grant_set, visible_ids,
)
from .reference_service import build_reference
from .settings_service import get_reference_format
from .tree_assembler import AssemblyMode, assemble

logger = logging.getLogger(__name__)


class CategoryService:
    """Business logic for the category forest.

    Public methods:
        get_tree        -- permission-filtered nested tree with documents
        list_visible    -- flat list of categories the caller may read
        create_category -- new root (admin) or child (crud on parent)
        update_category -- rename, change reference, and/or move
        delete_category -- delete a category with its subtree and documents
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = CategoryRepository(db)
        self.doc_repo = DocumentRepository(db)

    def resolve(self, grant_set: GrantSet, forest: Optional[Forest] = None) -> EffectiveMap:
        return resolve_grant_set(forest or self.repo.snapshot(), grant_set)

    # -- Reads ------------------------------------------------------------

    def get_tree(self, grant_set: GrantSet, public_listing: bool = False) -> List[CategoryTreeNode]:
        """Nested category tree for one principal.

        Admins and the public listing get every category; anyone else gets
        the pruned tree. Documents are attached to categories the caller can
        read, never to structural-only ancestors.
        """
        forest = self.repo.snapshot()

        if grant_set.is_admin or public_listing:
            effective: EffectiveMap = {}
            mode = AssemblyMode.FULL
            readable = [node.id for node in forest]
        else:
            effective = resolve_grant_set(forest, grant_set)
            mode = AssemblyMode.PRUNED
            readable = list(visible_ids(effective))

        docs_by_category: Dict[str, List[DocumentSummary]] = {}
        for doc in self.doc_repo.list_by_categories(readable):
            docs_by_category.setdefault(doc.category_id, []).append(
                DocumentSummary.model_validate(doc)
            )

        def build(record: NodeRecord, annotation: DisplayPermission, children: list) -> CategoryTreeNode:
            return CategoryTreeNode(
                id=record.id,
                name=record.name,
                parent_id=record.parent_id,
                reference=record.reference,
                permissions=annotation,
                documents=docs_by_category.get(record.id, []),
                children=children,
            )

        full_annotation = DisplayPermission.CRUD if grant_set.is_admin else DisplayPermission.DISPLAY_ADMIN
        return assemble(
            forest,
            effective,
            mode,
            order=by_name,
            full_annotation=full_annotation,
            build_node=build,
        )

    def list_visible(self, grant_set: GrantSet) -> List[Category]:
        categories = self.repo.list_all()
        if grant_set.is_admin:
            return categories
        forest = Forest(
            NodeRecord(id=c.id, parent_id=c.parent_id, name=c.name) for c in categories
        )
        readable = visible_ids(resolve_grant_set(forest, grant_set))
        return [c for c in categories if c.id in readable]

    def get_category(self, category_id: str, grant_set: GrantSet) -> Category:
        category = self.repo.get_by_id(category_id)
        require_permission(
            self.resolve(grant_set), category_id, PermissionLevel.VIEW,
            f"No view access to category {category_id}",
        )
        return category

    # -- Mutations --------------------------------------------------------

    def create_category(
        self,
        data: CategoryCreate,
        grant_set: GrantSet,
        actor_id: Optional[str] = None,
    ) -> Category:
        forest = self.repo.snapshot()
        effective = resolve_grant_set(forest, grant_set)
        validate_create(forest, data.parent_id, effective, grant_set.is_admin, TreeType.CATEGORY)
        self._check_reference_free(data.reference)

        category = self.repo.create(data.name, data.parent_id, data.reference)
        self.db.commit()
        self.db.refresh(category)
        logger.info("Created category %s under %s", category.id, data.parent_id or "root")
        audit_service.log(
            self.db, actor_id, "create", "category", category.id,
            {"name": category.name, "parent_id": category.parent_id},
        )
        return category

    def update_category(
        self,
        category_id: str,
        data: CategoryUpdate,
        grant_set: GrantSet,
        actor_id: Optional[str] = None,
    ) -> Category:
        """Rename, change reference and/or move a category.

        Renaming or moving regenerates the references of every document in
        the category's subtree.
        """
        forest = self.repo.snapshot()
        effective = resolve_grant_set(forest, grant_set)

        if data.move:
            validate_move(forest, category_id, data.parent_id, effective, TreeType.CATEGORY)
        else:
            if category_id not in forest:
                raise CategoryNotFoundError(category_id)
            require_permission(
                effective, category_id, PermissionLevel.CRUD,
                f"No crud access to category {category_id}",
            )

        category = self.repo.get_by_id(category_id)
        changes: dict = {}
        if data.name is not None and data.name != category.name:
            changes["name"] = data.name
            category.name = data.name
        # An empty string clears the reference.
        new_reference = data.reference or None
        if data.reference is not None and new_reference != category.reference:
            self._check_reference_free(new_reference, exclude_id=category_id)
            changes["reference"] = new_reference
            category.reference = new_reference
        if data.move and data.parent_id != category.parent_id:
            changes["parent_id"] = data.parent_id
            category.parent_id = data.parent_id
        self.db.flush()

        if "name" in changes or "parent_id" in changes:
            updated = self.regenerate_references(category_id)
            logger.info("Regenerated %d document references under %s", updated, category_id)

        self.db.commit()
        self.db.refresh(category)
        if changes:
            action = "move" if "parent_id" in changes else "update"
            audit_service.log(self.db, actor_id, action, "category", category_id, changes)
        return category

    def delete_category(
        self,
        category_id: str,
        grant_set: GrantSet,
        actor_id: Optional[str] = None,
    ) -> List[str]:
        """Delete a category, its descendants and their documents.

        Returns the deleted category ids.
        """
        forest = self.repo.snapshot()
        effective = resolve_grant_set(forest, grant_set)
        subtree = validate_delete(forest, category_id, effective, TreeType.CATEGORY)

        self.repo.delete_subtree(subtree)
        self.db.commit()
        logger.info("Deleted category %s (%d categories)", category_id, len(subtree))
        audit_service.log(
            self.db, actor_id, "delete", "category", category_id, {"deleted": len(subtree)},
        )
        return subtree

    # -- References -------------------------------------------------------

    def regenerate_references(self, category_id: str) -> int:
        """Rebuild the reference of every document below *category_id*.

        Must run after the category change is flushed. Returns the number of
        documents touched.
        """
        forest = self.repo.snapshot()
        fmt = get_reference_format(self.db)
        subtree = forest.subtree_ids(category_id)
        paths = {cid: forest.path_names(cid) for cid in subtree}

        documents: List[ArchiveDocument] = self.doc_repo.list_by_categories(subtree)
        for doc in documents:
            doc.reference = build_reference(
                paths[doc.category_id], int(doc.code), fmt, year=doc.year, name=doc.name,
            )
        self.db.flush()
        return len(documents)

    def _check_reference_free(self, reference: Optional[str], exclude_id: Optional[str] = None) -> None:
        if not reference:
            return
        existing = self.repo.get_by_reference(reference)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(
                f"Category reference already in use: {reference}",
                details={"reference": reference, "category_id": existing.id},
            )
