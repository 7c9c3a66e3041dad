"""Repository for archive categories."""

import uuid
from typing import List, Optional

from ..exceptions import CategoryNotFoundError
from ..models.category import Category
from ..models.document import ArchiveDocument
from ..models.user import RoleCategoryGrant
from ..services.forest import Forest, NodeRecord
from .base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    """Data access layer for the category forest."""

    model_class = Category
    not_found_error = CategoryNotFoundError

    def list_all(self) -> List[Category]:
        return self.db.query(Category).order_by(Category.name, Category.id).all()

    def snapshot(self) -> Forest:
        """Whole category forest in one query."""
        return Forest(
            NodeRecord(
                id=c.id,
                parent_id=c.parent_id,
                name=c.name,
                reference=c.reference,
            )
            for c in self.list_all()
        )

    def get_by_reference(self, reference: str) -> Optional[Category]:
        return self.db.query(Category).filter(Category.reference == reference).first()

    def create(self, name: str, parent_id: Optional[str], reference: Optional[str] = None) -> Category:
        category = Category(
            id=f"cat-{uuid.uuid4().hex[:12]}",
            name=name,
            parent_id=parent_id,
            reference=reference,
        )
        self.db.add(category)
        self.db.flush()
        self.db.refresh(category)
        return category

    def delete_subtree(self, category_ids: List[str]) -> int:
        """Delete the given categories with their documents and grants."""
        if not category_ids:
            return 0
        (
            self.db.query(ArchiveDocument)
            .filter(ArchiveDocument.category_id.in_(category_ids))
            .delete(synchronize_session=False)
        )
        (
            self.db.query(RoleCategoryGrant)
            .filter(RoleCategoryGrant.category_id.in_(category_ids))
            .delete(synchronize_session=False)
        )
        return self.delete_ids(category_ids)
