"""Repository for archive documents."""

import uuid
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import or_

from ..exceptions import DocumentNotFoundError
from ..models.document import ArchiveDocument
from .base import BaseRepository


class DocumentRepository(BaseRepository[ArchiveDocument]):
    """Data access layer for archive documents."""

    model_class = ArchiveDocument
    not_found_error = DocumentNotFoundError

    def list_by_categories(self, category_ids: Iterable[str]) -> List[ArchiveDocument]:
        """Documents of the given categories, newest first."""
        ids = list(category_ids)
        if not ids:
            return []
        return (
            self.db.query(ArchiveDocument)
            .filter(ArchiveDocument.category_id.in_(ids))
            .order_by(ArchiveDocument.created_at.desc(), ArchiveDocument.id)
            .all()
        )

    def search(
        self,
        category_ids: Iterable[str],
        category_id: Optional[str] = None,
        year: Optional[int] = None,
        query: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[ArchiveDocument], int]:
        """Filtered, paginated listing restricted to *category_ids*.

        Returns (page, total matching).
        """
        ids = list(category_ids)
        if not ids:
            return [], 0
        q = self.db.query(ArchiveDocument).filter(ArchiveDocument.category_id.in_(ids))
        if category_id is not None:
            q = q.filter(ArchiveDocument.category_id == category_id)
        if year is not None:
            q = q.filter(ArchiveDocument.year == year)
        if query:
            pattern = f"%{query}%"
            q = q.filter(or_(
                ArchiveDocument.name.ilike(pattern),
                ArchiveDocument.reference.ilike(pattern),
            ))
        total = q.count()
        page = (
            q.order_by(ArchiveDocument.created_at.desc(), ArchiveDocument.id)
            .offset(skip)
            .limit(limit)
            .all()
        )
        return page, total

    def codes_for(self, category_id: str, year: int) -> List[str]:
        rows = (
            self.db.query(ArchiveDocument.code)
            .filter(ArchiveDocument.category_id == category_id, ArchiveDocument.year == year)
            .all()
        )
        return [row[0] for row in rows]

    def create(
        self,
        category_id: str,
        year: int,
        code: str,
        reference: str,
        name: str,
        file_urls: List[str],
    ) -> ArchiveDocument:
        document = ArchiveDocument(
            id=f"doc-{uuid.uuid4().hex[:12]}",
            category_id=category_id,
            year=year,
            code=code,
            reference=reference,
            name=name,
            file_urls=list(file_urls),
        )
        self.db.add(document)
        self.db.flush()
        self.db.refresh(document)
        return document
