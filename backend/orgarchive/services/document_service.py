"""Archive document service.

Every operation is checked against the resolved category permissions of the
caller: reading needs view on the document's category, filing, editing and
deleting need crud.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.enums import PermissionLevel
from ..exceptions import CategoryNotFoundError
from ..models.document import ArchiveDocument
from ..repositories.category_repository import CategoryRepository
from ..repositories.document_repository import DocumentRepository
from ..schemas.document import DocumentCreate, DocumentUpdate
from . import audit_service
from .permission_service import GrantSet, require_permission, resolve_grant_set, visible_ids
from .reference_service import build_reference, format_sequence, next_code
from .settings_service import get_reference_format

logger = logging.getLogger(__name__)


class DocumentService:
    """Business logic for archive documents."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DocumentRepository(db)
        self.category_repo = CategoryRepository(db)

    def list_documents(
        self,
        grant_set: GrantSet,
        category_id: Optional[str] = None,
        year: Optional[int] = None,
        query: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[ArchiveDocument], int]:
        """Documents in readable categories, optionally filtered."""
        forest = self.category_repo.snapshot()
        effective = resolve_grant_set(forest, grant_set)
        if category_id is not None:
            if category_id not in forest:
                raise CategoryNotFoundError(category_id)
            require_permission(
                effective, category_id, PermissionLevel.VIEW,
                f"No view access to category {category_id}",
            )
        return self.repo.search(
            visible_ids(effective), category_id=category_id, year=year,
            query=query, skip=skip, limit=limit,
        )

    def get_document(self, doc_id: str, grant_set: GrantSet) -> ArchiveDocument:
        document = self.repo.get_by_id(doc_id)
        self._require(document.category_id, grant_set, PermissionLevel.VIEW)
        return document

    def create_document(
        self,
        data: DocumentCreate,
        grant_set: GrantSet,
        actor_id: Optional[str] = None,
    ) -> ArchiveDocument:
        """File a new document, assigning the next code of its (category, year)."""
        forest = self.category_repo.snapshot()
        if data.category_id not in forest:
            raise CategoryNotFoundError(data.category_id)
        require_permission(
            resolve_grant_set(forest, grant_set), data.category_id, PermissionLevel.CRUD,
            f"No crud access to category {data.category_id}",
        )

        year = data.year or datetime.now(timezone.utc).year
        fmt = get_reference_format(self.db)
        seq = next_code(self.repo.codes_for(data.category_id, year))
        reference = build_reference(
            forest.path_names(data.category_id), seq, fmt, year=year, name=data.name,
        )

        document = self.repo.create(
            category_id=data.category_id,
            year=year,
            code=format_sequence(seq, fmt),
            reference=reference,
            name=data.name,
            file_urls=data.file_urls,
        )
        self.db.commit()
        self.db.refresh(document)
        logger.info("Filed document %s as %s", document.id, reference)
        audit_service.log(
            self.db, actor_id, "create", "document", document.id, {"reference": reference},
        )
        return document

    def update_document(
        self,
        doc_id: str,
        data: DocumentUpdate,
        grant_set: GrantSet,
        actor_id: Optional[str] = None,
    ) -> ArchiveDocument:
        document = self.repo.get_by_id(doc_id)
        forest = self._require(document.category_id, grant_set, PermissionLevel.CRUD)

        if data.file_urls is not None:
            document.file_urls = list(data.file_urls)
        if data.name is not None and data.name != document.name:
            document.name = data.name
            document.reference = build_reference(
                forest.path_names(document.category_id), int(document.code),
                get_reference_format(self.db), year=document.year, name=document.name,
            )

        self.db.commit()
        self.db.refresh(document)
        audit_service.log(self.db, actor_id, "update", "document", doc_id)
        return document

    def delete_document(self, doc_id: str, grant_set: GrantSet, actor_id: Optional[str] = None) -> None:
        document = self.repo.get_by_id(doc_id)
        self._require(document.category_id, grant_set, PermissionLevel.CRUD)
        self.db.delete(document)
        self.db.commit()
        logger.info("Deleted document %s", doc_id)
        audit_service.log(self.db, actor_id, "delete", "document", doc_id)

    def _require(self, category_id: str, grant_set: GrantSet, level: PermissionLevel):
        forest = self.category_repo.snapshot()
        require_permission(
            resolve_grant_set(forest, grant_set), category_id, level,
            f"No {level.value} access to category {category_id}",
        )
        return forest
