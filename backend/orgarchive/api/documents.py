"""Archive document API."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, optional_auth, require_auth
from ..core.enums import TreeType
from ..database import get_db
from ..schemas.document import (
    DocumentCreate, DocumentListResponse, DocumentResponse, DocumentUpdate,
)
from ..services.document_service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("", response_model=DocumentListResponse)
def list_documents(
    category_id: Optional[str] = Query(None, description="Restrict to one category"),
    year: Optional[int] = Query(None),
    q: Optional[str] = Query(None, description="Substring of name or reference"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    """Documents in categories the caller can view, newest first."""
    items, total = DocumentService(db).list_documents(
        auth.grant_set(TreeType.CATEGORY),
        category_id=category_id, year=year, query=q, skip=skip, limit=limit,
    )
    return DocumentListResponse(
        items=[DocumentResponse.model_validate(d) for d in items],
        total=total, skip=skip, limit=limit,
    )


@router.get("/{doc_id}", response_model=DocumentResponse)
def get_document(
    doc_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    return DocumentService(db).get_document(doc_id, auth.grant_set(TreeType.CATEGORY))


@router.post("", response_model=DocumentResponse, status_code=201)
def create_document(
    data: DocumentCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return DocumentService(db).create_document(
        data, auth.grant_set(TreeType.CATEGORY), actor_id=auth.user_id,
    )


@router.patch("/{doc_id}", response_model=DocumentResponse)
def update_document(
    doc_id: str,
    data: DocumentUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return DocumentService(db).update_document(
        doc_id, data, auth.grant_set(TreeType.CATEGORY), actor_id=auth.user_id,
    )


@router.delete("/{doc_id}", status_code=204)
def delete_document(
    doc_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    DocumentService(db).delete_document(doc_id, auth.grant_set(TreeType.CATEGORY), actor_id=auth.user_id)
