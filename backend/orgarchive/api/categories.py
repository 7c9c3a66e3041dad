"""Category API: tree, flat listing, create, update/move, subtree delete.

Every handler resolves the caller's category grants through CategoryService;
the tree endpoint returns the full tree for admins and for the public
listing, and the pruned tree for everyone else.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, optional_auth, require_auth
from ..core.enums import TreeType
from ..database import get_db
from ..schemas.tree import (
    CategoryCreate, CategoryResponse, CategoryTreeNode, CategoryUpdate, SubtreeDeleteResponse,
)
from ..services.category_service import CategoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("/tree", response_model=List[CategoryTreeNode])
def get_category_tree(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    """Nested category tree with the documents of each readable category."""
    service = CategoryService(db)
    return service.get_tree(auth.grant_set(TreeType.CATEGORY), public_listing=auth.public_reader)


@router.get("", response_model=List[CategoryResponse])
def list_categories(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    """Flat list of the categories the caller can view."""
    return CategoryService(db).list_visible(auth.grant_set(TreeType.CATEGORY))


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(
    category_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    return CategoryService(db).get_category(category_id, auth.grant_set(TreeType.CATEGORY))


@router.post("", response_model=CategoryResponse, status_code=201)
def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Create a root category (admin only) or a child of a category with crud."""
    return CategoryService(db).create_category(
        data, auth.grant_set(TreeType.CATEGORY), actor_id=auth.user_id,
    )


@router.patch("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: str,
    data: CategoryUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Rename, change reference and/or move (``move: true``) a category."""
    return CategoryService(db).update_category(
        category_id, data, auth.grant_set(TreeType.CATEGORY), actor_id=auth.user_id,
    )


@router.delete("/{category_id}", response_model=SubtreeDeleteResponse)
def delete_category(
    category_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Delete a category with all sub-categories and their documents."""
    deleted = CategoryService(db).delete_category(
        category_id, auth.grant_set(TreeType.CATEGORY), actor_id=auth.user_id,
    )
    return SubtreeDeleteResponse(deleted_ids=deleted)
