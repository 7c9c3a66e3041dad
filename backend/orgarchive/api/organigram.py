"""Organigram API: chart tree, node lifecycle, files and completion.

Unauthenticated callers hold no organigram grants, so they get an empty tree
and zero progress.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, optional_auth, require_auth
from ..core.enums import TreeType
from ..database import get_db
from ..schemas.tree import (
    FileAttach,
    MissingNode,
    OrganigramNodeCreate,
    OrganigramNodeResponse,
    OrganigramNodeUpdate,
    OrganigramTreeNode,
    OrganigramVersionResponse,
    ProgressResponse,
    SubtreeDeleteResponse,
)
from ..services.organigram_service import OrganigramService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/organigram", tags=["organigram"])


# -- Tree -----------------------------------------------------------------

@router.get("/tree", response_model=List[OrganigramTreeNode])
def get_organigram_tree(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    return OrganigramService(db).get_tree(auth.grant_set(TreeType.ORGANIGRAM))


# -- Completion -----------------------------------------------------------

@router.get("/missing", response_model=List[MissingNode])
def get_missing_nodes(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    """Eligible nodes still waiting for a file, in chart order."""
    return OrganigramService(db).completion(auth.grant_set(TreeType.ORGANIGRAM)).missing


@router.get("/progress", response_model=ProgressResponse)
def get_progress(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    report = OrganigramService(db).completion(auth.grant_set(TreeType.ORGANIGRAM))
    return ProgressResponse(total=report.total, completed=report.completed_count, percent=report.percent)


# -- Nodes ----------------------------------------------------------------

@router.get("/nodes/{node_id}", response_model=OrganigramNodeResponse)
def get_node(
    node_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    return OrganigramService(db).get_node(node_id, auth.grant_set(TreeType.ORGANIGRAM))


@router.get("/nodes/{node_id}/versions", response_model=List[OrganigramVersionResponse])
def get_versions(
    node_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(optional_auth),
):
    return OrganigramService(db).get_versions(node_id, auth.grant_set(TreeType.ORGANIGRAM))


@router.post("/nodes", response_model=OrganigramNodeResponse, status_code=201)
def create_node(
    data: OrganigramNodeCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Create a root node (admin only) or a child of a container with crud."""
    return OrganigramService(db).create_node(
        data, auth.grant_set(TreeType.ORGANIGRAM), actor_id=auth.user_id,
    )


@router.patch("/nodes/{node_id}", response_model=OrganigramNodeResponse)
def update_node(
    node_id: str,
    data: OrganigramNodeUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return OrganigramService(db).update_node(
        node_id, data, auth.grant_set(TreeType.ORGANIGRAM), actor_id=auth.user_id,
    )


@router.delete("/nodes/{node_id}", response_model=SubtreeDeleteResponse)
def delete_node(
    node_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    deleted = OrganigramService(db).delete_node(
        node_id, auth.grant_set(TreeType.ORGANIGRAM), actor_id=auth.user_id,
    )
    return SubtreeDeleteResponse(deleted_ids=deleted)


@router.post("/nodes/{node_id}/file", response_model=OrganigramNodeResponse)
def attach_file(
    node_id: str,
    body: FileAttach,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Attach an uploaded file to a node, recording a new version."""
    return OrganigramService(db).attach_file(
        node_id, body.file_url, auth.grant_set(TreeType.ORGANIGRAM), actor_id=auth.user_id,
    )
