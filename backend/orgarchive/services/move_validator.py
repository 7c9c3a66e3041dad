"""Structural checks for create, move and delete on either tree.

Pure functions over a Forest and a resolved permission map. They either
return normally or raise one of the domain exceptions, which the API layer
turns into HTTP responses unchanged.

Move checks run in a fixed order so that callers always see the same error
for the same situation:

    1. node missing                     NodeNotFoundError   404
    2. no crud on the node              ForbiddenError      403
    3. target missing                   InvalidTargetError  400
    4. no crud on the target            ForbiddenError      403
    5. target is the node or below it   CycleError          400
    6. target kind holds no children    InvalidTargetError  400 (organigram)

Moving to the root only needs crud on the node itself, while creating a new
root node is reserved to admins.
"""

from typing import List, Optional

from ..core.enums import NodeKind, PermissionLevel, TreeType
from ..exceptions import (
    CycleError,
    InvalidTargetError,
    NodeNotFoundError,
    ValidationError,
    ForbiddenError,
)
from .forest import Forest
from .permission_service import EffectiveMap, require_permission


def validate_move(
    forest: Forest,
    node_id: str,
    new_parent_id: Optional[str],
    effective: EffectiveMap,
    tree: TreeType = TreeType.CATEGORY,
) -> None:
    """Validate re-parenting *node_id* under *new_parent_id* (None = root)."""
    node = forest.get(node_id)
    if node is None:
        raise NodeNotFoundError(node_id, tree=tree.value)

    require_permission(
        effective, node_id, PermissionLevel.CRUD,
        f"No crud access to {tree.value} node {node_id}",
    )

    if new_parent_id is None:
        return

    target = forest.get(new_parent_id)
    if target is None:
        raise InvalidTargetError(new_parent_id)

    require_permission(
        effective, new_parent_id, PermissionLevel.CRUD,
        f"No crud access to target {tree.value} node {new_parent_id}",
    )

    if new_parent_id == node_id or forest.is_descendant(node_id, new_parent_id):
        raise CycleError(node_id, new_parent_id)

    if tree == TreeType.ORGANIGRAM:
        _require_container(target.kind, new_parent_id)


def validate_create(
    forest: Forest,
    parent_id: Optional[str],
    effective: EffectiveMap,
    is_admin: bool = False,
    tree: TreeType = TreeType.CATEGORY,
) -> None:
    """Validate creating a new node under *parent_id* (None = new root)."""
    if parent_id is None:
        if not is_admin:
            raise ForbiddenError(f"Only admins can create root {tree.value} nodes")
        return

    parent = forest.get(parent_id)
    if parent is None:
        raise InvalidTargetError(parent_id, reason="Parent node does not exist")

    require_permission(
        effective, parent_id, PermissionLevel.CRUD,
        f"No crud access to parent {tree.value} node {parent_id}",
    )

    if tree == TreeType.ORGANIGRAM:
        _require_container(parent.kind, parent_id)


def validate_delete(
    forest: Forest,
    node_id: str,
    effective: EffectiveMap,
    tree: TreeType = TreeType.CATEGORY,
) -> List[str]:
    """Validate deleting *node_id* and return the ids of its whole subtree.

    Crud on the node is enough: the grant propagates to every descendant.
    """
    if node_id not in forest:
        raise NodeNotFoundError(node_id, tree=tree.value)
    require_permission(
        effective, node_id, PermissionLevel.CRUD,
        f"No crud access to {tree.value} node {node_id}",
    )
    return forest.subtree_ids(node_id)


def validate_kind_change(
    forest: Forest,
    node_id: str,
    new_kind: NodeKind,
    has_file: bool,
) -> None:
    """A node with children must stay a container; a node with a file must
    keep accepting one."""
    if not new_kind.accepts_children and forest.children_of(node_id):
        raise ValidationError(
            f"Node {node_id} has children and cannot become {new_kind.value}",
            field="kind",
        )
    if not new_kind.accepts_file and has_file:
        raise ValidationError(
            f"Node {node_id} has a file and cannot become {new_kind.value}",
            field="kind",
        )


def _require_container(kind: Optional[NodeKind], node_id: str) -> None:
    if kind is not None and not NodeKind(kind).accepts_children:
        raise InvalidTargetError(node_id, reason="Target node cannot hold children")
