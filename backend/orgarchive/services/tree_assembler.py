"""Turn a forest plus resolved permissions into the nested trees the API returns.

Two modes:
    full    every node, each annotated with one fixed display permission
            (crud for admins, display-admin for the public listing)
    pruned  only nodes present in the resolved map; a node is attached to its
            nearest included ancestor, or becomes a root if it has none

The ``parent_id`` handed to builders is the parent in the output tree.

Construction is bottom-up over a pre-order list, so arbitrarily deep trees
never recurse.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Callable, Dict, List, Optional, TypeVar

from ..core.enums import DisplayPermission, EffectivePermission
from ..schemas.tree import AnnotatedNode
from .forest import Forest, NodeRecord, SortKey, by_name
from .permission_service import EffectiveMap

T = TypeVar("T")

NodeBuilder = Callable[[NodeRecord, DisplayPermission, List[T]], T]

_DISPLAY: Dict[EffectivePermission, DisplayPermission] = {
    EffectivePermission.CRUD: DisplayPermission.CRUD,
    EffectivePermission.VIEW: DisplayPermission.VIEW,
    EffectivePermission.INHERITED_STRUCTURAL: DisplayPermission.VIEW,
}


class AssemblyMode(str, Enum):
    FULL = "full"
    PRUNED = "pruned"


def default_builder(
    record: NodeRecord,
    annotation: DisplayPermission,
    children: List[AnnotatedNode],
) -> AnnotatedNode:
    return AnnotatedNode(
        id=record.id,
        name=record.name,
        parent_id=record.parent_id,
        reference=record.reference,
        permissions=annotation,
        children=children,
    )


def display_permission(level: EffectivePermission) -> Optional[DisplayPermission]:
    """Annotation for a resolved level; None when the node is not shown."""
    return _DISPLAY.get(level)


def assemble(
    forest: Forest,
    effective: EffectiveMap,
    mode: AssemblyMode,
    *,
    order: SortKey = by_name,
    full_annotation: DisplayPermission = DisplayPermission.CRUD,
    build_node: Optional[NodeBuilder] = None,
) -> List:
    """Assemble the forest into sorted nested nodes.

    Args:
        forest: Snapshot of the whole tree.
        effective: Resolved permissions. Ignored in full mode.
        mode: ``AssemblyMode.FULL`` or ``AssemblyMode.PRUNED``.
        order: Sibling sort key, applied to roots and every child list.
        full_annotation: Annotation used for every node in full mode.
        build_node: ``(record, annotation, children) -> node``; defaults to
            AnnotatedNode. Services pass their own to attach extra fields.

    Returns:
        The sorted list of root nodes. Empty forest gives ``[]``.
    """
    builder = build_node or default_builder

    annotations: Dict[str, DisplayPermission] = {}
    if mode == AssemblyMode.FULL:
        for record in forest:
            annotations[record.id] = full_annotation
    else:
        for node_id, level in effective.items():
            if node_id not in forest:
                continue
            shown = display_permission(level)
            if shown is not None:
                annotations[node_id] = shown

    # Nearest included ancestor per included node (None -> root of the output).
    attach_to: Dict[str, Optional[str]] = {}
    for node_id in annotations:
        attach_to[node_id] = None
        for ancestor_id in forest.ancestors(node_id):
            if ancestor_id in annotations:
                attach_to[node_id] = ancestor_id
                break

    children_of: Dict[Optional[str], List[NodeRecord]] = {}
    for node_id, parent_id in attach_to.items():
        children_of.setdefault(parent_id, []).append(forest.get(node_id))
    for siblings in children_of.values():
        siblings.sort(key=order)

    # Pre-order over the output tree, then build in reverse so every node's
    # children already exist when it is built.
    preorder: List[NodeRecord] = []
    stack = list(reversed(children_of.get(None, [])))
    while stack:
        record = stack.pop()
        preorder.append(record)
        stack.extend(reversed(children_of.get(record.id, [])))

    built: Dict[str, object] = {}
    for record in reversed(preorder):
        kids = [built.pop(child.id) for child in children_of.get(record.id, [])]
        # Builders see the output parent, never an ancestor that was left out.
        if record.parent_id != attach_to[record.id]:
            record = replace(record, parent_id=attach_to[record.id])
        built[record.id] = builder(record, annotations[record.id], kids)

    return [built[root.id] for root in children_of.get(None, [])]
