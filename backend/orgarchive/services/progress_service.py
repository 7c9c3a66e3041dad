"""Completion statistics over the organigram.

A node is eligible when its kind holds a file. Admins count every eligible
node; anyone else counts only the eligible nodes they can actually view
(structural-only ancestors do not count).
"""

from typing import List

from ..core.enums import NodeKind
from ..schemas.tree import CompletionReport, MissingNode
from .forest import Forest, by_order_key
from .permission_service import EffectiveMap, visible_ids

ELIGIBLE_KINDS = frozenset({NodeKind.LEAF_WITH_FILE, NodeKind.CONTAINER_WITH_FILE})


def completion_percent(completed: int, total: int) -> int:
    """``completed / total * 100`` rounded half up; 0 for an empty total."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def aggregate(forest: Forest, effective: EffectiveMap, is_admin: bool = False) -> CompletionReport:
    """Count eligible nodes and list those still missing a file.

    ``missing`` follows pre-order traversal with siblings in display order,
    each entry carrying the names of its ancestors from the root down.
    """
    visible = None if is_admin else visible_ids(effective)

    total = 0
    completed = 0
    missing: List[MissingNode] = []
    for record in forest.walk(order=by_order_key):
        if record.kind not in ELIGIBLE_KINDS:
            continue
        if visible is not None and record.id not in visible:
            continue
        total += 1
        if record.has_file:
            completed += 1
            continue
        missing.append(MissingNode(
            id=record.id,
            name=record.name,
            kind=record.kind,
            path=forest.path_names(record.id)[:-1],
        ))

    return CompletionReport(
        total=total,
        completed_count=completed,
        percent=completion_percent(completed, total),
        missing=missing,
    )
