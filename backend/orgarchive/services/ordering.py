"""Sibling ordering for organigram nodes.

Siblings carry a float ``order_key``. Inserting between two siblings takes
the midpoint, so a single insert touches one row. When repeated inserts
squeeze a gap below ``ORDER_KEY_EPSILON`` the whole sibling list is
renumbered 1.0, 2.0, ...
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .forest import NodeRecord, by_order_key

ORDER_KEY_EPSILON = 1e-6


@dataclass(frozen=True)
class Placement:
    """Where a node lands among its siblings.

    ``renumber`` maps sibling id -> new key and is empty unless the gap got
    too small; when present it already accounts for the placed node.
    """
    order_key: float
    renumber: Dict[str, float] = field(default_factory=dict)


def order_key_between(before: Optional[float], after: Optional[float]) -> float:
    """Key strictly between two neighbours (either may be missing)."""
    if before is None and after is None:
        return 0.0
    if before is None:
        return after - 1.0
    if after is None:
        return before + 1.0
    return (before + after) / 2.0


def place_in_siblings(
    siblings: Sequence[NodeRecord],
    index: Optional[int] = None,
    node_id: Optional[str] = None,
) -> Placement:
    """Compute the key for inserting *node_id* at *index* among *siblings*.

    Args:
        siblings: Current children of the destination parent. The node being
            placed is skipped if present, so reordering in place works.
        index: Target position; None or past the end appends.
        node_id: Id of the placed node, used to leave it out of *siblings*
            and to include it in a renumbering plan.
    """
    ordered: List[NodeRecord] = sorted(
        (s for s in siblings if s.id != node_id), key=by_order_key
    )
    if index is None or index > len(ordered):
        index = len(ordered)

    before = ordered[index - 1].order_key if index > 0 else None
    after = ordered[index].order_key if index < len(ordered) else None
    key = order_key_between(before, after)

    if before is not None and after is not None and (after - before) < ORDER_KEY_EPSILON:
        ids = [s.id for s in ordered]
        placed = node_id if node_id is not None else ""
        ids.insert(index, placed)
        plan = {sid: float(pos + 1) for pos, sid in enumerate(ids)}
        key = plan.pop(placed)
        return Placement(order_key=key, renumber=plan)

    return Placement(order_key=key)
