"""Permission resolution: the ONE place where tree permission rules live.

Every endpoint that shows or mutates a tree goes through ``resolve`` and the
check helpers below; nothing else interprets grants.

Rules:
    - Levels: crud > view. A grant is a (node_id, level) pair, owned by a role.
    - Admins have crud on every node.
    - A grant applies to its node and propagates down to every descendant.
      Where several grants reach a node (its own, or from different
      ancestors) the strongest wins, so the result does not depend on the
      order grants are listed in.
    - Grants pointing at nodes that no longer exist are ignored.
    - Ancestors of every visible node that have no permission of their own
      are marked inherited-structural. They keep a pruned tree connected but
      fail every authorization check.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from ..core.enums import EffectivePermission, PermissionLevel
from ..exceptions import ForbiddenError
from .forest import Forest

_RANK: Dict[EffectivePermission, int] = {
    EffectivePermission.NONE: 0,
    EffectivePermission.INHERITED_STRUCTURAL: 1,
    EffectivePermission.VIEW: 2,
    EffectivePermission.CRUD: 3,
}

_GRANTING = frozenset({EffectivePermission.VIEW, EffectivePermission.CRUD})

EffectiveMap = Dict[str, EffectivePermission]


@dataclass(frozen=True)
class PermissionGrant:
    """Explicit grant of *level* on one node."""
    node_id: str
    level: PermissionLevel


@dataclass(frozen=True)
class GrantSet:
    """Everything the resolver needs to know about a principal for one tree."""
    is_admin: bool = False
    grants: Tuple[PermissionGrant, ...] = field(default_factory=tuple)


def _as_effective(level: PermissionLevel) -> EffectivePermission:
    return EffectivePermission(PermissionLevel(level).value)


def resolve(
    forest: Forest,
    grants: Iterable[PermissionGrant],
    is_admin: bool = False,
) -> EffectiveMap:
    """Compute the effective permission of every node for one principal.

    Args:
        forest: Snapshot of the whole tree.
        grants: The principal's explicit grants for this tree (union over roles).
        is_admin: Admin bypass, every node resolves to crud.

    Returns:
        ``{node_id: EffectivePermission}``. Nodes absent from the map have
        ``NONE`` and must not appear in a permission-filtered response.
    """
    if is_admin:
        return {node.id: EffectivePermission.CRUD for node in forest}

    # Strongest explicit level per existing node; stale grants dropped here.
    explicit: EffectiveMap = {}
    for grant in grants:
        if grant.node_id not in forest:
            continue
        level = _as_effective(grant.level)
        if _RANK[level] > _RANK[explicit.get(grant.node_id, EffectivePermission.NONE)]:
            explicit[grant.node_id] = level

    effective: EffectiveMap = {}
    for node_id, level in explicit.items():
        for target in forest.subtree_ids(node_id):
            if _RANK[level] > _RANK[effective.get(target, EffectivePermission.NONE)]:
                effective[target] = level

    # Ancestor closure. Stops at the first ancestor already present: its own
    # ancestors were (or will be) handled when that ancestor is processed.
    for node_id in list(effective):
        for ancestor_id in forest.ancestors(node_id):
            if ancestor_id in effective:
                break
            effective[ancestor_id] = EffectivePermission.INHERITED_STRUCTURAL

    return effective


def resolve_grant_set(forest: Forest, grant_set: GrantSet) -> EffectiveMap:
    return resolve(forest, grant_set.grants, grant_set.is_admin)


def permission_of(effective: EffectiveMap, node_id: Optional[str]) -> EffectivePermission:
    if node_id is None:
        return EffectivePermission.NONE
    return effective.get(node_id, EffectivePermission.NONE)


def check_permission(
    effective: EffectiveMap,
    node_id: Optional[str],
    required: PermissionLevel,
) -> bool:
    """Whether the resolved map authorizes *required* on *node_id*.

    inherited-structural never passes, not even for ``view``.
    """
    actual = permission_of(effective, node_id)
    if actual not in _GRANTING:
        return False
    return _RANK[actual] >= _RANK[_as_effective(required)]


def can_view(effective: EffectiveMap, node_id: Optional[str]) -> bool:
    return check_permission(effective, node_id, PermissionLevel.VIEW)


def can_edit(effective: EffectiveMap, node_id: Optional[str]) -> bool:
    return check_permission(effective, node_id, PermissionLevel.CRUD)


def require_permission(
    effective: EffectiveMap,
    node_id: Optional[str],
    required: PermissionLevel,
    message: Optional[str] = None,
) -> None:
    """Raise ForbiddenError unless *required* is authorized on *node_id*."""
    if not check_permission(effective, node_id, required):
        raise ForbiddenError(message or f"No {required.value} access to node {node_id}")


def visible_ids(effective: EffectiveMap) -> set[str]:
    """Node ids the principal may actually read (structural nodes excluded)."""
    return {node_id for node_id, level in effective.items() if level in _GRANTING}
