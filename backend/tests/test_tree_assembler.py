"""Tests for assembling annotated trees from a forest and resolved permissions."""

from orgarchive.core.enums import DisplayPermission as D, EffectivePermission as E, PermissionLevel as L
from orgarchive.services.forest import Forest, NodeRecord, by_name, by_order_key
from orgarchive.services.permission_service import PermissionGrant, resolve
from orgarchive.services.tree_assembler import AssemblyMode, assemble
from tests.conftest import forest_of


def _flatten(roots):
    """Pre-order list of (id, permissions) for every node in the output."""
    result = []
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        result.append((node.id, node.permissions))
        stack.extend(reversed(node.children))
    return result


class TestFullMode:

    def test_admin_annotation_is_crud(self):
        forest = forest_of(("a", None), ("b", "a"))
        roots = assemble(forest, {}, AssemblyMode.FULL)
        assert _flatten(roots) == [("a", D.CRUD), ("b", D.CRUD)]

    def test_public_listing_uses_display_admin(self):
        forest = forest_of(("a", None), ("b", "a"), ("c", None))
        roots = assemble(forest, {}, AssemblyMode.FULL, full_annotation=D.DISPLAY_ADMIN)
        assert {perm for _, perm in _flatten(roots)} == {D.DISPLAY_ADMIN}
        assert len(_flatten(roots)) == 3

    def test_empty_forest(self):
        assert assemble(Forest([]), {}, AssemblyMode.FULL) == []
        assert assemble(Forest([]), {}, AssemblyMode.PRUNED) == []


class TestPrunedMode:

    def test_only_resolved_nodes_are_included(self):
        forest = forest_of(("R", None), ("X", "R"), ("Y", "R"), ("X1", "X"))
        effective = resolve(forest, [PermissionGrant("X", L.VIEW)])
        roots = assemble(forest, effective, AssemblyMode.PRUNED)
        assert _flatten(roots) == [("R", D.VIEW), ("X", D.VIEW), ("X1", D.VIEW)]

    def test_structural_nodes_display_as_view(self):
        forest = forest_of(("R", None), ("X", "R"))
        effective = resolve(forest, [PermissionGrant("X", L.CRUD)])
        roots = assemble(forest, effective, AssemblyMode.PRUNED)
        assert roots[0].permissions == D.VIEW
        assert roots[0].children[0].permissions == D.CRUD

    def test_every_output_node_reachable_from_a_root(self):
        forest = forest_of(
            ("a", None), ("b", "a"), ("c", "b"), ("d", "c"), ("e", "d"),
            ("f", "a"), ("g", "f"),
        )
        effective = resolve(forest, [PermissionGrant("e", L.VIEW), PermissionGrant("g", L.CRUD)])
        roots = assemble(forest, effective, AssemblyMode.PRUNED)
        reachable = {node_id for node_id, _ in _flatten(roots)}
        assert reachable == set(effective)
        assert [r.id for r in roots] == ["a"]

    def test_node_links_to_nearest_included_ancestor(self):
        # A hand-built map without ancestor closure: "c" must hang off "a".
        forest = forest_of(("a", None), ("b", "a"), ("c", "b"))
        roots = assemble(forest, {"a": E.VIEW, "c": E.CRUD}, AssemblyMode.PRUNED)
        assert [r.id for r in roots] == ["a"]
        assert [c.id for c in roots[0].children] == ["c"]

    def test_node_without_included_ancestor_becomes_root(self):
        forest = forest_of(("a", None), ("b", "a"))
        roots = assemble(forest, {"b": E.VIEW}, AssemblyMode.PRUNED)
        assert [r.id for r in roots] == ["b"]

    def test_parent_id_is_the_output_parent(self):
        forest = forest_of(("a", None), ("b", "a"), ("c", "b"), ("d", None), ("e", "d"))
        roots = assemble(forest, {"a": E.VIEW, "c": E.CRUD, "e": E.VIEW}, AssemblyMode.PRUNED)
        a, e = roots
        assert (a.id, a.parent_id) == ("a", None)
        assert (e.id, e.parent_id) == ("e", None)
        assert [(c.id, c.parent_id) for c in a.children] == [("c", "a")]

    def test_full_mode_keeps_real_parent_ids(self):
        forest = forest_of(("a", None), ("b", "a"))
        roots = assemble(forest, {}, AssemblyMode.FULL)
        assert roots[0].children[0].parent_id == "a"

    def test_stale_ids_in_effective_are_skipped(self):
        forest = forest_of(("a", None))
        roots = assemble(forest, {"a": E.VIEW, "gone": E.CRUD}, AssemblyMode.PRUNED)
        assert _flatten(roots) == [("a", D.VIEW)]


class TestSorting:

    def test_categories_sorted_case_insensitively(self):
        forest = Forest([
            NodeRecord(id="3", parent_id=None, name="delta"),
            NodeRecord(id="1", parent_id=None, name="Bravo"),
            NodeRecord(id="2", parent_id=None, name="alpha"),
            NodeRecord(id="4", parent_id="2", name="Zulu"),
            NodeRecord(id="5", parent_id="2", name="yankee"),
        ])
        roots = assemble(forest, {}, AssemblyMode.FULL, order=by_name)
        assert [r.name for r in roots] == ["alpha", "Bravo", "delta"]
        assert [c.name for c in roots[0].children] == ["yankee", "Zulu"]

    def test_organigram_sorted_by_order_key_then_id(self):
        forest = forest_of(
            ("root", None, 0.0),
            ("z", "root", 1.0), ("a", "root", 2.0), ("m", "root", 1.0),
        )
        roots = assemble(forest, {}, AssemblyMode.FULL, order=by_order_key)
        assert [c.id for c in roots[0].children] == ["m", "z", "a"]


class TestCustomBuilder:

    def test_builder_receives_built_children(self):
        forest = forest_of(("a", None), ("b", "a"), ("c", "a"))

        def build(record, annotation, children):
            return {"id": record.id, "perm": annotation.value, "children": children}

        roots = assemble(forest, {}, AssemblyMode.FULL, build_node=build)
        assert roots == [{
            "id": "a",
            "perm": "crud",
            "children": [
                {"id": "b", "perm": "crud", "children": []},
                {"id": "c", "perm": "crud", "children": []},
            ],
        }]
