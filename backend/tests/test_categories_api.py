"""API tests for the category tree: views, mutations, moves and deletes."""

from orgarchive.core.enums import PermissionLevel as L
from tests.conftest import make_category, make_user


def _scenario(db):
    """R -> {X, Y}, X -> X1."""
    r = make_category(db, "R")
    x = make_category(db, "X", r)
    y = make_category(db, "Y", r)
    x1 = make_category(db, "X1", x)
    return r, x, y, x1


def _ids(nodes):
    out = []
    for node in nodes:
        out.append(node["id"])
        out.extend(_ids(node["children"]))
    return out


class TestCategoryCrud:

    def test_create_root_and_child(self, client):
        root = client.post("/api/categories", json={"name": "Quality"})
        assert root.status_code == 201
        child = client.post("/api/categories", json={"name": "Audits", "parent_id": root.json()["id"]})
        assert child.status_code == 201
        assert child.json()["parent_id"] == root.json()["id"]

    def test_blank_name_rejected(self, client):
        assert client.post("/api/categories", json={"name": "   "}).status_code == 422

    def test_missing_parent_is_invalid_target(self, client):
        resp = client.post("/api/categories", json={"name": "Orphan", "parent_id": "cat-missing"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_TARGET"

    def test_get_unknown_is_404(self, client):
        resp = client.get("/api/categories/cat-missing")
        assert resp.status_code == 404
        assert resp.json()["error"] == "NODE_NOT_FOUND"

    def test_duplicate_reference_conflicts(self, client):
        client.post("/api/categories", json={"name": "A", "reference": "QA"})
        resp = client.post("/api/categories", json={"name": "B", "reference": "QA"})
        assert resp.status_code == 409

    def test_rename(self, client, db):
        cat = make_category(db, "Old")
        resp = client.patch(f"/api/categories/{cat.id}", json={"name": "New"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "New"


class TestCategoryTree:

    def test_admin_sees_full_tree_sorted_by_name(self, client, db):
        root = make_category(db, "root")
        for name in ("beta", "Alpha", "gamma"):
            make_category(db, name, root)
        tree = client.get("/api/categories/tree").json()
        assert len(tree) == 1
        assert tree[0]["permissions"] == "crud"
        assert [c["name"] for c in tree[0]["children"]] == ["Alpha", "beta", "gamma"]

    def test_empty_tree(self, client):
        assert client.get("/api/categories/tree").json() == []

    def test_granted_user_sees_pruned_tree(self, client, db, auth_on):
        r, x, y, x1 = _scenario(db)
        headers = make_user(db, "viewer", category_grants={x.id: L.VIEW})

        tree = client.get("/api/categories/tree", headers=headers).json()
        assert [n["id"] for n in tree] == [r.id]
        assert tree[0]["permissions"] == "view"
        assert [c["id"] for c in tree[0]["children"]] == [x.id]
        assert tree[0]["children"][0]["children"][0]["id"] == x1.id
        assert y.id not in _ids(tree)

    def test_public_listing_is_display_admin(self, client, db, auth_on):
        _scenario(db)
        tree = client.get("/api/categories/tree").json()
        assert len(_ids(tree)) == 4
        assert tree[0]["permissions"] == "display-admin"

    def test_user_without_roles_sees_nothing(self, client, db, auth_on):
        _scenario(db)
        headers = make_user(db, "nobody")
        assert client.get("/api/categories/tree", headers=headers).json() == []
        assert client.get("/api/categories", headers=headers).json() == []

    def test_documents_hidden_on_structural_ancestors(self, client, db, auth_on):
        r, x, _, _ = _scenario(db)
        client.post(
            "/api/documents", json={"category_id": r.id, "name": "Root doc", "year": 2024},
            headers=make_user(db, "admin", admin=True),
        )
        headers = make_user(db, "viewer", category_grants={x.id: L.VIEW})
        tree = client.get("/api/categories/tree", headers=headers).json()
        assert tree[0]["documents"] == []

    def test_flat_listing_excludes_structural(self, client, db, auth_on):
        r, x, _, x1 = _scenario(db)
        headers = make_user(db, "viewer", category_grants={x.id: L.VIEW})
        ids = {c["id"] for c in client.get("/api/categories", headers=headers).json()}
        assert ids == {x.id, x1.id}

    def test_structural_node_is_not_readable(self, client, db, auth_on):
        r, x, _, _ = _scenario(db)
        headers = make_user(db, "viewer", category_grants={x.id: L.VIEW})
        assert client.get(f"/api/categories/{x.id}", headers=headers).status_code == 200
        assert client.get(f"/api/categories/{r.id}", headers=headers).status_code == 403


class TestCategoryPermissions:

    def test_view_cannot_create_child(self, client, db, auth_on):
        _, x, _, _ = _scenario(db)
        headers = make_user(db, "viewer", category_grants={x.id: L.VIEW})
        resp = client.post("/api/categories", json={"name": "N", "parent_id": x.id}, headers=headers)
        assert resp.status_code == 403

    def test_crud_can_create_child(self, client, db, auth_on):
        _, x, _, x1 = _scenario(db)
        headers = make_user(db, "editor", category_grants={x.id: L.CRUD})
        resp = client.post("/api/categories", json={"name": "N", "parent_id": x1.id}, headers=headers)
        assert resp.status_code == 201

    def test_root_creation_is_admin_only(self, client, db, auth_on):
        _, x, _, _ = _scenario(db)
        headers = make_user(db, "editor", category_grants={x.id: L.CRUD})
        assert client.post("/api/categories", json={"name": "Top"}, headers=headers).status_code == 403

    def test_move_to_root_needs_only_crud_on_node(self, client, db, auth_on):
        _, x, _, x1 = _scenario(db)
        headers = make_user(db, "editor", category_grants={x.id: L.CRUD})
        resp = client.patch(
            f"/api/categories/{x1.id}", json={"move": True, "parent_id": None}, headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["parent_id"] is None

    def test_move_needs_crud_on_target(self, client, db, auth_on):
        _, x, y, x1 = _scenario(db)
        headers = make_user(db, "editor", category_grants={x.id: L.CRUD, y.id: L.VIEW})
        resp = client.patch(
            f"/api/categories/{x1.id}", json={"move": True, "parent_id": y.id}, headers=headers,
        )
        assert resp.status_code == 403


class TestCategoryMove:

    def test_move_under_descendant_is_rejected(self, client, db):
        r, _, _, x1 = _scenario(db)
        resp = client.patch(f"/api/categories/{r.id}", json={"move": True, "parent_id": x1.id})
        assert resp.status_code == 400
        assert resp.json()["error"] == "WOULD_CREATE_CYCLE"

    def test_move_under_itself_is_rejected(self, client, db):
        r, _, _, _ = _scenario(db)
        resp = client.patch(f"/api/categories/{r.id}", json={"move": True, "parent_id": r.id})
        assert resp.json()["error"] == "WOULD_CREATE_CYCLE"

    def test_valid_move(self, client, db):
        _, x, y, _ = _scenario(db)
        resp = client.patch(f"/api/categories/{x.id}", json={"move": True, "parent_id": y.id})
        assert resp.status_code == 200
        tree = client.get("/api/categories/tree").json()
        y_node = next(c for c in tree[0]["children"] if c["id"] == y.id)
        assert [c["id"] for c in y_node["children"]] == [x.id]

    def test_parent_id_without_move_flag_is_ignored(self, client, db):
        _, x, y, _ = _scenario(db)
        resp = client.patch(f"/api/categories/{x.id}", json={"parent_id": y.id})
        assert resp.json()["parent_id"] != y.id

    def test_move_regenerates_document_references(self, client, db):
        r, x, y, x1 = _scenario(db)
        doc = client.post("/api/documents", json={"category_id": x1.id, "name": "Plan", "year": 2024}).json()
        assert doc["reference"] == "0001/R/X/X1"

        client.patch(f"/api/categories/{x1.id}", json={"move": True, "parent_id": y.id})
        assert client.get(f"/api/documents/{doc['id']}").json()["reference"] == "0001/R/Y/X1"

    def test_rename_regenerates_document_references(self, client, db):
        _, x, _, x1 = _scenario(db)
        doc = client.post("/api/documents", json={"category_id": x1.id, "name": "Plan", "year": 2024}).json()
        client.patch(f"/api/categories/{x.id}", json={"name": "Z"})
        assert client.get(f"/api/documents/{doc['id']}").json()["reference"] == "0001/R/Z/X1"


class TestCategoryDelete:

    def test_delete_removes_subtree_and_documents(self, client, db):
        r, x, y, x1 = _scenario(db)
        rid, xid, yid, x1id = r.id, x.id, y.id, x1.id
        client.post("/api/documents", json={"category_id": x1id, "name": "Plan", "year": 2024})

        resp = client.delete(f"/api/categories/{xid}")
        assert resp.status_code == 200
        assert set(resp.json()["deleted_ids"]) == {xid, x1id}
        assert client.get("/api/documents").json()["total"] == 0
        assert set(_ids(client.get("/api/categories/tree").json())) == {rid, yid}

    def test_delete_unknown_is_404(self, client):
        assert client.delete("/api/categories/cat-missing").status_code == 404

    def test_delete_needs_crud(self, client, db, auth_on):
        _, x, _, x1 = _scenario(db)
        headers = make_user(db, "viewer", category_grants={x.id: L.VIEW})
        assert client.delete(f"/api/categories/{x1.id}", headers=headers).status_code == 403

    def test_stale_grant_after_delete_is_ignored(self, client, db, auth_on):
        _, x, y, _ = _scenario(db)
        xid, yid = x.id, y.id
        headers = make_user(db, "viewer", category_grants={xid: L.VIEW, yid: L.VIEW})
        admin = make_user(db, "admin", admin=True)
        assert client.delete(f"/api/categories/{xid}", headers=admin).status_code == 200

        tree = client.get("/api/categories/tree", headers=headers).json()
        assert xid not in _ids(tree)
        assert yid in _ids(tree)
