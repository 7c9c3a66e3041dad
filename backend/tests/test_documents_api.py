"""Tests for the /api/documents endpoints.

Covers the filing lifecycle, code allocation per (category, year), references
and permission filtering through the category tree.
"""

from orgarchive.core.enums import PermissionLevel as L
from tests.conftest import make_category, make_user


def _file(client, category_id, name="Doc", year=2024, headers=None):
    return client.post(
        "/api/documents",
        json={"category_id": category_id, "name": name, "year": year},
        headers=headers or {},
    )


class TestDocumentCRUD:
    """Create, read, update, delete."""

    def test_create_document(self, client, db):
        cat = make_category(db, "Quality")
        resp = _file(client, cat.id, "Manual")
        assert resp.status_code == 201
        data = resp.json()
        assert data["code"] == "0001"
        assert data["reference"] == "0001/Quality"
        assert data["year"] == 2024

    def test_year_defaults_to_current(self, client, db):
        cat = make_category(db, "Quality")
        resp = client.post("/api/documents", json={"category_id": cat.id, "name": "Manual"})
        assert resp.status_code == 201
        assert resp.json()["year"] >= 2024

    def test_get_document(self, client, db):
        doc_id = _file(client, make_category(db, "Quality").id).json()["id"]
        resp = client.get(f"/api/documents/{doc_id}")
        assert resp.status_code == 200
        assert resp.json()["id"] == doc_id

    def test_get_nonexistent_returns_404(self, client):
        resp = client.get("/api/documents/doc-does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["error"] == "DOCUMENT_NOT_FOUND"

    def test_unknown_category_returns_404(self, client):
        assert _file(client, "cat-missing").status_code == 404

    def test_rename_rerenders_reference(self, client, db):
        settings_body = {"reference_format": {"pattern": "{seq}-{name}"}}
        assert client.put("/api/settings", json=settings_body).status_code == 200
        doc_id = _file(client, make_category(db, "Quality").id, "Manual").json()["id"]

        resp = client.patch(f"/api/documents/{doc_id}", json={"name": "Handbook"})
        assert resp.status_code == 200
        assert resp.json()["reference"] == "0001-Handbook"
        assert resp.json()["code"] == "0001"

    def test_update_file_urls(self, client, db):
        doc_id = _file(client, make_category(db, "Quality").id).json()["id"]
        resp = client.patch(f"/api/documents/{doc_id}", json={"file_urls": ["/uploads/a.pdf"]})
        assert resp.json()["file_urls"] == ["/uploads/a.pdf"]

    def test_delete_document(self, client, db):
        doc_id = _file(client, make_category(db, "Quality").id).json()["id"]
        assert client.delete(f"/api/documents/{doc_id}").status_code == 204
        assert client.get(f"/api/documents/{doc_id}").status_code == 404


class TestCodeAllocation:

    def test_codes_increment_per_category_and_year(self, client, db):
        a = make_category(db, "A")
        b = make_category(db, "B")
        assert _file(client, a.id).json()["code"] == "0001"
        assert _file(client, a.id).json()["code"] == "0002"
        assert _file(client, b.id).json()["code"] == "0001"
        assert _file(client, a.id, year=2023).json()["code"] == "0001"

    def test_deleting_last_frees_its_code(self, client, db):
        a = make_category(db, "A")
        _file(client, a.id)
        second = _file(client, a.id).json()["id"]
        client.delete(f"/api/documents/{second}")
        assert _file(client, a.id).json()["code"] == "0002"


class TestListing:

    def test_filters_and_pagination(self, client, db):
        a = make_category(db, "A")
        b = make_category(db, "B")
        _file(client, a.id, "Budget", 2023)
        _file(client, a.id, "Audit", 2024)
        _file(client, b.id, "Budget plan", 2024)

        assert client.get("/api/documents").json()["total"] == 3
        assert client.get("/api/documents", params={"category_id": a.id}).json()["total"] == 2
        assert client.get("/api/documents", params={"year": 2024}).json()["total"] == 2
        assert client.get("/api/documents", params={"q": "budget"}).json()["total"] == 2

        page = client.get("/api/documents", params={"skip": 1, "limit": 1}).json()
        assert len(page["items"]) == 1
        assert page["total"] == 3

    def test_listing_only_shows_readable_categories(self, client, db, auth_on):
        root = make_category(db, "Root")
        open_cat = make_category(db, "Open", root)
        closed = make_category(db, "Closed", root)
        admin = make_user(db, "admin", admin=True)
        _file(client, root.id, "Root doc", headers=admin)
        _file(client, open_cat.id, "Open doc", headers=admin)
        _file(client, closed.id, "Closed doc", headers=admin)

        viewer = make_user(db, "viewer", category_grants={open_cat.id: L.VIEW})
        data = client.get("/api/documents", headers=viewer).json()
        assert [d["name"] for d in data["items"]] == ["Open doc"]

        resp = client.get("/api/documents", params={"category_id": closed.id}, headers=viewer)
        assert resp.status_code == 403


class TestDocumentPermissions:

    def test_view_cannot_file(self, client, db, auth_on):
        cat = make_category(db, "Quality")
        viewer = make_user(db, "viewer", category_grants={cat.id: L.VIEW})
        assert _file(client, cat.id, headers=viewer).status_code == 403

    def test_inherited_crud_can_file(self, client, db, auth_on):
        root = make_category(db, "Quality")
        child = make_category(db, "Audits", root)
        editor = make_user(db, "editor", category_grants={root.id: L.CRUD})
        resp = _file(client, child.id, headers=editor)
        assert resp.status_code == 201
        assert resp.json()["reference"] == "0001/Quality/Audits"

    def test_structural_ancestor_document_is_hidden(self, client, db, auth_on):
        root = make_category(db, "Root")
        child = make_category(db, "Child", root)
        admin = make_user(db, "admin", admin=True)
        doc_id = _file(client, root.id, headers=admin).json()["id"]
        viewer = make_user(db, "viewer", category_grants={child.id: L.VIEW})
        assert client.get(f"/api/documents/{doc_id}", headers=viewer).status_code == 403
