"""Tests for authentication: tokens, dev-mode bypass, registration and login."""

import pytest

from orgarchive.core.token_factory import create_token, decode_token
from orgarchive.core.config import settings
from orgarchive.exceptions import ValidationError
from orgarchive.services import auth_service
from tests.conftest import make_user


class TestTokenFactory:

    def test_create_and_decode(self):
        token = create_token("user-1", "alice", "test-secret")
        payload = decode_token(token, "test-secret")
        assert payload is not None
        assert payload.sub == "user-1"
        assert payload.username == "alice"

    def test_wrong_secret_returns_none(self):
        token = create_token("user-1", "alice", "correct-secret")
        assert decode_token(token, "wrong-secret") is None

    def test_expired_token_returns_none(self):
        token = create_token("user-1", "alice", "secret", expires_hours=-1)
        assert decode_token(token, "secret") is None

    def test_malformed_token_returns_none(self):
        assert decode_token("not.a.token", "secret") is None
        assert decode_token("", "secret") is None


class TestAuthDisabledMode:
    """When AUTH_ENABLED=false (default), every request acts as an admin."""

    def test_create_root_without_token_succeeds(self, client):
        resp = client.post("/api/categories", json={"name": "Quality"})
        assert resp.status_code == 201

    def test_me_returns_anonymous_admin(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["is_admin"] is True


class TestRegistration:

    def test_first_user_becomes_admin(self, client, auth_on):
        resp = client.post("/api/auth/register", json={"username": "alice", "password": "password123"})
        assert resp.status_code == 201
        data = resp.json()
        assert data["is_admin"] is True
        assert [r["name"] for r in data["roles"]] == ["admin"]

    def test_second_registration_requires_admin(self, client, auth_on):
        client.post("/api/auth/register", json={"username": "alice", "password": "password123"})
        resp = client.post("/api/auth/register", json={"username": "bob", "password": "password123"})
        assert resp.status_code == 403

    def test_admin_registers_user_without_roles(self, client, db, auth_on):
        admin = make_user(db, "alice", admin=True)
        resp = client.post(
            "/api/auth/register", json={"username": "bob", "password": "password123"}, headers=admin,
        )
        assert resp.status_code == 201
        assert resp.json()["is_admin"] is False
        assert resp.json()["roles"] == []

    def test_duplicate_username_rejected(self, db):
        auth_service.register_user(db, "alice", "password123")
        with pytest.raises(ValidationError):
            auth_service.register_user(db, "alice", "password456")

    def test_short_password_rejected(self, client, auth_on):
        resp = client.post("/api/auth/register", json={"username": "alice", "password": "short"})
        assert resp.status_code == 422


class TestLogin:

    def test_login_returns_working_token(self, client, auth_on):
        client.post("/api/auth/register", json={"username": "alice", "password": "password123"})
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "password123"})
        assert resp.status_code == 200
        token = resp.json()["token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["username"] == "alice"

    def test_wrong_password_is_401(self, client, auth_on):
        client.post("/api/auth/register", json={"username": "alice", "password": "password123"})
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "nope-nope"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "UNAUTHORIZED"

    def test_deactivated_user_cannot_login(self, client, db, auth_on):
        user = auth_service.register_user(db, "alice", "password123")
        auth_service.deactivate_user(db, user.user_id)
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "password123"})
        assert resp.status_code == 401


class TestAuthEnabled:

    def test_write_without_token_is_401(self, client, auth_on):
        resp = client.post("/api/categories", json={"name": "Quality"})
        assert resp.status_code == 401

    def test_bad_token_is_401(self, client, auth_on):
        resp = client.post(
            "/api/categories", json={"name": "Quality"},
            headers={"Authorization": "Bearer garbage"},
        )
        assert resp.status_code == 401

    def test_token_signed_with_other_secret_is_401(self, client, db, auth_on):
        user = auth_service.register_user(db, "alice", "password123")
        token = create_token(user.user_id, user.username, settings.jwt_secret_key + "x")
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_users_listing_is_admin_only(self, client, db, auth_on):
        admin = make_user(db, "alice", admin=True)
        plain = make_user(db, "bob")
        assert client.get("/api/auth/users", headers=plain).status_code == 403
        resp = client.get("/api/auth/users", headers=admin)
        assert resp.status_code == 200
        assert {u["username"] for u in resp.json()} == {"alice", "bob"}

    def test_assign_roles(self, client, db, auth_on):
        admin = make_user(db, "alice", admin=True)
        make_user(db, "bob")
        role_id = client.post("/api/roles", json={"name": "readers"}, headers=admin).json()["id"]
        bob = next(u for u in client.get("/api/auth/users", headers=admin).json() if u["username"] == "bob")

        resp = client.put(
            f"/api/auth/users/{bob['user_id']}/roles", json={"role_ids": [role_id]}, headers=admin,
        )
        assert resp.status_code == 200
        assert [r["name"] for r in resp.json()["roles"]] == ["readers"]

    def test_assign_unknown_role_rejected(self, client, db, auth_on):
        admin = make_user(db, "alice", admin=True)
        me = client.get("/api/auth/me", headers=admin).json()
        resp = client.put(
            f"/api/auth/users/{me['user_id']}/roles", json={"role_ids": ["role-missing"]}, headers=admin,
        )
        assert resp.status_code == 400

    def test_deactivated_token_falls_back_on_reads(self, client, db, auth_on):
        make_user(db, "alice", admin=True)
        bob = make_user(db, "bob")
        bob_id = next(u.user_id for u in auth_service.list_users(db) if u.username == "bob")
        auth_service.deactivate_user(db, bob_id)

        assert client.get("/api/auth/me", headers=bob).status_code == 401
        # optional auth falls back to the public reader
        assert client.get("/api/categories/tree", headers=bob).status_code == 200
