"""Shared test fixtures for the OrgArchive backend test suite.

Tests run against an in-memory SQLite database shared through a single
connection. Tables are dropped and recreated before each test, so every test
starts from an empty schema.
"""

import os

# Force auth off and use the test database before any app imports.
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite://")
os.environ["AUTH_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"

from typing import Dict, Iterable, Optional

import pytest
from sqlalchemy.orm import Session
from fastapi.testclient import TestClient

from orgarchive.database import Base, get_db, engine, SessionLocal
from orgarchive.main import app
from orgarchive.core.config import settings
from orgarchive.core.enums import NodeKind, PermissionLevel
from orgarchive.core.token_factory import create_token
from orgarchive.middleware.request_context import _rate_buckets
from orgarchive.models import Category, OrganigramNode
from orgarchive.repositories.category_repository import CategoryRepository
from orgarchive.repositories.organigram_repository import OrganigramRepository
from orgarchive.repositories.role_repository import RoleRepository
from orgarchive.services import auth_service
from orgarchive.services.forest import Forest, NodeRecord


@pytest.fixture(autouse=True)
def _clean_tables():
    """Recreate the schema before each test for isolation."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    _rate_buckets.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_on(monkeypatch):
    """Enable authentication (and public category listing) for one test."""
    monkeypatch.setattr(settings, "auth_enabled", True)
    monkeypatch.setattr(settings, "public_read", True)
    yield


# --- Factories ---


def forest_of(*nodes: tuple) -> Forest:
    """Build a Forest from ``(id, parent_id)`` or ``(id, parent_id, extra...)`` tuples.

    Extra positional values map to ``order_key, kind, has_file``.
    """
    records = []
    for node in nodes:
        node_id, parent_id, *rest = node
        fields = dict(zip(("order_key", "kind", "has_file"), rest))
        records.append(NodeRecord(id=node_id, parent_id=parent_id, name=node_id, **fields))
    return Forest(records)


def make_category(db: Session, name: str, parent: Optional[Category] = None) -> Category:
    category = CategoryRepository(db).create(name, parent.id if parent else None)
    db.commit()
    return category


def make_org_node(
    db: Session,
    name: str,
    parent: Optional[OrganigramNode] = None,
    kind: NodeKind = NodeKind.CONTAINER_WITH_FILE,
    order_key: float = 0.0,
    file_url: Optional[str] = None,
) -> OrganigramNode:
    node = OrganigramRepository(db).create(
        name, parent.id if parent else None, kind, order_key,
    )
    node.file_url = file_url
    db.commit()
    return node


def make_user(
    db: Session,
    username: str,
    category_grants: Optional[Dict[str, PermissionLevel]] = None,
    organigram_grants: Optional[Dict[str, PermissionLevel]] = None,
    admin: bool = False,
) -> dict:
    """Create a user holding one role with the given grants.

    Returns the Authorization headers for that user.
    """
    user = auth_service.register_user(db, username, "password123")
    roles = RoleRepository(db)
    role_ids: Iterable[str] = []
    if admin:
        role_ids = [roles.get_or_create_admin().id]
    elif category_grants or organigram_grants:
        role = roles.create(f"role-for-{username}")
        roles.replace_grants(role, category_grants or {}, organigram_grants or {})
        db.commit()
        role_ids = [role.id]
    auth_service.set_user_roles(db, user.user_id, list(role_ids))
    token = create_token(user.user_id, user.username, settings.jwt_secret_key)
    return {"Authorization": f"Bearer {token}"}
