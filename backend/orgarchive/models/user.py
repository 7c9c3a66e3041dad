"""User, Role, role grants and AuditLog models.

Users authenticate with username/password and receive JWT tokens.
Roles carry per-node grants on both trees; a user's effective grants are the
union over all of their roles. Holding the role named ``admin`` grants crud on
every node of both trees.
AuditLog records all state-changing operations for accountability.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, ForeignKey, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", String(50), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String(50), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """User account. Permissions come exclusively from roles."""

    __tablename__ = "users"

    user_id = Column(String(50), primary_key=True)
    username = Column(String(255), unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    roles = relationship("Role", secondary=user_roles, back_populates="users")


class Role(Base):
    """Named set of grants on archive categories and organigram nodes."""

    __tablename__ = "roles"

    id = Column(String(50), primary_key=True)  # role-{hex}
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    users = relationship("User", secondary=user_roles, back_populates="roles")
    category_grants = relationship(
        "RoleCategoryGrant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    organigram_grants = relationship(
        "RoleOrganigramGrant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class RoleCategoryGrant(Base):
    """A role's permission (view or crud) on one archive category.

    The grant propagates to every descendant category at resolution time;
    descendants never need their own rows.
    """

    __tablename__ = "role_category_grants"

    role_id = Column(String(50), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    category_id = Column(String(50), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True)
    permission = Column(String(10), nullable=False, default="view")


class RoleOrganigramGrant(Base):
    """A role's permission (view or crud) on one organigram node."""

    __tablename__ = "role_organigram_grants"

    role_id = Column(String(50), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    node_id = Column(String(50), ForeignKey("organigram_nodes.id", ondelete="CASCADE"), primary_key=True)
    permission = Column(String(10), nullable=False, default="view")


class AuditLog(Base):
    """Immutable record of state-changing operations.

    Written by the service layer, never modified. Old rows are purged at
    startup according to AUDIT_RETENTION_DAYS.
    Fields:
        action        create, update, move, delete, upload, login, login_failed,
                      role_assign
        resource_type category, organigram_node, document, role, user, settings
        resource_id   ID of the affected resource
        details       JSON string with additional context
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=True)
    action = Column(String(50), nullable=False)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
