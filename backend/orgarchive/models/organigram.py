"""Organigram models: chart nodes and the file versions attached to them."""

from sqlalchemy import Column, Index, String, Text, Integer, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class OrganigramNode(Base):
    """A node of the organizational chart.

    ``kind`` is one of the NodeKind values and decides whether the node may
    hold children and/or a file. Siblings are ordered by ``order_key``
    (fractional values allowed), ties broken by id.
    """

    __tablename__ = "organigram_nodes"
    __table_args__ = (
        Index("ix_organigram_nodes_parent_id", "parent_id"),
    )

    id = Column(String(50), primary_key=True)  # org-{hex}
    name = Column(String(255), nullable=False)
    parent_id = Column(String(50), ForeignKey("organigram_nodes.id", ondelete="CASCADE"), nullable=True)
    kind = Column(String(30), nullable=False, default="container-with-file")
    order_key = Column(Float, nullable=False, default=0.0)

    # Current file reference (URL); NULL means the node is still missing its file
    file_url = Column(Text, nullable=True)

    updated_by = Column(String(50), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    versions = relationship(
        "OrganigramVersion",
        back_populates="node",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrganigramVersion.id",
    )

    @property
    def has_file(self) -> bool:
        return self.file_url is not None


class OrganigramVersion(Base):
    """One uploaded file for a node. Append-only history."""

    __tablename__ = "organigram_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    node_id = Column(
        String(50),
        ForeignKey("organigram_nodes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reference = Column(Text, nullable=False)
    file_url = Column(Text, nullable=False)
    uploaded_by = Column(String(50), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())

    node = relationship("OrganigramNode", back_populates="versions")
