"""Archive category model: a forest of folders linked by parent_id."""

from sqlalchemy import Column, Index, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class Category(Base):
    """A folder of the archive.

    Deleting a category cascades to its sub-categories, its documents and
    every role grant that references it.
    """

    __tablename__ = "categories"
    __table_args__ = (
        Index("ix_categories_parent_id", "parent_id"),
    )

    id = Column(String(50), primary_key=True)  # cat-{hex}
    name = Column(String(255), nullable=False)
    parent_id = Column(String(50), ForeignKey("categories.id", ondelete="CASCADE"), nullable=True)

    # Optional free-form code shown next to the name (unique when present)
    reference = Column(String(100), unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    documents = relationship(
        "ArchiveDocument",
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
