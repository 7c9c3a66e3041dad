"""Archive document model."""

from sqlalchemy import Column, Index, String, Text, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class ArchiveDocument(Base):
    """A document filed under a category.

    ``code`` is the zero-padded sequence number within (category, year) and
    ``reference`` the full reference string generated from the category path.
    """

    __tablename__ = "archive_documents"
    __table_args__ = (
        Index("ix_archive_documents_category_year", "category_id", "year"),
    )

    id = Column(String(50), primary_key=True)  # doc-{hex}
    category_id = Column(
        String(50),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
    )
    year = Column(Integer, nullable=False)
    code = Column(String(20), nullable=False)
    reference = Column(Text, nullable=False)
    name = Column(String(255), nullable=False)
    file_urls = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    category = relationship("Category", back_populates="documents")
