"""Document SQLAlchemy model for project documents.

Documents are files-with-description attached to a project (specs,
manuals, meeting notes). Supports soft delete via deleted_at.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .project import Project


class Document(Base):
    """
    Project document.

    Attributes:
        id: Unique identifier
        project_id: FK to owning project
        title: Document title
        description: Document description
        category: Free-form category name
        deleted_at: Soft delete timestamp (null = active)
        created_at: Timestamp when document was created
        updated_at: Timestamp when document was last updated
    """

    __tablename__ = "Documents"
    __allow_unmapped__ = True

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    project_id = Column(
        Integer,
        ForeignKey("Projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = Column(
        String(255),
        nullable=False,
    )
    description = Column(
        Text,
        nullable=True,
    )
    category = Column(
        String(100),
        nullable=True,
    )

    deleted_at = Column(
        DateTime,
        nullable=True,
        index=True,
    )

    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    project = relationship(
        "Project",
        back_populates="documents",
    )

    def __repr__(self) -> str:
        """String representation of Document."""
        return f"<Document(id={self.id}, title={self.title[:30] if self.title else ''})>"
