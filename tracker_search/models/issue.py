"""Issue SQLAlchemy model for issue tracking."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .project import Project


class Issue(Base):
    """
    Issue model representing tracked issues within a project.

    Attributes:
        id: Unique identifier
        project_id: FK to parent project
        subject: Issue summary
        description: Detailed issue description (may contain HTML)
        fixed_version: Name of the target version, if any
        is_private: Private issues are never indexed
        deleted_at: Soft delete timestamp (null = active)
        created_at: Timestamp when issue was created
        updated_at: Timestamp when issue was last updated
    """

    __tablename__ = "Issues"
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

    subject = Column(
        String(255),
        nullable=False,
    )
    description = Column(
        Text,
        nullable=True,
    )
    fixed_version = Column(
        String(100),
        nullable=True,
    )
    is_private = Column(
        Boolean,
        nullable=False,
        default=False,
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
        back_populates="issues",
    )

    def __repr__(self) -> str:
        """String representation of Issue."""
        return f"<Issue(id={self.id}, subject={self.subject[:30] if self.subject else ''})>"
