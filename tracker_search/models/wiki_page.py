"""WikiPage SQLAlchemy model for project wikis."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .project import Project


class WikiPage(Base):
    """
    Wiki page belonging to a project wiki.

    Attributes:
        id: Unique identifier
        project_id: FK to owning project
        title: Page title (unique within the project)
        text: Page body
        deleted_at: Soft delete timestamp (null = active)
        created_at: Timestamp when the page was created
        updated_at: Timestamp when the page was last edited
    """

    __tablename__ = "WikiPages"
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
    text = Column(
        Text,
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
        back_populates="wiki_pages",
    )

    def __repr__(self) -> str:
        """String representation of WikiPage."""
        return f"<WikiPage(id={self.id}, title={self.title[:30] if self.title else ''})>"
