"""Project SQLAlchemy model.

Projects are the parent entity of every searchable record. Each one is
indexed as a ``parent_project`` join node so that child documents can be
filtered by the permissions of their owning project.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .document import Document
    from .issue import Issue
    from .project_member import ProjectMember
    from .wiki_page import WikiPage


class Project(Base):
    """
    Project model.

    Attributes:
        id: Unique identifier
        identifier: URL identifier (e.g., "ecommerce")
        name: Project name
        description: Project description
        is_public: Public projects are visible to every logged-in user
        archived_at: Archive timestamp (null = active). Archived projects
            and everything under them are excluded from search.
        created_at: Timestamp when project was created
        updated_at: Timestamp when project was last updated
    """

    __tablename__ = "Projects"
    __allow_unmapped__ = True

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    identifier = Column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
    )
    name = Column(
        String(255),
        nullable=False,
    )
    description = Column(
        Text,
        nullable=True,
    )
    is_public = Column(
        Boolean,
        nullable=False,
        default=True,
    )

    archived_at = Column(
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

    members = relationship(
        "ProjectMember",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )
    issues = relationship(
        "Issue",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )
    wiki_pages = relationship(
        "WikiPage",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )
    documents = relationship(
        "Document",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        """String representation of Project."""
        return f"<Project(id={self.id}, identifier={self.identifier})>"
