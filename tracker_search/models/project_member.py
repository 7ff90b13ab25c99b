"""ProjectMember SQLAlchemy model granting users access to private projects."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .project import Project
    from .user import User


class ProjectMember(Base):
    """
    Membership of a user in a project.

    Any membership grants the view_project permission used by search.

    Attributes:
        id: Unique identifier
        project_id: FK to Projects
        user_id: FK to Users
        role: Membership role ("manager", "developer", "reporter")
        created_at: Timestamp when the membership was created
    """

    __tablename__ = "ProjectMembers"
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
    user_id = Column(
        Integer,
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(
        String(50),
        nullable=False,
        default="developer",
    )

    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )

    project = relationship(
        "Project",
        back_populates="members",
    )
    user = relationship(
        "User",
        back_populates="memberships",
    )

    def __repr__(self) -> str:
        """String representation of ProjectMember."""
        return f"<ProjectMember(project_id={self.project_id}, user_id={self.user_id})>"
