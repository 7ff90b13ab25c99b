"""User SQLAlchemy model for search actors."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .project_member import ProjectMember


class User(Base):
    """
    User model representing tracker users.

    Only the fields the search permission check needs are mapped.

    Attributes:
        id: Unique identifier
        login: Login name (unique)
        email: User's email address
        is_admin: Administrators can view every active project
        created_at: Timestamp when user was created
    """

    __tablename__ = "Users"
    __allow_unmapped__ = True

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    login = Column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    email = Column(
        String(255),
        nullable=True,
    )
    is_admin = Column(
        Boolean,
        nullable=False,
        default=False,
    )

    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    memberships = relationship(
        "ProjectMember",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        """String representation of User."""
        return f"<User(id={self.id}, login={self.login})>"
