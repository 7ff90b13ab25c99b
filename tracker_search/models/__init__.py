"""SQLAlchemy ORM models for the tracker tables read by the search indexer."""

from .document import Document
from .issue import Issue
from .project import Project
from .project_member import ProjectMember
from .user import User
from .wiki_page import WikiPage

__all__ = [
    "Document",
    "Issue",
    "Project",
    "ProjectMember",
    "User",
    "WikiPage",
]
