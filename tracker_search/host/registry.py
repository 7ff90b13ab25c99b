"""Searchable type declarations for the tracker models."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import Document, Issue, Project, WikiPage
from ..search import PARENT_TYPE, SearchableType, SearchTypeRegistry
from .scopes import document_scope, issue_scope, project_scope, wiki_page_scope
from .serializers import (
    serialize_document,
    serialize_issue,
    serialize_project,
    serialize_wiki_page,
)

# Name under which project commits are reported to the dispatcher
PROJECTS = "projects"

# Model -> search type name, used by the commit hooks
MODEL_TYPE_NAMES: dict[type, str] = {
    Project: PROJECTS,
    Issue: "issues",
    WikiPage: "wiki_pages",
    Document: "documents",
}


def build_search_registry(session_maker: async_sessionmaker[AsyncSession]) -> SearchTypeRegistry:
    """Registry of the tracker's searchable types, in full-reindex order."""
    parents = SearchableType(
        name=PROJECTS,
        singular=PARENT_TYPE,
        scope=project_scope(session_maker),
        serializer=serialize_project,
    )
    return SearchTypeRegistry(
        parents,
        [
            SearchableType(
                name="issues",
                singular="issue",
                scope=issue_scope(session_maker),
                serializer=serialize_issue,
            ),
            SearchableType(
                name="wiki_pages",
                singular="wiki_page",
                scope=wiki_page_scope(session_maker),
                serializer=serialize_wiki_page,
            ),
            SearchableType(
                name="documents",
                singular="document",
                scope=document_scope(session_maker),
                serializer=serialize_document,
                mapping={"category": {"type": "keyword"}},
            ),
        ],
    )
