"""Shared pytest fixtures for search tests."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fakes import FakeSearchEngine, ListScope, make_issue, make_project, make_wiki_page
from tracker_search.database import Base
from tracker_search.search import SearchableType, SearchTypeRegistry


@pytest.fixture
def fake_engine() -> FakeSearchEngine:
    return FakeSearchEngine()


@pytest.fixture
def projects() -> list:
    return [make_project(1, "Alpha"), make_project(2, "Beta")]


@pytest.fixture
def issues() -> list:
    return [make_issue(10, 1, "Crash on login"), make_issue(11, 2, "Slow export")]


@pytest.fixture
def wiki_pages() -> list:
    return [make_wiki_page(20, 1, "Install")]


@pytest.fixture
def registry(projects, issues, wiki_pages) -> SearchTypeRegistry:
    """Registry with issues and wiki pages over in-memory records."""
    parents = SearchableType(
        name="projects",
        singular="parent_project",
        scope=ListScope(projects),
        serializer=lambda project: {"title": project.name},
    )
    return SearchTypeRegistry(
        parents,
        [
            SearchableType(
                name="issues",
                singular="issue",
                scope=ListScope(issues),
                serializer=lambda issue: {"title": issue.subject, "_parent": issue.project_id},
            ),
            SearchableType(
                name="wiki_pages",
                singular="wiki_page",
                scope=ListScope(wiki_pages),
                serializer=lambda page: {"title": page.title, "_parent": page.project_id},
                mapping={"slug": {"type": "keyword"}},
            ),
        ],
    )


# =============================================================================
# SQLite database for host binding tests
# =============================================================================


@pytest_asyncio.fixture
async def db_engine():
    """Async in-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
