"""Tests for project permission scoping of search queries."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from tracker_search.host.permissions import ProjectPermissions
from tracker_search.models import Project, ProjectMember, User


@pytest_asyncio.fixture
async def users(session_maker):
    """Admin, member of the private project, and an outsider."""
    async with session_maker() as db:
        admin = User(id=1, login="admin", is_admin=True)
        member = User(id=2, login="member")
        outsider = User(id=3, login="outsider")
        db.add_all([
            admin,
            member,
            outsider,
            Project(id=1, identifier="public", name="Public", is_public=True),
            Project(id=2, identifier="private", name="Private", is_public=False),
            Project(
                id=3, identifier="old", name="Old", is_public=True,
                archived_at=datetime(2024, 1, 1),
            ),
        ])
        await db.flush()
        db.add(ProjectMember(project_id=2, user_id=2, role="developer"))
        await db.commit()
        return {"admin": admin, "member": member, "outsider": outsider}


@pytest.fixture
def permissions(session_maker) -> ProjectPermissions:
    return ProjectPermissions(session_maker)


# =============================================================================
# Allowed projects
# =============================================================================


async def test_admin_sees_every_active_project(permissions, users):
    assert await permissions.allowed_project_ids(users["admin"]) == [1, 2]


async def test_member_sees_public_and_member_projects(permissions, users):
    assert await permissions.allowed_project_ids(users["member"]) == [1, 2]


async def test_outsider_sees_public_projects(permissions, users):
    assert await permissions.allowed_project_ids(users["outsider"]) == [1]


async def test_anonymous_sees_public_projects(permissions, users):
    assert await permissions.allowed_project_ids(None) == [1]


# =============================================================================
# Query expansion
# =============================================================================


async def test_allowed_query_filters_by_type_and_parent(permissions, users):
    base = {"match": {"title": "crash"}}

    query = await permissions.allowed_query(
        users["outsider"], {"permission": "view_project", "type": "issue", "query": base}
    )

    assert query == {
        "bool": {
            "must": [base],
            "filter": [
                {"term": {"type": "issue"}},
                {
                    "has_parent": {
                        "parent_type": "parent_project",
                        "query": {"ids": {"values": ["parent_project-1"]}},
                    }
                },
            ],
        }
    }


async def test_allowed_query_without_base_query_matches_all(permissions, users):
    query = await permissions.allowed_query(
        None, {"permission": "view_project", "type": "wiki_page"}
    )

    assert query["bool"]["must"] == [{"match_all": {}}]


async def test_unsupported_permission_is_rejected(permissions):
    with pytest.raises(ValueError):
        await permissions.allowed_query(None, {"permission": "edit_project", "type": "issue"})


# =============================================================================
# Redis cache
# =============================================================================


def mock_cache(cached=None) -> MagicMock:
    cache = MagicMock(available=True)
    cache.load = AsyncMock(return_value=cached)
    cache.store = AsyncMock()
    return cache


async def test_cached_project_ids_are_used(session_maker, users):
    cache = mock_cache(cached=[2])
    permissions = ProjectPermissions(session_maker, cache=cache)

    assert await permissions.allowed_project_ids(users["outsider"]) == [2]
    cache.load.assert_awaited_once_with(3)
    cache.store.assert_not_awaited()


async def test_cache_miss_stores_project_ids(session_maker, users):
    cache = mock_cache()
    permissions = ProjectPermissions(session_maker, cache=cache)

    assert await permissions.allowed_project_ids(None) == [1]
    cache.store.assert_awaited_once_with("anonymous", [1])


async def test_redis_failure_falls_back_to_database(session_maker, users):
    cache = mock_cache()
    cache.load.side_effect = ConnectionError("redis down")
    permissions = ProjectPermissions(session_maker, cache=cache)

    assert await permissions.allowed_project_ids(users["member"]) == [1, 2]
    cache.store.assert_not_awaited()


async def test_cache_write_failure_is_ignored(session_maker, users):
    cache = mock_cache()
    cache.store.side_effect = ConnectionError("redis down")
    permissions = ProjectPermissions(session_maker, cache=cache)

    assert await permissions.allowed_project_ids(users["outsider"]) == [1]


async def test_unavailable_cache_is_skipped(session_maker, users):
    cache = mock_cache()
    cache.available = False
    permissions = ProjectPermissions(session_maker, cache=cache)

    assert await permissions.allowed_project_ids(users["outsider"]) == [1]
    cache.load.assert_not_awaited()
