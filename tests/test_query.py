"""Tests for permission-scoped query building."""

import pytest

from tracker_search.search import SearchQueryBuilder, UnknownSearchType, VIEW_PERMISSION


class RecordingPermissions:
    """Permission collaborator echoing the options it receives."""

    def __init__(self):
        self.calls = []

    async def allowed_query(self, actor, options):
        self.calls.append((actor, dict(options)))
        return {"allowed": dict(options)}


@pytest.fixture
def permissions() -> RecordingPermissions:
    return RecordingPermissions()


@pytest.fixture
def builder(registry, permissions, fake_engine) -> SearchQueryBuilder:
    return SearchQueryBuilder(registry, permissions, engine=fake_engine)


async def test_build_query_adds_permission_and_type(builder, permissions):
    actor = object()

    query = await builder.build_query(actor, "issues")

    assert query == {"allowed": {"permission": VIEW_PERMISSION, "type": "issue"}}
    assert permissions.calls[0][0] is actor


async def test_caller_options_cannot_override_constraints(builder):
    query = await builder.build_query(
        None,
        "wiki_pages",
        {"permission": "edit_project", "type": "issue", "query": {"match_all": {}}},
    )

    assert query["allowed"] == {
        "permission": "view_project",
        "type": "wiki_page",
        "query": {"match_all": {}},
    }


async def test_unknown_type_is_rejected_before_permission_expansion(builder, permissions):
    with pytest.raises(UnknownSearchType):
        await builder.build_query(None, "news")

    assert permissions.calls == []


async def test_search_formats_hits(builder, fake_engine):
    fake_engine.search_response = {
        "took": 3,
        "hits": {
            "total": {"value": 1, "relation": "eq"},
            "hits": [
                {
                    "_id": "issue-10",
                    "_score": 1.5,
                    "_source": {
                        "type": "issue",
                        "title": "#10: Crash on login",
                        "url": "/issues/10",
                        "datetime": "2024-01-01T00:00:00+00:00",
                    },
                    "highlight": {"title": ["<mark>Crash</mark> on login"]},
                }
            ],
        },
    }

    result = await builder.search(None, "crash", "issues", limit=5, offset=10)

    assert result["total"] == 1
    assert result["took"] == 3
    assert result["query"] == "crash"
    assert result["hits"] == [
        {
            "id": "issue-10",
            "type": "issue",
            "title": "#10: Crash on login",
            "url": "/issues/10",
            "datetime": "2024-01-01T00:00:00+00:00",
            "score": 1.5,
            "highlight": {"title": ["<mark>Crash</mark> on login"]},
        }
    ]
    assert fake_engine.last_search["size"] == 5
    assert fake_engine.last_search["from_"] == 10


async def test_search_sends_text_query_inside_permission_query(builder, fake_engine):
    await builder.search(None, "crash", "issues")

    sent = fake_engine.last_search["query"]["allowed"]
    assert sent["type"] == "issue"
    assert sent["query"]["simple_query_string"]["query"] == "crash"


async def test_search_without_engine(registry, permissions):
    builder = SearchQueryBuilder(registry, permissions)

    with pytest.raises(RuntimeError):
        await builder.search(None, "crash", "issues")
