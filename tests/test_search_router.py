"""Tests for the search API endpoints."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from tracker_search.main import app
from tracker_search.search import ChangeKind, UnknownSearchType
from tracker_search.services.auth_service import (
    get_current_admin,
    get_current_user,
    get_optional_user,
)
from tracker_search.services.redis_service import get_rate_limiter
from tracker_search.services.search_service import get_search_services

RESULTS = {"hits": [], "total": 0, "took": 1, "query": "crash"}


@pytest.fixture
def rate_limiter() -> MagicMock:
    rate_limiter = MagicMock(window=60)
    rate_limiter.hit = AsyncMock(return_value=(True, 1))
    return rate_limiter


@pytest.fixture
def services(registry) -> SimpleNamespace:
    query_builder = MagicMock()
    query_builder.search = AsyncMock(return_value=RESULTS)
    queue = MagicMock()
    queue.enqueue_reindex = AsyncMock(return_value="job-1")
    dispatcher = MagicMock()
    dispatcher.on_record_committed = AsyncMock()
    return SimpleNamespace(
        registry=registry, query_builder=query_builder, queue=queue, dispatcher=dispatcher
    )


@pytest.fixture
def user() -> SimpleNamespace:
    return SimpleNamespace(id=7, login="alice", is_admin=False)


@pytest.fixture
def client(services, rate_limiter, user):
    app.dependency_overrides[get_search_services] = lambda: services
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_optional_user] = lambda: user
    app.dependency_overrides[get_current_user] = lambda: user

    yield TestClient(app)

    app.dependency_overrides.clear()


# =============================================================================
# GET /api/search
# =============================================================================


def test_search_returns_results(client, services, user):
    response = client.get("/api/search", params={"q": "crash"})

    assert response.status_code == 200
    assert response.json() == RESULTS
    services.query_builder.search.assert_awaited_once_with(
        user, "crash", "issues", limit=20, offset=0
    )


def test_search_passes_type_and_paging(client, services, user):
    response = client.get(
        "/api/search", params={"q": "install", "type": "wiki_pages", "limit": 5, "offset": 10}
    )

    assert response.status_code == 200
    services.query_builder.search.assert_awaited_once_with(
        user, "install", "wiki_pages", limit=5, offset=10
    )


def test_anonymous_search_is_scoped_to_no_user(client, services, rate_limiter):
    app.dependency_overrides[get_optional_user] = lambda: None

    response = client.get("/api/search", params={"q": "crash"})

    assert response.status_code == 200
    assert services.query_builder.search.await_args.args[0] is None
    assert rate_limiter.hit.await_args.args[0] == "testclient"


def test_unknown_type_is_a_bad_request(client, services):
    services.query_builder.search.side_effect = UnknownSearchType("news", ["issues"])

    response = client.get("/api/search", params={"q": "crash", "type": "news"})

    assert response.status_code == 400
    assert "Wrong search type [news]" in response.json()["detail"]


def test_engine_failure_is_service_unavailable(client, services):
    services.query_builder.search.side_effect = ConnectionError("refused")

    response = client.get("/api/search", params={"q": "crash"})

    assert response.status_code == 503


def test_query_of_control_characters_is_rejected(client, services):
    response = client.get("/api/search", params={"q": "\x01\x02a"})

    assert response.status_code == 400
    services.query_builder.search.assert_not_awaited()


def test_rate_limited_search(client, services, rate_limiter):
    rate_limiter.hit.return_value = (False, 31)

    response = client.get("/api/search", params={"q": "crash"})

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    services.query_builder.search.assert_not_awaited()


def test_search_works_without_redis(client, rate_limiter):
    rate_limiter.hit.side_effect = ConnectionError("redis down")

    response = client.get("/api/search", params={"q": "crash"})

    assert response.status_code == 200


# =============================================================================
# GET /api/search/health
# =============================================================================


def test_health_ok(client):
    healthy = {"status": "healthy", "cluster_status": "green", "documents_indexed": 3}
    with patch("tracker_search.routers.search.check_search_health", AsyncMock(return_value=healthy)):
        response = client.get("/api/search/health")

    assert response.status_code == 200
    assert response.json() == healthy


def test_health_degraded(client):
    with patch(
        "tracker_search.routers.search.check_search_health",
        AsyncMock(return_value={"status": "degraded"}),
    ):
        response = client.get("/api/search/health")

    assert response.status_code == 503


# =============================================================================
# POST /api/search/reindex
# =============================================================================


def test_reindex_requires_admin(client, services):
    response = client.post("/api/search/reindex")

    assert response.status_code == 403
    services.queue.enqueue_reindex.assert_not_awaited()


def test_admin_enqueues_full_reindex(client, services):
    app.dependency_overrides[get_current_admin] = lambda: SimpleNamespace(id=1, is_admin=True)

    response = client.post("/api/search/reindex")

    assert response.status_code == 202
    assert response.json() == {"status": "reindex_enqueued", "type": None, "job_id": "job-1"}
    services.queue.enqueue_reindex.assert_awaited_once_with(None)


def test_admin_enqueues_single_type_reindex(client, services):
    app.dependency_overrides[get_current_admin] = lambda: SimpleNamespace(id=1, is_admin=True)

    response = client.post("/api/search/reindex", params={"type": "issues"})

    assert response.status_code == 202
    services.queue.enqueue_reindex.assert_awaited_once_with("issues")


def test_reindex_of_unknown_type_is_rejected(client, services):
    app.dependency_overrides[get_current_admin] = lambda: SimpleNamespace(id=1, is_admin=True)

    response = client.post("/api/search/reindex", params={"type": "news"})

    assert response.status_code == 400
    services.queue.enqueue_reindex.assert_not_awaited()


# =============================================================================
# POST /api/search/records/{type}/{id}
# =============================================================================


@pytest.fixture
def admin_client(client):
    app.dependency_overrides[get_current_admin] = lambda: SimpleNamespace(id=1, is_admin=True)
    return client


def test_record_change_enqueues_sync(admin_client, services):
    response = admin_client.post(
        "/api/search/records/issues/10",
        json={"change": "update", "parent_id": 2, "previous_parent_id": 1},
    )

    assert response.status_code == 202
    assert response.json() == {"status": "sync_enqueued", "type": "issues", "id": 10}
    services.dispatcher.on_record_committed.assert_awaited_once_with(
        "issues", 10, ChangeKind.UPDATE, parent_id=2, previous_parent_id=1
    )


def test_project_change_is_accepted(admin_client, services):
    response = admin_client.post("/api/search/records/projects/1", json={"change": "delete"})

    assert response.status_code == 202
    services.dispatcher.on_record_committed.assert_awaited_once_with(
        "projects", 1, ChangeKind.DELETE, parent_id=None, previous_parent_id=None
    )


def test_record_change_requires_admin(client, services):
    response = client.post("/api/search/records/issues/10", json={"change": "update"})

    assert response.status_code == 403
    services.dispatcher.on_record_committed.assert_not_awaited()


def test_record_change_of_unknown_type_is_rejected(admin_client, services):
    response = admin_client.post("/api/search/records/news/1", json={"change": "create"})

    assert response.status_code == 400
    services.dispatcher.on_record_committed.assert_not_awaited()


def test_record_change_with_invalid_kind_is_rejected(admin_client, services):
    response = admin_client.post("/api/search/records/issues/10", json={"change": "save"})

    assert response.status_code == 422


def test_record_change_without_queue_is_unavailable(admin_client, services):
    services.queue = None

    response = admin_client.post("/api/search/records/issues/10", json={"change": "update"})

    assert response.status_code == 503
