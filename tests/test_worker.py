"""Tests for ARQ worker jobs."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from arq import Retry
from elasticsearch import ConnectionError as ElasticsearchConnectionError

from tracker_search.search import SyncOutcome, SyncTask, UnknownSearchType
from tracker_search.services.search_service import SearchServices
from tracker_search.worker import (
    SYNC_MAX_TRIES,
    WorkerSettings,
    check_search_index_consistency,
    parse_redis_url,
    parse_schedule_set,
    reindex_search_index,
    shutdown,
    startup,
    sync_search_record,
)


@pytest.fixture
def services() -> SimpleNamespace:
    return SimpleNamespace(dispatcher=AsyncMock(), orchestrator=AsyncMock())


# =============================================================================
# Sync job
# =============================================================================


async def test_sync_job_executes_task(services):
    services.dispatcher.execute.return_value = SyncOutcome.INDEXED

    result = await sync_search_record({"search": services, "job_try": 1}, "issues", 10, 1)

    services.dispatcher.execute.assert_awaited_once_with(SyncTask("issues", 10, 1))
    assert result == {"search_type": "issues", "record_id": 10, "outcome": "indexed"}


async def test_sync_job_passes_the_former_project(services):
    services.dispatcher.execute.return_value = SyncOutcome.INDEXED

    await sync_search_record({"search": services, "job_try": 1}, "issues", 10, 2, 1)

    services.dispatcher.execute.assert_awaited_once_with(
        SyncTask("issues", 10, 2, previous_parent_id=1)
    )


async def test_sync_job_drops_unknown_types(services):
    services.dispatcher.execute.side_effect = UnknownSearchType("news", ["issues"])

    result = await sync_search_record({"search": services}, "news", 1)

    assert result["outcome"] == "skipped"


async def test_sync_job_retries_when_elasticsearch_is_unreachable(services):
    services.dispatcher.execute.side_effect = ElasticsearchConnectionError("refused")

    with pytest.raises(Retry) as exc_info:
        await sync_search_record({"search": services, "job_try": 2}, "issues", 10, 1)

    assert exc_info.value.defer_score == 10_000


async def test_sync_job_gives_up_after_max_tries(services):
    services.dispatcher.execute.side_effect = ElasticsearchConnectionError("refused")

    with pytest.raises(ElasticsearchConnectionError):
        await sync_search_record(
            {"search": services, "job_try": SYNC_MAX_TRIES}, "issues", 10, 1
        )


async def test_sync_job_propagates_other_errors(services):
    services.dispatcher.execute.side_effect = RuntimeError("mapping conflict")

    with pytest.raises(RuntimeError):
        await sync_search_record({"search": services, "job_try": 1}, "issues", 10, 1)


# =============================================================================
# Reindex and consistency jobs
# =============================================================================


async def test_full_reindex_job(services):
    services.orchestrator.reindex_all.return_value = 2

    result = await reindex_search_index({"search": services})

    services.orchestrator.reindex_all.assert_awaited_once_with()
    services.orchestrator.reindex.assert_not_awaited()
    assert result["errors"] == 2
    assert result["search_type"] is None


async def test_single_type_reindex_job(services):
    services.orchestrator.reindex.return_value = 0

    result = await reindex_search_index({"search": services}, "wiki_pages")

    services.orchestrator.reindex.assert_awaited_once_with("wiki_pages")
    assert result["errors"] == 0


async def test_consistency_job_reports_result(services):
    with patch(
        "tracker_search.worker.check_index_consistency",
        AsyncMock(return_value={"status": "consistent", "drift": {}}),
    ):
        result = await check_search_index_consistency({"search": services})

    assert result["status"] == "consistent"


async def test_consistency_job_never_raises(services):
    with patch(
        "tracker_search.worker.check_index_consistency",
        AsyncMock(side_effect=RuntimeError("boom")),
    ):
        result = await check_search_index_consistency({"search": services})

    assert result == {"status": "error"}


# =============================================================================
# Lifecycle
# =============================================================================


async def test_startup_builds_search_services_and_shutdown_closes_them():
    engine = MagicMock(index_name="tracker_search")
    engine.close = AsyncMock()
    ctx = {"redis": MagicMock()}

    with patch("tracker_search.worker.redis_service") as redis, \
            patch("tracker_search.worker.SearchEngine") as engine_class:
        redis.connect = AsyncMock(side_effect=ConnectionError("redis down"))
        redis.disconnect = AsyncMock()
        engine_class.from_settings.return_value = engine

        await startup(ctx)
        services = ctx["search"]
        await shutdown(ctx)

    assert isinstance(services, SearchServices)
    assert services.engine is engine
    assert services.queue.pool is ctx["redis"]
    assert services.registry.names == ["issues", "wiki_pages", "documents"]
    engine.close.assert_awaited_once()
    assert "search" not in ctx


# =============================================================================
# Configuration
# =============================================================================


def test_parse_redis_url():
    settings = parse_redis_url("redis://:secret@cache:6380/2")

    assert settings.host == "cache"
    assert settings.port == 6380
    assert settings.password == "secret"
    assert settings.database == 2


def test_parse_schedule_set():
    assert parse_schedule_set("0,30") == {0, 30}
    assert parse_schedule_set(" 5, 10 ,") == {5, 10}
    assert parse_schedule_set("") == set()


def test_worker_registers_search_jobs():
    names = {f.__name__ for f in WorkerSettings.functions}

    assert names == {
        "sync_search_record",
        "reindex_search_index",
        "check_search_index_consistency",
    }
    assert len(WorkerSettings.cron_jobs) == 1
