"""
ARQ Worker Configuration

Background job processing with Redis-backed task queue.
Runs search index sync jobs, full/partial reindexing and the scheduled
index consistency check.

Run with:
    arq tracker_search.worker.WorkerSettings
"""

import logging
from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlparse

from arq import Retry, cron
from arq.connections import RedisSettings
from elasticsearch import ConnectionError as ElasticsearchConnectionError

from .config import settings
from .database import async_session_maker
from .search import SearchEngine, SyncTask, UnknownSearchType
from .services.redis_service import redis_service
from .services.search_service import (
    ArqJobQueue,
    build_search_services,
    check_index_consistency,
)

logger = logging.getLogger(__name__)

# Sync job retries (arq counts job_try from 1)
SYNC_MAX_TRIES = 5
SYNC_RETRY_DELAY = 5  # seconds, multiplied by the try number


def parse_redis_url(url: str) -> RedisSettings:
    """Parse Redis URL into ARQ RedisSettings.

    Format: redis://host:port/db or redis://:password@host:port/db
    """
    parsed = urlparse(url)
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        password=parsed.password,
        database=int(parsed.path.lstrip("/") or 0),
    )


# =============================================================================
# Search Jobs
# =============================================================================

async def sync_search_record(
    ctx: dict[str, Any],
    search_type: str,
    record_id: Any,
    parent_id: Optional[Any] = None,
    previous_parent_id: Optional[Any] = None,
) -> dict[str, Any]:
    """
    Bring one record's index document in line with the database.

    Connection failures are retried with a growing delay; any other engine
    error fails the job.
    """
    services = ctx["search"]
    task = SyncTask(
        search_type=search_type,
        record_id=record_id,
        parent_id=parent_id,
        previous_parent_id=previous_parent_id,
    )

    try:
        outcome = await services.dispatcher.execute(task)
    except UnknownSearchType as e:
        logger.error("Dropping search sync job: %s", e)
        return {"search_type": search_type, "record_id": record_id, "outcome": "skipped"}
    except ElasticsearchConnectionError as e:
        job_try = ctx.get("job_try", 1)
        if job_try >= SYNC_MAX_TRIES:
            logger.error(
                "Search sync for %s %s failed after %d tries: %s",
                search_type, record_id, job_try, e,
            )
            raise
        logger.warning("Elasticsearch unavailable, retrying sync of %s %s", search_type, record_id)
        raise Retry(defer=job_try * SYNC_RETRY_DELAY) from e

    return {"search_type": search_type, "record_id": record_id, "outcome": outcome.value}


async def reindex_search_index(
    ctx: dict[str, Any],
    search_type: Optional[str] = None,
) -> dict[str, Any]:
    """
    Rebuild the whole index, or re-import one type into the existing index.

    Returns:
        dict with the number of documents that failed to import
    """
    services = ctx["search"]
    started = datetime.utcnow()

    if search_type is None:
        logger.info("Running full search reindex...")
        errors = await services.orchestrator.reindex_all()
    else:
        logger.info(f"Running search reindex of {search_type}...")
        errors = await services.orchestrator.reindex(search_type)

    return {
        "search_type": search_type,
        "errors": errors,
        "started_at": started.isoformat(),
        "finished_at": datetime.utcnow().isoformat(),
    }


async def check_search_index_consistency(ctx: dict[str, Any]) -> dict[str, Any]:
    """Scheduled comparison of database scope sizes with indexed counts."""
    services = ctx["search"]
    try:
        return await check_index_consistency(services)
    except Exception as e:
        logger.error(f"Consistency check failed: {e}", exc_info=True)
        return {"status": "error"}


# =============================================================================
# Startup/Shutdown Hooks
# =============================================================================

async def startup(ctx: dict[str, Any]) -> None:
    """Initialize resources when worker starts."""
    logger.info("ARQ worker starting up...")

    # Redis backs the permission cache only; jobs run without it
    try:
        await redis_service.connect()
        logger.info("Redis connected for ARQ worker")
    except Exception as e:
        logger.warning(f"Redis connection failed in ARQ worker: {e}")

    engine = SearchEngine.from_settings(settings)
    ctx["search"] = build_search_services(
        engine,
        async_session_maker,
        ArqJobQueue(ctx["redis"]),
        settings,
        redis_service=redis_service,
    )


async def shutdown(ctx: dict[str, Any]) -> None:
    """Cleanup resources when worker stops."""
    logger.info("ARQ worker shutting down...")

    services = ctx.pop("search", None)
    if services is not None:
        await services.close()

    await redis_service.disconnect()


# =============================================================================
# Schedule Parsing
# =============================================================================

def parse_schedule_set(value: str) -> set[int]:
    """
    Parse a comma-separated string of integers into a set.

    Examples:
        "0,30" -> {0, 30}
        "0,15,30,45" -> {0, 15, 30, 45}
    """
    return {int(x.strip()) for x in value.split(",") if x.strip()}


def get_consistency_check_minutes() -> set[int]:
    """Get consistency check minutes from settings (defaults to the top of the hour)."""
    return parse_schedule_set(settings.arq_consistency_check_minutes) or {0}


# =============================================================================
# Worker Settings
# =============================================================================

class WorkerSettings:
    """ARQ worker configuration."""

    # Redis connection
    redis_settings = parse_redis_url(settings.redis_url)

    # Job functions that can be called via arq.enqueue_job()
    functions = [
        sync_search_record,
        reindex_search_index,
        check_search_index_consistency,
    ]

    # Scheduled cron jobs (configured via .env)
    # ARQ_CONSISTENCY_CHECK_MINUTES: comma-separated minutes (default "0,30")
    cron_jobs = [
        cron(check_search_index_consistency, minute=get_consistency_check_minutes(), second=0),
    ]

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    # Worker behavior
    max_jobs = 10  # Max concurrent jobs
    max_tries = SYNC_MAX_TRIES
    job_timeout = 3600  # Full reindex of a large tracker can take a while
    keep_result = 3600  # Keep results for 1 hour

    # Health check
    health_check_interval = 30
