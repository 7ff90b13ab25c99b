"""Search service wiring for the API process and the arq worker.

Provides:
- Construction of the search pipeline (engine gateway, registry, schema,
  reindex orchestrator, sync dispatcher, query builder)
- The arq-backed job queue used by the sync dispatcher
- Query sanitization
- Health check and consistency checker
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..host import ProjectPermissions, build_search_registry
from ..search import (
    IndexSchemaManager,
    ReindexOrchestrator,
    SearchEngine,
    SearchQueryBuilder,
    SearchTypeRegistry,
    SyncDispatcher,
    SyncTask,
)
from .redis_service import ProjectIdsCache

logger = logging.getLogger(__name__)

# Control character pattern
CONTROL_CHAR_RE = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')

# arq job names registered in the worker
SYNC_JOB_NAME = "sync_search_record"
REINDEX_JOB_NAME = "reindex_search_index"


# ---- Job Queue ----

class ArqJobQueue:
    """Sync dispatcher queue backed by an arq Redis pool."""

    def __init__(self, pool):
        self.pool = pool

    async def enqueue(self, task: SyncTask) -> None:
        await self.pool.enqueue_job(
            SYNC_JOB_NAME,
            task.search_type,
            task.record_id,
            task.parent_id,
            task.previous_parent_id,
        )

    async def enqueue_reindex(self, search_type: str | None = None) -> str:
        """Enqueue a reindex job; returns the arq job id."""
        job = await self.pool.enqueue_job(REINDEX_JOB_NAME, search_type)
        return job.job_id if job is not None else ""


# ---- Service Container ----

@dataclass
class SearchServices:
    """Search pipeline components sharing one engine gateway and registry."""

    engine: SearchEngine
    registry: SearchTypeRegistry
    schema: IndexSchemaManager
    orchestrator: ReindexOrchestrator
    dispatcher: SyncDispatcher
    query_builder: SearchQueryBuilder
    queue: ArqJobQueue | None = None

    async def close(self) -> None:
        await self.engine.close()


def build_search_services(
    engine: SearchEngine,
    session_maker: async_sessionmaker[AsyncSession],
    queue,
    settings,
    redis_service=None,
) -> SearchServices:
    """Assemble the search pipeline for the tracker database."""
    registry = build_search_registry(session_maker)
    schema = IndexSchemaManager(
        engine,
        registry,
        number_of_shards=settings.search_number_of_shards,
        number_of_replicas=settings.search_number_of_replicas,
    )
    cache = None
    if redis_service is not None:
        cache = ProjectIdsCache(redis_service, ttl=settings.search_scope_cache_ttl)
    permissions = ProjectPermissions(session_maker, cache=cache)
    return SearchServices(
        engine=engine,
        registry=registry,
        schema=schema,
        orchestrator=ReindexOrchestrator(
            engine, schema, registry, batch_size=settings.search_batch_size
        ),
        dispatcher=SyncDispatcher(
            engine, registry, queue, batch_size=settings.search_batch_size
        ),
        query_builder=SearchQueryBuilder(registry, permissions, engine=engine),
        queue=queue,
    )


# ---- Application Instance ----

_services: SearchServices | None = None


def init_search_services(services: SearchServices) -> None:
    """Register the services used by request handlers. Called during lifespan startup."""
    global _services
    _services = services


async def close_search_services() -> None:
    global _services
    if _services is not None:
        await _services.close()
        _services = None


def get_search_services() -> SearchServices:
    """FastAPI dependency returning the initialized search services."""
    if _services is None:
        raise RuntimeError("Search services not initialized")
    return _services


# ---- Query Sanitization ----

def sanitize_search_query(q: str) -> str:
    """Sanitize search query: strip control characters, collapse whitespace."""
    q = CONTROL_CHAR_RE.sub('', q)
    q = ' '.join(q.split())
    return q.strip()


# ---- Health Check ----

async def check_search_health(services: SearchServices) -> dict:
    """Check Elasticsearch availability and return stats.

    Returns only status and document count, no error details exposed to clients.
    """
    try:
        cluster = await services.engine.health()
        if not await services.schema.index_exists():
            return {"status": "degraded", "cluster_status": cluster.get("status")}
        return {
            "status": "healthy",
            "cluster_status": cluster.get("status"),
            "documents_indexed": await services.engine.count(),
        }
    except Exception as e:
        logger.warning("Elasticsearch health check failed: %s", e)
        return {
            "status": "degraded",
        }


# ---- Consistency Checker ----

async def check_index_consistency(services: SearchServices) -> dict[str, Any]:
    """Compare searchable scope sizes with the indexed document counts.

    Drift means a sync job was lost or a rebuild stopped part way; both
    are fixed by reindexing the reported types.

    Returns:
        dict with the overall status and, per drifted type name,
        the expected and indexed counts
    """
    if not await services.schema.index_exists():
        logger.warning("Consistency check: index %s does not exist", services.engine.index_name)
        return {"status": "missing_index", "drift": {}}

    drift: dict[str, dict[str, int]] = {}
    for searchable in [services.registry.parents, *services.registry]:
        expected = await searchable.scope.count()
        indexed = await services.engine.count({"term": {"type": searchable.singular}})
        if expected != indexed:
            logger.warning(
                "Search index drift for %s: database=%d, index=%d",
                searchable.name, expected, indexed,
            )
            drift[searchable.name] = {"expected": expected, "indexed": indexed}

    if not drift:
        logger.info("Search index consistent")
    return {"status": "drift" if drift else "consistent", "drift": drift}
