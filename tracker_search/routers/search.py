"""Search API endpoints.

Provides permission-scoped full-text search over the tracker index,
Redis-backed rate limiting, an index health check, an admin trigger
for reindexing and the change feed the tracker reports commits to.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from ..models.user import User
from ..schemas import RecordChange, RecordChangeResponse
from ..search import UnknownSearchType
from ..services.auth_service import get_current_admin, get_current_user, get_optional_user
from ..services.redis_service import SearchRateLimiter, get_rate_limiter
from ..services.search_service import (
    CONTROL_CHAR_RE,
    SearchServices,
    check_search_health,
    get_search_services,
    sanitize_search_query,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])

DEFAULT_SEARCH_TYPE = "issues"


@router.get("")
async def search_endpoint(
    request: Request,
    q: str = Query(..., min_length=2, max_length=200),
    search_type: str = Query(default=DEFAULT_SEARCH_TYPE, alias="type"),
    limit: int = Query(default=20, ge=1, le=50),
    offset: int = Query(default=0, ge=0),
    current_user: Optional[User] = Depends(get_optional_user),
    rate_limiter: SearchRateLimiter = Depends(get_rate_limiter),
    services: SearchServices = Depends(get_search_services),
):
    """Search one record type, restricted to projects the caller may view."""
    # 1. Sanitize query
    q_clean = sanitize_search_query(q)
    if CONTROL_CHAR_RE.search(q_clean) or len(q_clean) < 2:
        raise HTTPException(400, "Query contains invalid characters or is too short")

    # 2. Rate limiting (Redis-backed, skip if Redis unavailable)
    actor_key = current_user.id if current_user is not None else (
        request.client.host if request.client else "anonymous"
    )
    try:
        allowed, current_count = await rate_limiter.hit(actor_key)
        if not allowed:
            logger.warning(
                "Search rate limit hit: actor=%s, count=%d", actor_key, current_count,
            )
            raise HTTPException(
                429,
                "Too many search requests. Please wait.",
                headers={"Retry-After": str(rate_limiter.window)},
            )
    except HTTPException:
        raise  # Re-raise 429
    except Exception:
        logger.warning("Redis unavailable for rate limiting, skipping rate limit check")

    # 3. Permission-scoped query against Elasticsearch
    try:
        results = await services.query_builder.search(
            current_user, q_clean, search_type, limit=limit, offset=offset
        )
    except UnknownSearchType:
        raise  # Handled by the application as 400
    except Exception as exc:
        logger.error("Search failed: %s", exc)
        raise HTTPException(503, "Search temporarily unavailable")

    logger.info(
        "Search: query=%r type=%s actor=%s hits=%d took=%s",
        q_clean, search_type, actor_key, len(results["hits"]), results.get("took"),
    )
    return results


@router.get("/health")
async def search_health_endpoint(
    current_user: User = Depends(get_current_user),
    services: SearchServices = Depends(get_search_services),
):
    """Health check for the Elasticsearch index. Requires authentication."""
    result = await check_search_health(services)
    if result["status"] != "healthy":
        return JSONResponse(status_code=503, content=result)
    return result


@router.post("/reindex", status_code=202)
async def reindex_endpoint(
    search_type: Optional[str] = Query(default=None, alias="type"),
    current_user: User = Depends(get_current_admin),
    services: SearchServices = Depends(get_search_services),
):
    """Admin endpoint to rebuild the index, or re-import one type.

    The rebuild runs in the worker; this only enqueues it.
    """
    if search_type is not None:
        services.registry.get(search_type)

    if services.queue is None:
        raise HTTPException(503, "Job queue unavailable")

    job_id = await services.queue.enqueue_reindex(search_type)
    logger.info("Reindex of %s enqueued by user %s", search_type or "all types", current_user.id)
    return {"status": "reindex_enqueued", "type": search_type, "job_id": job_id}


@router.post(
    "/records/{search_type}/{record_id}",
    status_code=202,
    response_model=RecordChangeResponse,
)
async def record_changed_endpoint(
    search_type: str,
    record_id: int,
    body: RecordChange,
    current_user: User = Depends(get_current_admin),
    services: SearchServices = Depends(get_search_services),
):
    """Report a committed tracker change so the index follows it.

    The tracker calls this after its own commit, with an administrator
    token. Only a sync job is enqueued; the worker re-reads the record.
    """
    if search_type != services.registry.parents.name:
        services.registry.get(search_type)

    if services.queue is None:
        raise HTTPException(503, "Job queue unavailable")

    await services.dispatcher.on_record_committed(
        search_type,
        record_id,
        body.change,
        parent_id=body.parent_id,
        previous_parent_id=body.previous_parent_id,
    )
    return RecordChangeResponse(type=search_type, id=record_id)
