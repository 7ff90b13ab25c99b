"""Services package for business logic and integrations."""

from .redis_service import (
    ProjectIdsCache,
    RedisService,
    SearchRateLimiter,
    get_rate_limiter,
    redis_service,
)
from .search_service import (
    ArqJobQueue,
    SearchServices,
    build_search_services,
    check_index_consistency,
    check_search_health,
    get_search_services,
    sanitize_search_query,
)

__all__ = [
    "ProjectIdsCache",
    "RedisService",
    "SearchRateLimiter",
    "get_rate_limiter",
    "redis_service",
    "ArqJobQueue",
    "SearchServices",
    "build_search_services",
    "check_index_consistency",
    "check_search_health",
    "get_search_services",
    "sanitize_search_query",
]
