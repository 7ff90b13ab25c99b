"""FastAPI application entry point."""

import logging
import traceback
from contextlib import asynccontextmanager

from arq import create_pool
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError

from .config import settings
from .database import async_session_maker
from .routers import search_router
from .search import SchemaConflict, SearchEngine, UnknownSearchType
from .services.redis_service import redis_service
from .services.search_service import (
    ArqJobQueue,
    build_search_services,
    close_search_services,
    init_search_services,
)
from .worker import parse_redis_url

# Configure logging to show errors
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""
    # Startup
    logger.info("Connecting to Redis...")
    try:
        await redis_service.connect()
        logger.info("Redis connected")
    except Exception as e:
        logger.warning(f"Redis connection failed, running without cache and rate limits: {e}")

    logger.info("Opening arq job pool...")
    job_pool = None
    try:
        job_pool = await create_pool(parse_redis_url(settings.redis_url))
    except Exception as e:
        logger.warning(f"arq pool unavailable, search sync disabled: {e}")

    queue = ArqJobQueue(job_pool) if job_pool is not None else None
    services = build_search_services(
        SearchEngine.from_settings(settings),
        async_session_maker,
        queue,
        settings,
        redis_service=redis_service,
    )
    init_search_services(services)

    yield

    # Shutdown
    if job_pool is not None:
        await job_pool.aclose()

    await close_search_services()

    logger.info("Disconnecting from Redis...")
    await redis_service.disconnect()


# Create FastAPI application
app = FastAPI(
    title="Tracker Search API",
    description="Permission-scoped full-text search over tracker projects",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


@app.exception_handler(UnknownSearchType)
async def unknown_search_type_handler(request: Request, exc: UnknownSearchType):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@app.exception_handler(SchemaConflict)
async def schema_conflict_handler(request: Request, exc: SchemaConflict):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc)},
    )


# Database pool exhaustion handler - return 503 so clients can retry
@app.exception_handler(SQLAlchemyTimeoutError)
async def db_pool_exhausted_handler(request: Request, exc: SQLAlchemyTimeoutError):
    """Handle database connection pool exhaustion with 503 Service Unavailable."""
    logger.warning(
        f"Database pool exhausted on {request.method} {request.url}: {exc}"
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Service temporarily unavailable. Please retry.",
            "retry_after": 5,
        },
        headers={"Retry-After": "5"},
    )


# Global exception handler to log errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log all unhandled exceptions with full traceback."""
    logger.error(f"Unhandled exception on {request.method} {request.url}:")
    logger.error(f"Exception type: {type(exc).__name__}")
    logger.error(f"Traceback:\n{traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include API routers
app.include_router(search_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    redis_health = await redis_service.health_check()
    return {
        "status": "healthy",
        "redis": redis_health,
    }
