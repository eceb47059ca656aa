"""
PayFlow - Payment Processing Demo Service

FastAPI application entry point.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Optional
from uuid import uuid4

import redis.asyncio as redis
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from starlette.middleware.base import BaseHTTPMiddleware

from payflow import __version__
from payflow.cache import CacheStats, StatsCache
from payflow.config import settings
from payflow.db.orm import Base
from payflow.fraud.detector import FraudDetector
from payflow.fraud.models import utcnow
from payflow.monitoring import metrics
from payflow.monitoring.logging import setup_logging

# Configure logging
setup_logging()
logger = logging.getLogger(__name__)


# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_rps}/second"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Track in-flight requests and request duration."""

    async def dispatch(self, request: Request, call_next) -> Response:
        metrics.requests_in_flight.inc()
        start_time = time.perf_counter()
        try:
            return await call_next(request)
        finally:
            metrics.transaction_duration_seconds.labels(
                endpoint=request.url.path
            ).observe(time.perf_counter() - start_time)
            metrics.requests_in_flight.dec()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with a request ID."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.time()

        request_id = request.headers.get("X-Request-ID", uuid4().hex[:8])

        response = await call_next(request)

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)

        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "trace_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_seconds": round(process_time, 4),
            },
        )

        return response


# Database engine and session factory
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_pool_size // 2,
)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db() -> bool:
    """Create tables if they do not exist."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database initialization failed: {e}")
        return False
    logger.info("Database initialized")
    return True


async def init_redis() -> Optional[redis.Redis]:
    """Connect to Redis; the service runs without a cache if it is down."""
    client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await client.ping()
    except (redis.RedisError, OSError) as e:
        logger.warning(f"Redis not available, continuing without cache: {e}")
        await client.aclose()
        return None
    logger.info("Redis connected")
    return client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info(
        "Starting PayFlow API",
        extra={"version": __version__, "log_level": settings.log_level},
    )

    await init_db()
    app.state.db_session = async_session
    app.state.redis = await init_redis()
    app.state.cache_stats = CacheStats()
    app.state.stats_cache = StatsCache(
        app.state.redis, settings.cache_ttl, app.state.cache_stats
    )
    app.state.fraud_detector = FraudDetector.from_settings(settings)

    logger.info("PayFlow API started")

    yield

    logger.info("Shutting down PayFlow API...")
    if app.state.redis is not None:
        await app.state.redis.aclose()
    await engine.dispose()
    logger.info("PayFlow API shutdown complete")


app = FastAPI(
    title="PayFlow",
    description="Payment processing demo service with fraud detection",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)


# Rate limit exceeded handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "message": "Too many requests. Please try again later.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": str(exc.detail)},
    )


@app.get("/health")
@limiter.exempt
async def health_check() -> dict[str, Any]:
    """Liveness probe."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": utcnow().isoformat(),
    }


@app.get("/ready")
@limiter.exempt
async def readiness_check(request: Request) -> JSONResponse:
    """
    Readiness probe.

    Ready when the database answers; Redis is reported but optional.
    """
    services: dict[str, Any] = {}

    try:
        async with request.app.state.db_session() as session:
            await session.execute(text("SELECT 1"))
        services["postgres"] = {"status": "healthy"}
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "error": str(e)},
        )

    client = getattr(request.app.state, "redis", None)
    if client is None:
        services["redis"] = {"status": "disabled"}
    else:
        try:
            await client.ping()
            services["redis"] = {"status": "healthy"}
        except (redis.RedisError, OSError) as e:
            services["redis"] = {"status": "unhealthy", "error": str(e)}

    return JSONResponse(status_code=200, content={"status": "ready", "services": services})


@app.get("/metrics")
@limiter.exempt
async def prometheus_metrics() -> Response:
    """Prometheus exposition."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "name": "PayFlow",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    if settings.is_production:
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred.",
            },
        )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc),
            "type": type(exc).__name__,
        },
    )


# Import and include routers
from payflow.api.routes import (
    fraud_router,
    system_router,
    transactions_router,
)

app.include_router(transactions_router, prefix="/api/transactions", tags=["transactions"])
app.include_router(fraud_router, prefix="/api/fraud", tags=["fraud"])
app.include_router(system_router, prefix="/api", tags=["system"])
