"""
Dashboard statistics and runtime configuration routes.
"""

from typing import Any

from fastapi import APIRouter

from payflow.api.deps import Cache, TransactionRepo
from payflow.config import settings

router = APIRouter()

# Reported by the dashboard; latency is not measured per request yet
MOCK_AVG_LATENCY_MS = 45


@router.get("/stats")
async def get_stats(transaction_repo: TransactionRepo, cache: Cache) -> dict[str, Any]:
    """Revenue, transaction count and success rate."""
    stats = await cache.get_or_compute("stats", transaction_repo.stats)
    return {**stats, "avg_latency": MOCK_AVG_LATENCY_MS}


@router.get("/config")
async def get_config() -> dict[str, Any]:
    """Non-secret runtime configuration."""
    return {
        "cache_max_size": settings.cache_max_size,
        "cache_ttl": settings.cache_ttl,
        "db_pool_size": settings.db_pool_size,
        "rate_limit_rps": settings.rate_limit_rps,
        "log_level": settings.log_level,
        "fraud_detection": {
            "enabled": settings.fraud_detection_enabled,
            "high_amount_threshold": float(settings.fraud_high_amount_threshold),
            "velocity_limit": settings.fraud_velocity_limit,
            "velocity_window_seconds": settings.fraud_velocity_window,
            "duplicate_window_seconds": settings.fraud_duplicate_window,
            "block_threshold": settings.fraud_block_threshold,
        },
    }
