"""
Redis-backed cache for dashboard statistics.

Redis is optional: without a client, or when Redis errors, values are
computed on every call.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis

from payflow.monitoring import metrics

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Process-wide cache hit/miss counters."""

    hits: int = 0
    misses: int = 0

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def record_hit(self) -> None:
        self.hits += 1
        metrics.cache_hit_ratio.set(self.hit_ratio)

    def record_miss(self) -> None:
        self.misses += 1
        metrics.cache_hit_ratio.set(self.hit_ratio)


class StatsCache:
    """JSON values cached in Redis with a fixed TTL."""

    KEY_PREFIX = "payflow:"

    def __init__(
        self,
        client: Optional[redis.Redis],
        ttl: int,
        stats: CacheStats,
    ):
        self.client = client
        self.ttl = ttl
        self.stats = stats

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Return the cached value for key, computing and storing it on a miss.

        Args:
            key: Cache key (prefixed internally)
            compute: Coroutine factory producing a JSON-serializable value
        """
        if self.client is None or self.ttl <= 0:
            return await compute()

        full_key = self.KEY_PREFIX + key
        try:
            cached = await self.client.get(full_key)
        except redis.RedisError as e:
            logger.warning(f"Cache read failed for {full_key}: {e}")
            return await compute()

        if cached is not None:
            self.stats.record_hit()
            return json.loads(cached)

        self.stats.record_miss()
        value = await compute()
        try:
            await self.client.set(full_key, json.dumps(value), ex=self.ttl)
        except redis.RedisError as e:
            logger.warning(f"Cache write failed for {full_key}: {e}")
        return value
