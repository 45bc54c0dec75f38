"""
Redis Cache Module

Connection pool management plus the stats cache: one slot per period, each
holding a full report and its own expiry. Expiry is checked when the entry
is read; the Redis TTL set alongside only reclaims memory.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

import structlog
from pydantic import ValidationError
from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError

from order_stats.config import get_settings
from order_stats.stats.periods import Period
from order_stats.stats.report import StatsReport

logger = structlog.get_logger(__name__)
settings = get_settings()

# Global Redis connection
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """Initialize Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client is not None:
        return _redis_client

    _redis_pool = ConnectionPool.from_url(
        settings.redis.get_url(),
        max_connections=settings.redis.max_connections,
        socket_timeout=settings.redis.socket_timeout,
        decode_responses=settings.redis.decode_responses,
    )

    _redis_client = Redis(connection_pool=_redis_pool)

    # Test connection
    try:
        await _redis_client.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.error(f"Redis connection failed: {e}")
        raise

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None

    logger.info("Redis connection closed")


def get_redis() -> Redis:
    """Get Redis client instance"""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatsCache:
    """
    Precomputed reports keyed by period.

    Each slot is written with a single SET of the whole document, so readers
    see either the previous entry or the new one.

    Example:
        cache = StatsCache(get_redis())
        await cache.put(Period.YESTERDAY, report, ttl=timedelta(hours=25))
        report = await cache.get(Period.YESTERDAY)
    """

    def __init__(
        self,
        redis: Redis,
        prefix: str = "order_stats",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.redis = redis
        self.prefix = prefix
        self.clock = clock

    def _key(self, period: Union[Period, str]) -> str:
        """Namespaced key for a period slot"""
        return f"{self.prefix}:{Period.parse(period).value}"

    async def get(self, period: Union[Period, str]) -> Optional[StatsReport]:
        """
        Get the cached report for a period.

        Returns:
            The stored report, or None if absent, expired, unreadable,
            or if Redis is unavailable
        """
        key = self._key(period)
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            logger.warning("Cache read failed, treating as miss", key=key, error=str(e))
            return None

        if raw is None:
            return None

        try:
            entry = json.loads(raw)
            expires_at = datetime.fromisoformat(entry["expires_at"])
            report = StatsReport.model_validate(entry["report"])
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            logger.warning("Discarding unreadable cache entry", key=key, error=str(e))
            return None

        if self.clock() >= expires_at:
            return None

        return report

    async def put(
        self,
        period: Union[Period, str],
        report: StatsReport,
        ttl: Union[int, timedelta],
    ) -> None:
        """
        Store a report, replacing the slot and resetting its expiry.

        Args:
            period: Slot to write
            report: Report to store
            ttl: Time-to-live in seconds or timedelta
        """
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())

        key = self._key(period)
        expires_at = self.clock() + timedelta(seconds=ttl)
        serialized = json.dumps(
            {"expires_at": expires_at.isoformat(), "report": report.model_dump()},
            default=str,
        )
        await self.redis.set(key, serialized, ex=ttl)

    async def invalidate(self, period: Optional[Union[Period, str]] = None) -> int:
        """Drop one slot, or every slot when no period is given"""
        if period is not None:
            keys = [self._key(period)]
        else:
            keys = [self._key(p) for p in Period]
        return await self.redis.delete(*keys)
