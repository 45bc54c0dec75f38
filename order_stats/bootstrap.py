"""
Service wiring shared by the API process and the preload workflow.
"""

from typing import Optional

from order_stats.config import Settings, get_settings
from order_stats.database import get_db, sql_order_store
from order_stats.serving.cache import StatsCache, get_redis
from order_stats.stats.options import SqlOptionsStore
from order_stats.stats.service import OrderStatsService, PrecomputeJob


def build_stats_service(settings: Optional[Settings] = None) -> OrderStatsService:
    """Stats service over the initialized database and Redis connections"""
    settings = settings or get_settings()
    cache = StatsCache(get_redis(), prefix=settings.stats.cache_prefix)
    return OrderStatsService(
        options_store=SqlOptionsStore(get_db),
        cache=cache,
        order_store_factory=sql_order_store,
        tz=settings.stats.zone,
    )


def build_precompute_job(service: OrderStatsService, settings: Optional[Settings] = None) -> PrecomputeJob:
    settings = settings or get_settings()
    return PrecomputeJob(service, ttl=settings.stats.cache_ttl)
