"""
Stats Query Service and Precompute Job

The read path serves a fresh cached report when preloading is enabled and
otherwise computes the report on demand. On-demand results are never written
back; the cache is filled only by the precompute job.
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Dict, Optional, Union

import structlog

from order_stats.stats.aggregator import OrderStore, aggregate
from order_stats.stats.options import SqlOptionsStore, StatsOptions
from order_stats.stats.periods import DateRange, Period, resolve
from order_stats.stats.report import StatsReport
from order_stats.serving.cache import StatsCache

logger = structlog.get_logger(__name__)

DEFAULT_CACHE_TTL = timedelta(hours=25)

OrderStoreFactory = Callable[[], AbstractAsyncContextManager[OrderStore]]


class OrderStatsService:
    """
    Explicit service object built once at startup.

    Args:
        options_store: Persisted settings
        cache: StatsCache for precomputed reports
        order_store_factory: Opens an OrderStore for the duration of one computation
        tz: Business time zone for window boundaries
        clock: Returns the current instant; defaults to the wall clock
    """

    def __init__(
        self,
        options_store: SqlOptionsStore,
        cache: StatsCache,
        order_store_factory: OrderStoreFactory,
        tz: tzinfo,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.options_store = options_store
        self.cache = cache
        self.order_store_factory = order_store_factory
        self.tz = tz
        self.clock = clock or (lambda: datetime.now(self.tz))

    def window(self, period: Union[Period, str]) -> DateRange:
        return resolve(period, self.clock(), self.tz)

    async def compute(self, period: Union[Period, str]) -> StatsReport:
        """Aggregate the orders of a period's current window"""
        period = Period.parse(period)
        date_range = self.window(period)
        async with self.order_store_factory() as store:
            return await aggregate(store, date_range, period)

    async def get_stats(self, period: Union[Period, str], options: StatsOptions) -> StatsReport:
        """
        Statistics for a period, cached when available.

        Raises:
            InvalidPeriod: If the period is not recognized
            UpstreamDataError: If on-demand computation fails
        """
        period = Period.parse(period)

        if options.preload_enabled:
            cached = await self.cache.get(period)
            if cached is not None:
                logger.debug("Stats served from cache", period=period.value)
                return cached
            logger.info("Stats cache miss, computing on demand", period=period.value)

        return await self.compute(period)


class PrecomputeJob:
    """
    Computes every period and stores it with a fixed retention.

    A failing period is logged and skipped so the others still refresh.
    """

    def __init__(self, service: OrderStatsService, ttl: timedelta = DEFAULT_CACHE_TTL):
        self.service = service
        self.ttl = ttl

    async def run(self) -> Dict[str, bool]:
        """
        Refresh all cache slots.

        Returns:
            Mapping of period value to whether it was refreshed
        """
        results: Dict[str, bool] = {}
        started = datetime.now(self.service.tz)

        for period in Period:
            try:
                report = await self.service.compute(period)
                await self.service.cache.put(period, report, self.ttl)
                results[period.value] = True
                logger.info(
                    "Stats precomputed",
                    period=period.value,
                    total_orders=report.total_orders,
                    date_start=report.date_start,
                    date_end=report.date_end,
                )
            except Exception as e:
                results[period.value] = False
                logger.exception("Stats precompute failed", period=period.value, error=str(e))

        duration = (datetime.now(self.service.tz) - started).total_seconds()
        logger.info(
            "Precompute run finished",
            refreshed=sum(results.values()),
            failed=len(results) - sum(results.values()),
            duration_s=round(duration, 2),
        )
        return results
