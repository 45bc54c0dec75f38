"""
Order Stats Endpoint

GET /wc-order-stats/v1/{period} for period in yesterday, last-week, last-month.
"""

from fastapi import APIRouter, Depends

from order_stats.serving.api.dependencies import (
    get_stats_service,
    period_from_path,
    require_api_access,
)
from order_stats.stats.options import StatsOptions
from order_stats.stats.periods import Period
from order_stats.stats.report import StatsReport
from order_stats.stats.service import OrderStatsService

router = APIRouter()


@router.get("/{period}", response_model=StatsReport)
async def get_order_stats(
    period: Period = Depends(period_from_path),
    options: StatsOptions = Depends(require_api_access),
    service: OrderStatsService = Depends(get_stats_service),
) -> StatsReport:
    """
    Order statistics for a fixed reporting window.

    Requires the X-API-Key header. Served from the preload cache when
    preloading is enabled and a fresh entry exists.
    """
    return await service.get_stats(period, options)
