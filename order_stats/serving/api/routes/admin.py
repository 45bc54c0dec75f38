"""
Admin Endpoints

Settings management, key rotation and manual preload. All routes require the
X-Admin-Token header.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from redis.exceptions import RedisError

from order_stats.serving.api.dependencies import (
    get_precompute_job,
    get_preload_scheduler,
    get_stats_service,
    require_admin,
)
from order_stats.serving.scheduler import PreloadScheduler
from order_stats.stats.access import issue_new_key
from order_stats.stats.options import OptionsUpdate
from order_stats.stats.service import OrderStatsService, PrecomputeJob

logger = structlog.get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/settings")
async def read_settings(
    service: OrderStatsService = Depends(get_stats_service),
) -> Dict[str, Any]:
    """Current options, with the API key masked"""
    options = await service.options_store.load()
    return options.public_view()


@router.put("/settings")
async def update_settings(
    update: OptionsUpdate,
    service: OrderStatsService = Depends(get_stats_service),
    job: PrecomputeJob = Depends(get_precompute_job),
    scheduler: Optional[PreloadScheduler] = Depends(get_preload_scheduler),
) -> Dict[str, Any]:
    """
    Update options.

    Drops cached reports when preloading is switched off. The daily trigger
    follows at once when this worker holds the scheduler lock; otherwise the
    lock holder picks the change up at its next options refresh
    (``STATS_OPTIONS_REFRESH_MINUTES``).
    """
    try:
        options = await service.options_store.save(update.model_dump(exclude_unset=True))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    if scheduler is not None:
        scheduler.sync(options, job.run)
    if not options.preload_enabled:
        try:
            await service.cache.invalidate()
        except RedisError as e:
            logger.warning("Could not clear stats cache", error=str(e))

    return options.public_view()


@router.post("/api-key", response_class=PlainTextResponse)
async def generate_api_key(
    service: OrderStatsService = Depends(get_stats_service),
) -> str:
    """Issue a new API key; the previous key stops working immediately"""
    return await issue_new_key(service.options_store)


@router.post("/preload")
async def run_preload(job: PrecomputeJob = Depends(get_precompute_job)) -> Dict[str, bool]:
    """Run the precompute job now"""
    logger.info("Manual preload requested")
    return await job.run()
