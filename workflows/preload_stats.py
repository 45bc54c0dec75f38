"""
Prefect Workflow - Order Stats Preload

Runs the precompute job once, for deployments that trigger preloading from
an external scheduler (system cron, Prefect deployment) instead of the
in-process APScheduler.

Usage:
    python -m workflows.preload_stats
"""

from prefect import flow, task, get_run_logger

from order_stats.bootstrap import build_precompute_job, build_stats_service
from order_stats.config import get_settings
from order_stats.database.connection import close_database, init_database
from order_stats.serving.cache import close_redis, init_redis

settings = get_settings()


@task(
    name="precompute_order_stats",
    description="Compute every reporting window and store it in the cache",
    retries=2,
    retry_delay_seconds=60,
)
async def precompute_order_stats() -> dict:
    """Refresh all cache slots; fails (and retries) only if every period failed"""
    service = build_stats_service(settings)
    results = await build_precompute_job(service, settings).run()
    if results and not any(results.values()):
        raise RuntimeError(f"All periods failed to precompute: {sorted(results)}")
    return results


@flow(
    name="preload_order_stats",
    description="Daily preload of order statistics",
)
async def preload_order_stats() -> dict:
    logger = get_run_logger()

    await init_database()
    await init_redis()
    try:
        results = await precompute_order_stats()
    finally:
        await close_database()
        await close_redis()

    failed = [period for period, ok in results.items() if not ok]
    if failed:
        logger.warning(f"Preload finished with failed periods: {failed}")
    else:
        logger.info("Preload finished for all periods")

    return {"status": "partial" if failed else "success", "periods": results}


if __name__ == "__main__":
    import asyncio

    asyncio.run(preload_order_stats())
