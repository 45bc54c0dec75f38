"""
FastAPI Production Application

Main entry point for the Order Stats API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from order_stats.bootstrap import build_precompute_job, build_stats_service
from order_stats.config import get_settings
from order_stats.config.logging import configure_logging
from order_stats.database.connection import init_database, close_database
from order_stats.serving.api import create_api_app
from order_stats.serving.cache import init_redis, close_redis, get_redis
from order_stats.serving.scheduler import start_preload_scheduler
from order_stats.stats.exceptions import UpstreamDataError
from order_stats.stats.options import StatsOptions

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info("Starting Order Stats API", timezone=settings.stats.timezone)

    try:
        await init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.warning(f"Database init failed: {e}")

    try:
        await init_redis()
        logger.info("Redis initialized")
    except Exception as e:
        logger.warning(f"Redis init failed: {e}")

    service = build_stats_service(settings)
    app.state.stats_service = service
    app.state.precompute_job = build_precompute_job(service, settings)
    app.state.preload_scheduler = None

    if settings.stats.scheduler_enabled:
        try:
            options = await service.options_store.load()
        except UpstreamDataError as e:
            logger.warning(f"Options unavailable at startup: {e}")
            options = StatsOptions()
        try:
            app.state.preload_scheduler = await start_preload_scheduler(
                service,
                app.state.precompute_job,
                options,
                settings.stats,
                redis=get_redis(),
            )
        except Exception as e:
            logger.warning(f"Preload scheduler not started: {e}")

    yield

    logger.info("Shutting down...")
    preload = app.state.preload_scheduler
    if preload is not None:
        preload.shutdown()
        if preload.election is not None:
            await preload.election.release()
    await close_database()
    await close_redis()


app = create_api_app(lifespan=lifespan)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
