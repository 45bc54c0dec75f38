"""
Preload Scheduler

Keeps at most one daily precompute trigger registered: present at
``preload_time`` while preloading is enabled, absent otherwise. Across
workers only the holder of a Redis lock keeps the trigger; every worker
re-reads the options periodically so changes made through another worker
take effect.
"""

from datetime import time
from typing import Awaitable, Callable, Dict, Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from redis.asyncio import Redis
from redis.asyncio.lock import Lock
from redis.exceptions import LockError, RedisError

from order_stats.config import StatsSettings
from order_stats.stats.exceptions import UpstreamDataError
from order_stats.stats.options import StatsOptions
from order_stats.stats.service import OrderStatsService, PrecomputeJob

logger = structlog.get_logger(__name__)

PRELOAD_JOB_ID = "order_stats_preload"
OPTIONS_SYNC_JOB_ID = "order_stats_options_sync"
LEADER_ELECTION_JOB_ID = "order_stats_leader_election"
SCHEDULER_LOCK_KEY = "order_stats:scheduler-lock"

PreloadFunc = Callable[[], Awaitable[Dict[str, bool]]]


class PreloadScheduler:
    """
    Registers and cancels the daily preload trigger on an AsyncIOScheduler.

    An inactive scheduler (a worker that does not hold the scheduler lock)
    keeps no trigger at all.
    """

    def __init__(self, scheduler: AsyncIOScheduler, timezone: str, active: bool = True):
        self.scheduler = scheduler
        self.timezone = timezone
        self.active = active
        self.election: Optional["LeaderElection"] = None

    @property
    def job(self) -> Optional[Job]:
        return self.scheduler.get_job(PRELOAD_JOB_ID)

    def register_daily_job(self, at: time, func: PreloadFunc) -> Job:
        """(Re)register the daily trigger; replaces any existing one"""
        job = self.scheduler.add_job(
            func,
            CronTrigger(hour=at.hour, minute=at.minute, timezone=self.timezone),
            id=PRELOAD_JOB_ID,
            name="Preload order stats",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )
        logger.info("Preload job scheduled", at=at.strftime("%H:%M"), timezone=self.timezone)
        return job

    def cancel_daily_job(self) -> bool:
        """Remove the daily trigger; returns whether one was registered"""
        if self.job is None:
            return False
        self.scheduler.remove_job(PRELOAD_JOB_ID)
        logger.info("Preload job cancelled")
        return True

    def sync(self, options: StatsOptions, func: PreloadFunc) -> Optional[Job]:
        """Make the registered trigger match the options"""
        if not self.active or not options.preload_enabled:
            self.cancel_daily_job()
            return None

        current = self.job
        if current is not None and _trigger_time(current) == options.preload_at:
            return current
        return self.register_daily_job(options.preload_at, func)

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)


def _trigger_time(job: Job) -> Optional[time]:
    fields = {f.name: str(f) for f in job.trigger.fields}
    try:
        return time(int(fields["hour"]), int(fields["minute"]))
    except (KeyError, ValueError):
        return None


async def acquire_scheduler_lock(redis: Redis, timeout: int) -> Optional[Lock]:
    """Try to become the worker that runs the scheduler; None if another holds it"""
    lock = redis.lock(SCHEDULER_LOCK_KEY, timeout=timeout)
    if await lock.acquire(blocking=False):
        logger.info("Acquired scheduler lock")
        return lock
    logger.debug("Scheduler lock held by another worker")
    return None


async def release_scheduler_lock(lock: Lock) -> None:
    try:
        await lock.release()
        logger.info("Released scheduler lock")
    except RedisError as e:
        logger.warning("Failed to release scheduler lock", error=str(e))


class LeaderElection:
    """
    Decides which worker owns the daily trigger.

    Every worker calls ``tick()`` on an interval. The holder of the scheduler
    lock extends it; a worker that loses it drops its trigger; the others keep
    trying to take the lock, so a dead leader is replaced once its lock
    expires.

    Args:
        preload: Trigger registry of this worker
        redis: Redis holding the lock
        timeout: Lock lifetime in seconds
        on_elected: Called after winning the lock, to register the trigger
    """

    def __init__(
        self,
        preload: PreloadScheduler,
        redis: Redis,
        timeout: int,
        on_elected: Callable[[], Awaitable[None]],
    ):
        self.preload = preload
        self.redis = redis
        self.timeout = timeout
        self.on_elected = on_elected
        self.lock: Optional[Lock] = None
        preload.active = False

    @property
    def is_leader(self) -> bool:
        return self.lock is not None

    async def tick(self) -> None:
        if self.lock is not None:
            await self._renew()
        else:
            await self._campaign()

    async def _renew(self) -> None:
        try:
            await self.lock.reacquire()
        except LockError as e:
            logger.warning("Lost scheduler lock", error=str(e))
            self._step_down()
        except RedisError as e:
            logger.warning("Scheduler lock renewal failed", error=str(e))

    async def _campaign(self) -> None:
        try:
            lock = await acquire_scheduler_lock(self.redis, self.timeout)
        except RedisError as e:
            logger.warning("Scheduler lock unavailable", error=str(e))
            return
        if lock is None:
            return
        self.lock = lock
        self.preload.active = True
        await self.on_elected()

    def _step_down(self) -> None:
        self.lock = None
        self.preload.active = False
        self.preload.cancel_daily_job()

    async def release(self) -> None:
        if self.lock is not None:
            await release_scheduler_lock(self.lock)
            self._step_down()


async def start_preload_scheduler(
    service: OrderStatsService,
    job: PrecomputeJob,
    options: StatsOptions,
    stats_settings: StatsSettings,
    redis: Optional[Redis] = None,
) -> PreloadScheduler:
    """
    Start the scheduler with the preload trigger matching ``options``.

    With ``redis`` given, the trigger is only kept while this worker holds
    the scheduler lock; the election runs once before the scheduler starts
    and then on an interval.

    Args:
        service: Used to re-read options on the refresh interval
        job: Precompute job run by the daily trigger
        options: Options snapshot at startup
        stats_settings: Time zone, lock lifetime and refresh cadence
        redis: Redis for the scheduler lock; None runs without election
    """
    scheduler = AsyncIOScheduler(timezone=stats_settings.timezone)
    preload = PreloadScheduler(scheduler, stats_settings.timezone)

    async def refresh_options() -> None:
        try:
            current = await service.options_store.load()
        except UpstreamDataError as e:
            logger.warning("Options refresh failed", error=str(e))
            return
        preload.sync(current, job.run)

    scheduler.add_job(
        refresh_options,
        "interval",
        minutes=stats_settings.options_refresh_minutes,
        id=OPTIONS_SYNC_JOB_ID,
        replace_existing=True,
        max_instances=1,
    )

    if redis is not None:
        election = LeaderElection(preload, redis, stats_settings.scheduler_lock_seconds, refresh_options)
        preload.election = election
        await election.tick()
        scheduler.add_job(
            election.tick,
            "interval",
            seconds=max(stats_settings.scheduler_lock_seconds // 3, 10),
            id=LEADER_ELECTION_JOB_ID,
            replace_existing=True,
            max_instances=1,
        )
    else:
        preload.sync(options, job.run)

    scheduler.start()
    logger.info(
        "Preload scheduler started",
        preload_enabled=options.preload_enabled,
        leader=preload.active,
    )
    return preload
