"""
FastAPI Dependencies

Dependencies run in parameter order, so routes list the period before the
access check: unknown periods are rejected before any data access.
"""

import hmac
from typing import Optional

from fastapi import Depends, Header, Request

from order_stats.config import Settings, get_settings
from order_stats.serving.scheduler import PreloadScheduler
from order_stats.stats.access import authorize
from order_stats.stats.exceptions import Forbidden
from order_stats.stats.options import StatsOptions
from order_stats.stats.periods import Period
from order_stats.stats.service import OrderStatsService, PrecomputeJob

ADMIN_FORBIDDEN_MESSAGE = "Sorry, you are not allowed to do that."


def get_stats_service(request: Request) -> OrderStatsService:
    return request.app.state.stats_service


def get_precompute_job(request: Request) -> PrecomputeJob:
    return request.app.state.precompute_job


def get_preload_scheduler(request: Request) -> Optional[PreloadScheduler]:
    return getattr(request.app.state, "preload_scheduler", None)


def period_from_path(period: str) -> Period:
    """Path segment to Period; unknown values become a 404"""
    return Period.parse(period)


async def get_options(service: OrderStatsService = Depends(get_stats_service)) -> StatsOptions:
    """One options snapshot per request"""
    return await service.options_store.load()


async def require_api_access(
    options: StatsOptions = Depends(get_options),
    x_api_key: Optional[str] = Header(default=None),
) -> StatsOptions:
    """Access gate for the stats endpoint; returns the snapshot it checked"""
    decision = authorize(options, x_api_key)
    if not decision.allowed:
        raise Forbidden(decision.reason)
    return options


def require_admin(
    x_admin_token: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Admin endpoints need the configured ADMIN_TOKEN; closed when unset"""
    expected = settings.security.admin_token
    if expected is None or not expected.get_secret_value() or x_admin_token is None:
        raise Forbidden(ADMIN_FORBIDDEN_MESSAGE)
    if not hmac.compare_digest(expected.get_secret_value().encode("utf-8"), x_admin_token.encode("utf-8")):
        raise Forbidden(ADMIN_FORBIDDEN_MESSAGE)
