"""
Order Stats Core

Window resolution, aggregation and report models.
"""
from .aggregator import OrderStore, aggregate
from .exceptions import Forbidden, InvalidPeriod, OrderStatsError, UpstreamDataError
from .periods import DateRange, Period, resolve
from .report import OrderRecord, StatsReport

__all__ = [
    "OrderStore",
    "aggregate",
    "Forbidden",
    "InvalidPeriod",
    "OrderStatsError",
    "UpstreamDataError",
    "DateRange",
    "Period",
    "resolve",
    "OrderRecord",
    "StatsReport",
]
