"""
Serving Module
"""
from .cache import init_redis, close_redis, get_redis, StatsCache

__all__ = [
    "init_redis",
    "close_redis",
    "get_redis",
    "StatsCache",
]
