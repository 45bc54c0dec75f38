"""
Test Suite Configuration
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, LockNotOwnedError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from order_stats.database.models import Base, Order
from order_stats.database.orders import SqlOrderStore
from order_stats.serving.cache import StatsCache
from order_stats.stats.options import SqlOptionsStore
from order_stats.stats.report import OrderRecord
from order_stats.stats.service import OrderStatsService, PrecomputeJob

WARSAW = ZoneInfo("Europe/Warsaw")

# Wednesday; yesterday is 2025-03-11, last week 03-03..03-09, last month February
NOW = datetime(2025, 3, 12, 10, 30, tzinfo=WARSAW)


class FakeRedis:
    """The handful of async Redis commands the stats cache uses"""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.lock_owners: Dict[str, object] = {}
        self.available = True

    def _check(self):
        if not self.available:
            raise RedisConnectionError("Connection refused")

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self._check()
        self.data[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def ping(self) -> bool:
        self._check()
        return True

    def lock(self, name: str, timeout: Optional[float] = None) -> "FakeLock":
        return FakeLock(self, name)

    def expire_lock(self, name: str) -> None:
        """Drop a lock as if its holder died and the timeout ran out"""
        self.lock_owners.pop(name, None)


class FakeLock:
    """Non-blocking Redis lock with per-instance ownership tokens"""

    def __init__(self, redis: FakeRedis, name: str):
        self.redis = redis
        self.name = name
        self.token = object()

    async def acquire(self, blocking: bool = True) -> bool:
        self.redis._check()
        if self.name in self.redis.lock_owners:
            return False
        self.redis.lock_owners[self.name] = self.token
        return True

    async def reacquire(self) -> bool:
        self.redis._check()
        if self.redis.lock_owners.get(self.name) is not self.token:
            raise LockNotOwnedError("Cannot reacquire a lock that's no longer owned")
        return True

    async def release(self) -> None:
        self.redis._check()
        if self.redis.lock_owners.get(self.name) is not self.token:
            raise LockNotOwnedError("Cannot release a lock that's no longer owned")
        del self.redis.lock_owners[self.name]


class MemoryOrderStore:
    """OrderStore over a list of OrderRecords"""

    def __init__(self, orders: List[OrderRecord]):
        self.orders = {o.order_id: o for o in orders}

    async def list_order_ids(self, start: datetime, end: datetime) -> List[int]:
        return [o.order_id for o in self.orders.values() if start <= o.created_at <= end]

    async def get_order(self, order_id: int) -> Optional[OrderRecord]:
        return self.orders.get(order_id)


@pytest.fixture
async def test_engine():
    """Create test database engine"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_scope(test_engine):
    """Commit-on-success session context, shaped like get_db()"""
    factory = async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def scope():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return scope


@pytest.fixture
def add_orders(session_scope):
    """Insert orders given as (status, total, shipping, created_at) tuples"""

    async def _add(rows):
        async with session_scope() as session:
            session.add_all([
                Order(
                    status=status,
                    total_amount=Decimal(str(total)),
                    shipping_amount=Decimal(str(shipping)),
                    created_at=created_at,
                )
                for status, total, shipping, created_at in rows
            ])

    return _add


@pytest.fixture
def order_store_factory(session_scope):
    @asynccontextmanager
    async def factory():
        async with session_scope() as session:
            yield SqlOrderStore(session)

    return factory


@pytest.fixture
def memory_store():
    """Build a MemoryOrderStore from OrderRecords"""
    return MemoryOrderStore


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def clock():
    """Mutable UTC clock for cache expiry tests"""

    class Clock:
        def __init__(self):
            self.now = NOW.astimezone(timezone.utc)

        def __call__(self) -> datetime:
            return self.now

    return Clock()


@pytest.fixture
def stats_cache(fake_redis, clock) -> StatsCache:
    return StatsCache(fake_redis, prefix="order_stats", clock=clock)


@pytest.fixture
def options_store(session_scope) -> SqlOptionsStore:
    return SqlOptionsStore(session_scope)


@pytest.fixture
def stats_service(options_store, stats_cache, order_store_factory) -> OrderStatsService:
    return OrderStatsService(
        options_store=options_store,
        cache=stats_cache,
        order_store_factory=order_store_factory,
        tz=WARSAW,
        clock=lambda: NOW,
    )


@pytest.fixture
def precompute_job(stats_service) -> PrecomputeJob:
    return PrecomputeJob(stats_service)


@pytest.fixture
def yesterday_orders():
    """Three orders inside yesterday's window and two just outside it"""
    return [
        ("completed", 100, 10, datetime(2025, 3, 11, 0, 0, 0, tzinfo=WARSAW)),
        ("completed", 50, 5, datetime(2025, 3, 11, 13, 45, tzinfo=WARSAW)),
        ("refunded", 30, 0, datetime(2025, 3, 11, 23, 59, 59, tzinfo=WARSAW)),
        ("completed", 999, 9, datetime(2025, 3, 10, 23, 59, 59, tzinfo=WARSAW)),
        ("processing", 888, 8, datetime(2025, 3, 12, 0, 0, 0, tzinfo=WARSAW)),
    ]
