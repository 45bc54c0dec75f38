"""
Unit Tests - Stats Cache
"""
import json
from datetime import timedelta
from decimal import Decimal

import pytest

from order_stats.stats.exceptions import InvalidPeriod
from order_stats.stats.periods import Period
from order_stats.stats.report import StatsReport


@pytest.fixture
def report():
    return StatsReport(
        total_orders=3,
        orders_per_status={"completed": 2, "refunded": 1},
        net_value=Decimal("165.00"),
        net_shipping=Decimal("15.00"),
        net_value_per_status={"completed": Decimal("135.00"), "refunded": Decimal("30.00")},
        net_shipping_per_status={"completed": Decimal("15.00"), "refunded": Decimal("0.00")},
        type="yesterday",
        date_start="11-03-2025",
        date_end="11-03-2025",
    )


class TestStatsCache:
    """Tests for StatsCache"""

    async def test_put_then_get(self, stats_cache, report):
        await stats_cache.put(Period.YESTERDAY, report, ttl=timedelta(hours=25))

        cached = await stats_cache.get("yesterday")

        assert cached == report
        assert cached.net_value == Decimal("165.00")

    async def test_missing_slot(self, stats_cache):
        assert await stats_cache.get(Period.LAST_MONTH) is None

    async def test_slots_are_per_period(self, stats_cache, report):
        await stats_cache.put(Period.YESTERDAY, report, ttl=60)

        assert await stats_cache.get(Period.LAST_WEEK) is None

    async def test_key_and_backstop_ttl(self, stats_cache, fake_redis, report):
        await stats_cache.put(Period.LAST_WEEK, report, ttl=timedelta(hours=25))

        assert "order_stats:last-week" in fake_redis.data
        assert fake_redis.ttls["order_stats:last-week"] == 90000

    async def test_entry_expires(self, stats_cache, clock, report):
        """Fresh strictly before expires_at, gone from then on"""
        await stats_cache.put(Period.YESTERDAY, report, ttl=timedelta(hours=25))

        clock.now += timedelta(hours=25) - timedelta(seconds=1)
        assert await stats_cache.get(Period.YESTERDAY) is not None

        clock.now += timedelta(seconds=1)
        assert await stats_cache.get(Period.YESTERDAY) is None

    async def test_put_replaces_and_resets_expiry(self, stats_cache, clock, report):
        await stats_cache.put(Period.YESTERDAY, report, ttl=timedelta(hours=25))
        clock.now += timedelta(hours=24)
        newer = report.model_copy(update={"total_orders": 4})

        await stats_cache.put(Period.YESTERDAY, newer, ttl=timedelta(hours=25))
        clock.now += timedelta(hours=2)

        cached = await stats_cache.get(Period.YESTERDAY)
        assert cached.total_orders == 4

    async def test_stored_document(self, stats_cache, fake_redis, clock, report):
        await stats_cache.put(Period.YESTERDAY, report, ttl=3600)

        entry = json.loads(fake_redis.data["order_stats:yesterday"])

        assert entry["expires_at"] == (clock.now + timedelta(hours=1)).isoformat()
        assert entry["report"]["total_orders"] == 3
        assert entry["report"]["orders_per_status"] == {"completed": 2, "refunded": 1}

    @pytest.mark.parametrize("raw", ["not json", "{}", '{"expires_at": "soon", "report": {}}'])
    async def test_unreadable_entry_is_a_miss(self, stats_cache, fake_redis, raw):
        fake_redis.data["order_stats:yesterday"] = raw

        assert await stats_cache.get(Period.YESTERDAY) is None

    async def test_redis_down_is_a_miss(self, stats_cache, fake_redis, report):
        await stats_cache.put(Period.YESTERDAY, report, ttl=60)
        fake_redis.available = False

        assert await stats_cache.get(Period.YESTERDAY) is None

    async def test_invalidate_one(self, stats_cache, report):
        await stats_cache.put(Period.YESTERDAY, report, ttl=60)
        await stats_cache.put(Period.LAST_WEEK, report, ttl=60)

        assert await stats_cache.invalidate(Period.YESTERDAY) == 1
        assert await stats_cache.get(Period.YESTERDAY) is None
        assert await stats_cache.get(Period.LAST_WEEK) is not None

    async def test_invalidate_all(self, stats_cache, fake_redis, report):
        for period in Period:
            await stats_cache.put(period, report, ttl=60)

        assert await stats_cache.invalidate() == 3
        assert fake_redis.data == {}

    async def test_unknown_period(self, stats_cache):
        with pytest.raises(InvalidPeriod):
            await stats_cache.get("next-week")
