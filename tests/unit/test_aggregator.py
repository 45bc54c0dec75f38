"""
Unit Tests - Stats Aggregation
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from order_stats.data.generators import OrderGenerator
from order_stats.database.models import Base
from order_stats.database.orders import SqlOrderStore
from order_stats.stats.aggregator import aggregate
from order_stats.stats.exceptions import InvalidPeriod, UpstreamDataError
from order_stats.stats.periods import Period, resolve
from order_stats.stats.report import OrderRecord

from conftest import NOW, WARSAW


def _record(order_id, status, total, shipping, created_at=NOW):
    return OrderRecord(
        order_id=order_id,
        status=status,
        total_amount=Decimal(str(total)),
        shipping_amount=Decimal(str(shipping)),
        created_at=created_at,
    )


class TestAggregate:
    """Tests for aggregate() over an in-memory order store"""

    async def test_empty_window(self, memory_store):
        window = resolve(Period.YESTERDAY, NOW, WARSAW)

        report = await aggregate(memory_store([]), window, Period.YESTERDAY)

        assert report.total_orders == 0
        assert report.orders_per_status == {}
        assert report.net_value == 0
        assert report.net_shipping == 0
        assert report.net_value_per_status == {}
        assert report.net_shipping_per_status == {}
        assert report.type == "yesterday"
        assert report.date_start == "11-03-2025"
        assert report.date_end == "11-03-2025"

    async def test_scenario_totals(self, memory_store):
        """completed x2 and refunded x1 with totals 100/50/30 and shipping 10/5/0"""
        day = datetime(2025, 3, 11, 12, 0, tzinfo=WARSAW)
        store = memory_store([
            _record(1, "completed", 100, 10, day),
            _record(2, "completed", 50, 5, day),
            _record(3, "refunded", 30, 0, day),
        ])
        window = resolve(Period.YESTERDAY, NOW, WARSAW)

        report = await aggregate(store, window, Period.YESTERDAY)

        assert report.total_orders == 3
        assert report.orders_per_status == {"completed": 2, "refunded": 1}
        assert report.net_value == Decimal("165")
        assert report.net_shipping == Decimal("15")
        assert report.net_value_per_status == {"completed": Decimal("135"), "refunded": Decimal("30")}
        assert report.net_shipping_per_status == {"completed": Decimal("15"), "refunded": Decimal("0")}

    async def test_no_float_drift(self, memory_store):
        """Ten 0.10 shipping charges sum to exactly 1.00"""
        window = resolve(Period.YESTERDAY, NOW, WARSAW)
        day = window.start + timedelta(hours=1)
        store = memory_store([_record(i, "completed", "0.30", "0.10", day) for i in range(10)])

        report = await aggregate(store, window, "yesterday")

        assert report.net_shipping == Decimal("1.00")
        assert report.net_value == Decimal("2.00")

    async def test_skips_vanished_order(self, memory_store):
        window = resolve(Period.YESTERDAY, NOW, WARSAW)
        store = memory_store([_record(1, "completed", 20, 5, window.start)])
        real_get = store.get_order

        async def flaky_get(order_id):
            return None if order_id == 1 else await real_get(order_id)

        store.get_order = flaky_get

        report = await aggregate(store, window, Period.YESTERDAY)

        assert report.total_orders == 0

    @pytest.mark.parametrize("seed", [1, 7, 42])
    async def test_per_status_breakdown_reconciles(self, memory_store, seed):
        """Per-status sums add up to the grand totals and to the order amounts"""
        end = datetime(2025, 3, 12, 0, 0, tzinfo=timezone.utc)
        rows = OrderGenerator(seed=seed).generate(200, days=60, end=end)
        store = memory_store([OrderRecord(order_id=i, **row) for i, row in enumerate(rows, start=1)])
        window = resolve(Period.LAST_MONTH, NOW, WARSAW)
        expected = [r for r in rows if window.start <= r["created_at"] <= window.end]

        report = await aggregate(store, window, Period.LAST_MONTH)

        assert report.total_orders == len(expected)
        assert sum(report.orders_per_status.values()) == report.total_orders
        assert sum(report.net_value_per_status.values(), Decimal(0)) == report.net_value
        assert sum(report.net_shipping_per_status.values(), Decimal(0)) == report.net_shipping
        assert report.net_value + report.net_shipping == sum(
            (r["total_amount"] for r in expected), Decimal(0)
        )

    async def test_invalid_period(self, memory_store):
        window = resolve(Period.YESTERDAY, NOW, WARSAW)

        with pytest.raises(InvalidPeriod):
            await aggregate(memory_store([]), window, "fortnight")

    async def test_report_is_immutable(self, memory_store):
        window = resolve(Period.YESTERDAY, NOW, WARSAW)
        report = await aggregate(memory_store([]), window, Period.YESTERDAY)

        with pytest.raises(Exception):
            report.total_orders = 5


class TestSqlOrderStore:
    """Tests for the SQL-backed order store"""

    async def test_window_is_inclusive(self, add_orders, yesterday_orders, order_store_factory):
        await add_orders(yesterday_orders)
        window = resolve(Period.YESTERDAY, NOW, WARSAW)

        async with order_store_factory() as store:
            ids = await store.list_order_ids(window.start, window.end)
            orders = [await store.get_order(i) for i in ids]

        assert len(ids) == 3
        assert sorted(o.total_amount for o in orders) == [Decimal("30"), Decimal("50"), Decimal("100")]
        assert all(o.created_at.tzinfo is not None for o in orders)

    async def test_scenario_end_to_end(self, add_orders, yesterday_orders, order_store_factory):
        await add_orders(yesterday_orders)
        window = resolve(Period.YESTERDAY, NOW, WARSAW)

        async with order_store_factory() as store:
            report = await aggregate(store, window, Period.YESTERDAY)

        assert report.total_orders == 3
        assert report.orders_per_status == {"completed": 2, "refunded": 1}
        assert report.net_value == Decimal("165")
        assert report.net_shipping == Decimal("15")

    async def test_missing_order_returns_none(self, order_store_factory):
        async with order_store_factory() as store:
            assert await store.get_order(12345) is None

    async def test_database_errors_become_upstream_errors(self, test_engine, session_scope):
        async with test_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        async with session_scope() as session:
            store = SqlOrderStore(session)
            with pytest.raises(UpstreamDataError):
                await store.list_order_ids(NOW - timedelta(days=1), NOW)
