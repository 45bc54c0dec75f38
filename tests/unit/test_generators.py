"""
Unit Tests - Synthetic Order Generator and Seeding
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select

from order_stats.data.generators import ORDER_STATUSES, OrderGenerator
from order_stats.database.models import Order
from order_stats.ingestion.seed_db import insert_orders

END = datetime(2025, 3, 12, tzinfo=timezone.utc)


class TestOrderGenerator:
    """Tests for OrderGenerator"""

    def test_generate_count(self):
        rows = OrderGenerator(seed=1).generate(50, days=10, end=END)
        assert len(rows) == 50

    def test_rows_are_valid_orders(self):
        rows = OrderGenerator(seed=2).generate(200, days=30, end=END)

        for row in rows:
            assert row["status"] in ORDER_STATUSES
            assert row["shipping_amount"] >= 0
            assert row["total_amount"] > row["shipping_amount"]
            assert row["total_amount"] == row["total_amount"].quantize(Decimal("0.01"))
            assert END - timedelta(days=30) <= row["created_at"] <= END
            assert row["created_at"].tzinfo is not None

    def test_same_seed_same_rows(self):
        first = OrderGenerator(seed=3).generate(20, days=5, end=END)
        second = OrderGenerator(seed=3).generate(20, days=5, end=END)

        assert first == second

    def test_status_mix(self):
        rows = OrderGenerator(seed=4).generate(1000, days=30, end=END)
        statuses = [r["status"] for r in rows]

        assert statuses.count("completed") > len(rows) / 2
        assert len(set(statuses)) > 3


class TestInsertOrders:
    """Tests for seeding the order table"""

    async def test_insert_orders(self, session_scope):
        rows = OrderGenerator(seed=5).generate(25, days=5, end=END)

        inserted = await insert_orders(rows, session_scope=session_scope)

        async with session_scope() as session:
            count = await session.scalar(select(func.count()).select_from(Order))
            total = await session.scalar(select(func.sum(Order.total_amount)))

        assert inserted == 25
        assert count == 25
        assert Decimal(str(total)).quantize(Decimal("0.01")) == sum((r["total_amount"] for r in rows), Decimal(0))

    async def test_insert_nothing(self, session_scope):
        assert await insert_orders([], session_scope=session_scope) == 0
