"""
Order Store

Read access to the order table in the two shapes the aggregator needs:
the IDs of orders created inside a range, and a single order by ID.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from order_stats.database.connection import get_db
from order_stats.database.models import Order
from order_stats.stats.exceptions import UpstreamDataError
from order_stats.stats.report import OrderRecord, to_decimal


class SqlOrderStore:
    """OrderStore backed by a SQLAlchemy session"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_order_ids(self, start: datetime, end: datetime) -> List[int]:
        """IDs of orders created in [start, end], both ends inclusive"""
        query = (
            select(Order.order_id)
            .where(Order.created_at >= start, Order.created_at <= end)
            .order_by(Order.created_at, Order.order_id)
        )
        try:
            result = await self.session.execute(query)
        except (SQLAlchemyError, OSError) as e:
            raise UpstreamDataError(f"Listing orders failed: {e}") from e
        return list(result.scalars().all())

    async def get_order(self, order_id: int) -> Optional[OrderRecord]:
        try:
            order = await self.session.get(Order, order_id)
        except (SQLAlchemyError, OSError) as e:
            raise UpstreamDataError(f"Fetching order {order_id} failed: {e}") from e

        if order is None:
            return None
        return OrderRecord(
            order_id=order.order_id,
            status=order.status,
            total_amount=to_decimal(order.total_amount),
            shipping_amount=to_decimal(order.shipping_amount),
            created_at=order.created_at,
        )


@asynccontextmanager
async def sql_order_store() -> AsyncIterator[SqlOrderStore]:
    """Open a session on the application database and wrap it as an OrderStore"""
    async with get_db() as session:
        yield SqlOrderStore(session)
