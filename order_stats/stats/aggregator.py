"""
Stats Aggregator

Reduces the orders created inside a reporting window into a StatsReport:
order counts, net value (total minus shipping) and net shipping, overall and
per status. Amounts are summed as Decimal.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Union

import structlog

from order_stats.stats.periods import DateRange, Period
from order_stats.stats.report import OrderRecord, StatsReport

logger = structlog.get_logger(__name__)


class OrderStore(Protocol):
    """Read access to orders; failures surface as UpstreamDataError"""

    async def list_order_ids(self, start: datetime, end: datetime) -> List[int]:
        ...

    async def get_order(self, order_id: int) -> Optional[OrderRecord]:
        ...


async def aggregate(
    store: OrderStore,
    date_range: DateRange,
    period: Union[Period, str],
) -> StatsReport:
    """
    Compute order statistics for a date range.

    Args:
        store: Order store to read from
        date_range: Inclusive creation-time range
        period: Period the range was resolved from, echoed in the report

    Returns:
        StatsReport built from every order in the range

    Raises:
        InvalidPeriod: If the period is not recognized
        UpstreamDataError: If the order store fails
    """
    period = Period.parse(period)
    order_ids = await store.list_order_ids(date_range.start, date_range.end)

    total_orders = 0
    net_value = Decimal("0")
    net_shipping = Decimal("0")
    orders_per_status: Dict[str, int] = defaultdict(int)
    net_value_per_status: Dict[str, Decimal] = defaultdict(Decimal)
    net_shipping_per_status: Dict[str, Decimal] = defaultdict(Decimal)

    for order_id in order_ids:
        order = await store.get_order(order_id)
        if order is None:
            # Deleted between listing and fetching
            logger.warning("Order vanished during aggregation", order_id=order_id, period=period.value)
            continue

        value = order.total_amount - order.shipping_amount

        total_orders += 1
        orders_per_status[order.status] += 1
        net_value += value
        net_shipping += order.shipping_amount
        net_value_per_status[order.status] += value
        net_shipping_per_status[order.status] += order.shipping_amount

    logger.debug(
        "Orders aggregated",
        period=period.value,
        start=date_range.start.isoformat(),
        end=date_range.end.isoformat(),
        total_orders=total_orders,
    )

    return StatsReport(
        total_orders=total_orders,
        orders_per_status=dict(orders_per_status),
        net_value=net_value,
        net_shipping=net_shipping,
        net_value_per_status=dict(net_value_per_status),
        net_shipping_per_status=dict(net_shipping_per_status),
        type=period.value,
        date_start=date_range.start_label,
        date_end=date_range.end_label,
    )
