"""
Stats Report Models

Monetary values are held as Decimal and rendered as JSON numbers.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Dict, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def to_decimal(value: Union[Decimal, float, int, str, None]) -> Decimal:
    """Convert an amount to Decimal without picking up binary float noise"""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


@dataclass(frozen=True)
class OrderRecord:
    """Read-only view of an order as the aggregator sees it"""
    order_id: int
    status: str
    total_amount: Decimal
    shipping_amount: Decimal
    created_at: datetime


class StatsReport(BaseModel):
    """Order statistics for one reporting window"""

    model_config = ConfigDict(frozen=True)

    total_orders: int = 0
    orders_per_status: Dict[str, int] = Field(default_factory=dict)
    net_value: Money = Decimal("0")
    net_shipping: Money = Decimal("0")
    net_value_per_status: Dict[str, Money] = Field(default_factory=dict)
    net_shipping_per_status: Dict[str, Money] = Field(default_factory=dict)
    type: str
    date_start: str
    date_end: str
