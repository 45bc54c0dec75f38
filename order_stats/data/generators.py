"""
Synthetic Order Generator

Generates realistic order rows for local development and demos: store
statuses with a realistic mix, two-decimal amounts and creation times spread
over a window.
"""

import random
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from faker import Faker

CENTS = Decimal("0.01")

ORDER_STATUSES = OrderedDict([
    ("completed", 0.70),
    ("processing", 0.10),
    ("on-hold", 0.04),
    ("pending", 0.05),
    ("cancelled", 0.05),
    ("refunded", 0.04),
    ("failed", 0.02),
])

SHIPPING_RATES = [Decimal("0.00"), Decimal("9.99"), Decimal("14.99"), Decimal("24.90")]


class OrderGenerator:
    """
    Generate order rows matching the ``orders`` table.

    Example:
        rows = OrderGenerator(seed=7).generate(500, days=60)
    """

    def __init__(self, seed: Optional[int] = 42):
        self.fake = Faker()
        self.random = random.Random(seed)
        if seed is not None:
            self.fake.seed_instance(seed)

    def generate_one(self, start: datetime, end: datetime) -> Dict[str, Any]:
        status = self.random.choices(
            list(ORDER_STATUSES.keys()),
            weights=list(ORDER_STATUSES.values()),
        )[0]
        subtotal = (Decimal(self.random.randint(500, 90000)) / 100).quantize(CENTS)
        shipping = self.random.choice(SHIPPING_RATES)

        return {
            "status": status,
            "total_amount": subtotal + shipping,
            "shipping_amount": shipping,
            "created_at": self.fake.date_time_between(start_date=start, end_date=end, tzinfo=timezone.utc),
        }

    def generate(
        self,
        n: int = 1000,
        days: int = 60,
        end: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """
        Generate n orders created within the last ``days`` days before ``end``.

        Args:
            n: Number of orders
            days: Width of the creation window
            end: Window end; defaults to now (UTC)
        """
        end = end or datetime.now(timezone.utc)
        start = end - timedelta(days=days)
        return [self.generate_one(start, end) for _ in range(n)]
