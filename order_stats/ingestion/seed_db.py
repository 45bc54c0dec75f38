"""
Development Database Seeding

Creates the tables and loads synthetic orders so the stats endpoint has
something to report on.

Usage:
    python -m order_stats.ingestion.seed_db --orders 5000 --days 90
"""

import argparse
import asyncio
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import insert

from order_stats.config.logging import configure_logging
from order_stats.data.generators import OrderGenerator
from order_stats.database.connection import close_database, get_db, get_engine, init_database
from order_stats.database.models import Base, Order
from order_stats.stats.options import SessionScope

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 1000


async def create_tables() -> None:
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables created")


async def insert_orders(records: List[Dict[str, Any]], session_scope: SessionScope = get_db) -> int:
    """Insert order rows in chunks; returns the number inserted"""
    if not records:
        return 0

    async with session_scope() as db:
        for i in range(0, len(records), CHUNK_SIZE):
            chunk = records[i:i + CHUNK_SIZE]
            await db.execute(insert(Order), chunk)

    logger.info("Inserted orders", count=len(records))
    return len(records)


async def seed(n_orders: int, days: int, seed_value: int) -> int:
    await init_database()
    try:
        await create_tables()
        rows = OrderGenerator(seed=seed_value).generate(n_orders, days=days)
        return await insert_orders(rows)
    finally:
        await close_database()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Seed the order table with synthetic orders")
    parser.add_argument("--orders", type=int, default=1000, help="Number of orders (default: 1000)")
    parser.add_argument("--days", type=int, default=60, help="Spread orders over this many past days (default: 60)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args(argv)

    configure_logging()
    asyncio.run(seed(args.orders, args.days, args.seed))


if __name__ == "__main__":
    main()
