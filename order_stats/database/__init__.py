"""
Database Module
"""
from .connection import init_database, close_database, get_db, get_engine, check_database_health
from .models import Base, Order, StoreOption
from .orders import SqlOrderStore, sql_order_store

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "get_engine",
    "check_database_health",
    "Base",
    "Order",
    "StoreOption",
    "SqlOrderStore",
    "sql_order_store",
]
