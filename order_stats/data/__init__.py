"""
Data Generation Module
"""
from .generators import OrderGenerator, ORDER_STATUSES

__all__ = ["OrderGenerator", "ORDER_STATUSES"]
