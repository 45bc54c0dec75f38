"""
Order Stats API
Configuration Module
"""
from .settings import Settings, StatsSettings, get_settings

__all__ = ["Settings", "StatsSettings", "get_settings"]
