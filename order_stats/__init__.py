"""
Order Stats API

Pre-aggregated order statistics for fixed reporting windows.
"""

__version__ = "1.0.1"
