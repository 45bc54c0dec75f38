"""
API Module
"""
from .main import API_PREFIX, create_api_app
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

__all__ = [
    "API_PREFIX",
    "create_api_app",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
]
