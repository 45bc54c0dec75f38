"""
FastAPI Application Factory

Creates and configures the API application.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from order_stats.config import get_settings
from order_stats.serving.api.errors import register_exception_handlers
from order_stats.serving.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from order_stats.serving.api.routes import admin_router, health_router, stats_router

API_PREFIX = "/wc-order-stats/v1"

settings = get_settings()


def create_api_app(lifespan=None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        lifespan: Startup/shutdown context; tests pass None and fill
            ``app.state`` themselves

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Order Stats API",
        description="Order statistics for yesterday, last week and last month",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "PUT", "POST"],
        allow_headers=["X-API-Key", "X-Admin-Token", "Content-Type"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router, tags=["Health"])
    app.include_router(admin_router, prefix=f"{API_PREFIX}/admin", tags=["Admin"])
    app.include_router(stats_router, prefix=API_PREFIX, tags=["Stats"])

    return app
