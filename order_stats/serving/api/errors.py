"""
API Exception Handlers

Maps core exceptions to stable ``{"code", "message"}`` JSON bodies.
"""

import structlog
from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from order_stats.stats.exceptions import Forbidden, InvalidPeriod, UpstreamDataError

logger = structlog.get_logger(__name__)

NO_ROUTE_MESSAGE = "No route was found matching the URL and request method."
UPSTREAM_MESSAGE = "Order data is temporarily unavailable."


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": code, "message": message})


async def forbidden_handler(request: Request, exc: Forbidden) -> JSONResponse:
    logger.info("Request forbidden", path=request.url.path, reason=exc.message)
    return error_response(403, "rest_forbidden", exc.message)


async def invalid_period_handler(request: Request, exc: InvalidPeriod) -> JSONResponse:
    return error_response(404, "rest_no_route", NO_ROUTE_MESSAGE)


async def upstream_error_handler(request: Request, exc: UpstreamDataError) -> JSONResponse:
    logger.error("Order store failure", path=request.url.path, error=str(exc))
    return error_response(503, "upstream_unavailable", UPSTREAM_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Forbidden, forbidden_handler)
    app.add_exception_handler(InvalidPeriod, invalid_period_handler)
    app.add_exception_handler(UpstreamDataError, upstream_error_handler)
