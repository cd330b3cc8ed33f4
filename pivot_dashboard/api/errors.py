from typing import Any, cast
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# Error codes for the API
INVALID_INTERVAL = "INVALID_INTERVAL"
INVALID_SYMBOL = "INVALID_SYMBOL"
INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
SCHEDULER_UNAVAILABLE = "SCHEDULER_UNAVAILABLE"


class DashboardError(HTTPException):
    """HTTPException carrying a machine readable ``code``."""

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(status_code=status_code, detail={"code": code, "message": message})
        self.code = code


class InvalidIntervalError(DashboardError):
    """Exception raised when an unknown interval label is requested."""
    def __init__(self, interval: str, allowed: list[str]):
        super().__init__(
            400, INVALID_INTERVAL,
            f"Unknown interval '{interval}' (expected one of: {', '.join(allowed)})",
        )


class InvalidSymbolError(DashboardError):
    """Exception raised when a ticker symbol is blank."""
    def __init__(self, symbol: str):
        super().__init__(400, INVALID_SYMBOL, f"Invalid symbol '{symbol}'")


class InvalidTimestampError(DashboardError):
    """Exception raised when a bar timestamp cannot be parsed."""
    def __init__(self, value: str):
        super().__init__(
            400, INVALID_TIMESTAMP,
            f"Cannot parse timestamp '{value}' (expected YYYY-MM-DD HH:MM:SS)",
        )


class SchedulerUnavailableError(DashboardError):
    """Exception raised when the refresh scheduler is not running."""
    def __init__(self):
        super().__init__(503, SCHEDULER_UNAVAILABLE, "Refresh scheduler is not running")


def _http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        payload = {"error": {"code": exc.detail["code"], "message": exc.detail.get("message", "")}}
    else:
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        payload = {"error": {"code": str(exc.status_code), "message": message}}
    return JSONResponse(payload, status_code=exc.status_code, headers=getattr(exc, "headers", None))


def _validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    message = exc.errors()[0]["msg"] if exc.errors() else "Validation error"
    payload = {"error": {"code": "422", "message": message}}
    return JSONResponse(payload, status_code=422)


def init_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the given FastAPI app."""
    app.add_exception_handler(HTTPException, cast(Any, _http_exception_handler))
    app.add_exception_handler(RequestValidationError, cast(Any, _validation_exception_handler))

    async def _not_found(request: Request, exc: HTTPException):
        return _http_exception_handler(request, exc)

    app.add_exception_handler(404, _not_found)


__all__ = [
    "INVALID_INTERVAL",
    "INVALID_SYMBOL",
    "INVALID_TIMESTAMP",
    "SCHEDULER_UNAVAILABLE",
    "DashboardError",
    "InvalidIntervalError",
    "InvalidSymbolError",
    "InvalidTimestampError",
    "SchedulerUnavailableError",
    "init_error_handlers",
]
