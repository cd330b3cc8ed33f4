"""Dependency injection utilities for FastAPI routers."""

from __future__ import annotations

from fastapi import Request

from pivot_dashboard.api.errors import SchedulerUnavailableError
from pivot_dashboard.core.config import settings
from pivot_dashboard.services.market_clock import MarketSessionClock, get_market_clock
from pivot_dashboard.services.refresh_scheduler import RefreshScheduler


def get_scheduler(request: Request) -> RefreshScheduler:
    """Return the scheduler owned by the application lifespan.

    Raises ``SchedulerUnavailableError`` (503) when polling is disabled or the
    scheduler has already been stopped.
    """
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None or not scheduler.running:
        raise SchedulerUnavailableError()
    return scheduler


def get_clock() -> MarketSessionClock:
    return get_market_clock(settings.MARKET_TIMEZONE)


__all__ = ["get_scheduler", "get_clock"]
