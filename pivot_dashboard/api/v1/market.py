from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from pivot_dashboard.api.deps import get_clock
from pivot_dashboard.api.errors import InvalidIntervalError, InvalidTimestampError
from pivot_dashboard.schemas.dashboard import MarketStatus, ProjectionOut
from pivot_dashboard.services.market_clock import (
    PIVOT_OFFSET_MINUTES,
    MarketSessionClock,
    parse_bar_timestamp,
)

router = APIRouter(prefix="/market")


@router.get("/status", response_model=MarketStatus)
async def market_status(clock: MarketSessionClock = Depends(get_clock)) -> MarketStatus:
    now = clock.now()
    return MarketStatus(
        market_time=now,
        timezone=str(clock.tz),
        session_open=clock.is_session_open(now),
        refresh_window_open=clock.is_session_open_for_refresh(now),
    )


@router.get("/projection", response_model=ProjectionOut)
async def projection(
    last: str = Query(..., description="Bar timestamp, YYYY-MM-DD HH:MM:SS market time"),
    interval: Optional[str] = Query(default=None),
    offset_minutes: Optional[int] = Query(default=None, ge=0),
    clock: MarketSessionClock = Depends(get_clock),
) -> ProjectionOut:
    """Where the next-pivot marker lands for ``last``.

    ``offset_minutes`` wins over ``interval``; with neither, the offset is 0
    and only the session snap applies.
    """
    parsed = parse_bar_timestamp(last)
    if parsed is None:
        raise InvalidTimestampError(last)

    if offset_minutes is None:
        if interval is not None and interval not in PIVOT_OFFSET_MINUTES:
            raise InvalidIntervalError(interval, list(PIVOT_OFFSET_MINUTES))
        offset_minutes = PIVOT_OFFSET_MINUTES.get(interval, 0) if interval else 0

    nxt = clock.next_session_instant(parsed, offset_minutes)
    return ProjectionOut(
        last=last,
        interval=interval,
        offset_minutes=offset_minutes,
        next=clock.format_bar_timestamp(nxt),
    )
