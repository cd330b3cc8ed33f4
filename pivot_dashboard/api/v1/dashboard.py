from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from pivot_dashboard.api.deps import get_clock, get_scheduler
from pivot_dashboard.api.errors import InvalidIntervalError, InvalidSymbolError
from pivot_dashboard.core.logging import get_error_metrics
from pivot_dashboard.schemas.dashboard import DashboardView, SnapshotOut, SymbolUpdate
from pivot_dashboard.schemas.prediction import INTERVALS
from pivot_dashboard.services.dashboard import build_dashboard
from pivot_dashboard.services.market_clock import MarketSessionClock
from pivot_dashboard.services.refresh_scheduler import RefreshScheduler

router = APIRouter()


def _snapshot_out(scheduler: RefreshScheduler) -> SnapshotOut:
    snapshot = scheduler.snapshot
    data = snapshot.data if snapshot else None
    return SnapshotOut(
        symbol=scheduler.symbol,
        foreground_in_flight=scheduler.foreground_in_flight,
        background_in_flight=scheduler.background_in_flight,
        sequence=scheduler.sequence,
        applied_sequence=snapshot.sequence if snapshot else None,
        trigger=snapshot.trigger.value if snapshot else None,
        fetched_at=snapshot.fetched_at if snapshot else None,
        has_data=data is not None,
        data=data.model_dump(mode="json", by_alias=True) if data is not None else None,
        error_counts=get_error_metrics().get_metrics()["error_counts"],
    )


@router.get("/snapshot", response_model=SnapshotOut)
async def get_snapshot(scheduler: RefreshScheduler = Depends(get_scheduler)) -> SnapshotOut:
    """Latest applied refresh plus the in-flight flags."""
    return _snapshot_out(scheduler)


@router.get("/dashboard", response_model=DashboardView)
async def get_dashboard(
    interval: str = Query(default="15m"),
    scheduler: RefreshScheduler = Depends(get_scheduler),
    clock: MarketSessionClock = Depends(get_clock),
) -> DashboardView:
    """Consensus, detail card, chart series and convergence panel for one interval."""
    if interval not in INTERVALS:
        raise InvalidIntervalError(interval, INTERVALS)
    return build_dashboard(scheduler, interval, clock)


@router.post("/refresh", response_model=SnapshotOut)
async def refresh(scheduler: RefreshScheduler = Depends(get_scheduler)) -> SnapshotOut:
    """User-initiated refresh; runs even when the market is closed."""
    await scheduler.refresh_now()
    return _snapshot_out(scheduler)


@router.put("/symbol", response_model=SnapshotOut)
async def change_symbol(
    body: SymbolUpdate,
    scheduler: RefreshScheduler = Depends(get_scheduler),
) -> SnapshotOut:
    """Switch the tracked ticker and refresh for it immediately."""
    try:
        await scheduler.set_symbol(body.symbol)
    except ValueError:
        raise InvalidSymbolError(body.symbol)
    return _snapshot_out(scheduler)
