"""Dashboard view model assembled from the latest refresh snapshot."""

from __future__ import annotations

from typing import Optional

from pivot_dashboard.schemas.dashboard import (
    ConsensusView,
    ConvergencePanel,
    DashboardView,
    IntervalDetail,
)
from pivot_dashboard.schemas.prediction import INTERVALS, IntervalResult, PredictionResponse
from pivot_dashboard.services.chart import build_chart
from pivot_dashboard.services.market_clock import MarketSessionClock
from pivot_dashboard.services.refresh_scheduler import RefreshScheduler

CONVERGENCE_INTERVAL = "15m"


def _pct(value: Optional[float], digits: int) -> Optional[float]:
    return round(value * 100, digits) if value is not None else None


def build_detail(result: IntervalResult) -> IntervalDetail:
    prediction = result.prediction
    return IntervalDetail(
        has_prediction=prediction is not None,
        pivot_type=prediction.predicted_type_name if prediction else None,
        macd_agrees=bool(result.macd_tick),
        confidence_pct=_pct(prediction.confidence, 1) if prediction else None,
        target_price=prediction.estimated_value if prediction else None,
        projected_time_et=result.projected_time_et or None,
        entry=result.entry,
        exit_target=result.exit_target,
        support=result.support,
        resistance=result.resistance,
        risk_reward=result.risk_reward,
        is_valid=bool(result.is_valid),
        latest_price=result.latest_price,
        latest_timestamp=result.latest_timestamp,
        atr=result.atr,
        atr_ratio_pct=_pct(result.atr_ratio, 2),
        low_volatility=bool(result.low_volatility),
    )


def build_convergence(data: PredictionResponse) -> Optional[ConvergencePanel]:
    """The panel shows once the backend sends both change fields, even as null."""
    result = data.intervals.get(CONVERGENCE_INTERVAL)
    if result is None:
        return None
    if not {"spy_pct_change", "qqq_pct_change"} <= result.model_fields_set:
        return ConvergencePanel(available=False)
    return ConvergencePanel(
        available=True,
        spy_pct_change=_pct(result.spy_pct_change, 2),
        qqq_pct_change=_pct(result.qqq_pct_change, 2),
        status=result.convergence_status,
        leader=result.leader or None,
        leader_direction=result.leader_direction,
        signal_agrees_with_leader=result.signal_agrees_with_leader,
    )


def build_dashboard(
    scheduler: RefreshScheduler,
    interval: str,
    clock: MarketSessionClock,
) -> DashboardView:
    """View model for ``interval``; every missing piece degrades to None."""
    snapshot = scheduler.snapshot
    data = snapshot.data if snapshot else None
    result = data.interval(interval) if data else IntervalResult()

    consensus = None
    if data is not None and data.consensus is not None:
        consensus = ConsensusView(**data.consensus.model_dump(include=set(ConsensusView.model_fields)))

    return DashboardView(
        symbol=snapshot.symbol if snapshot else scheduler.symbol,
        interval=interval,
        intervals=list(INTERVALS),
        is_user_loading=scheduler.foreground_in_flight,
        is_auto_refreshing=scheduler.background_in_flight,
        fetched_at=snapshot.fetched_at if snapshot else None,
        has_data=data is not None,
        consensus=consensus,
        detail=build_detail(result),
        chart=build_chart(result, interval, clock),
        convergence=build_convergence(data) if data else None,
    )


__all__ = ["build_detail", "build_convergence", "build_dashboard"]
