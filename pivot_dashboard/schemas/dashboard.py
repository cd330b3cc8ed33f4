from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from pivot_dashboard.schemas.prediction import ConvergenceStatus, LeaderDirection


class ChartSeries(BaseModel):
    """One plottable trace; ``x`` values are bar timestamps as strings."""

    name: str
    mode: Literal["lines", "markers"]
    x: List[Optional[str]] = Field(default_factory=list)
    y: List[Optional[float]] = Field(default_factory=list)
    label: Optional[str] = None


class PivotMarker(BaseModel):
    x: str
    y: Optional[float] = None
    label: str
    projected: bool = Field(
        default=False, description="False when the last bar time could not be parsed"
    )


class Chart(BaseModel):
    interval: str
    series: List[ChartSeries] = Field(default_factory=list)
    next_pivot: Optional[PivotMarker] = None


class ConsensusView(BaseModel):
    type: Optional[str] = None
    avg_entry: Optional[float] = None
    avg_exit: Optional[float] = None
    risk_reward: Optional[float] = None


class IntervalDetail(BaseModel):
    """Detail card for the selected interval; ``None`` renders as a placeholder."""

    has_prediction: bool = False
    pivot_type: Optional[str] = None
    macd_agrees: bool = False
    confidence_pct: Optional[float] = None
    target_price: Optional[float] = None
    projected_time_et: Optional[str] = None
    entry: Optional[float] = None
    exit_target: Optional[float] = None
    support: Optional[float] = None
    resistance: Optional[float] = None
    risk_reward: Optional[float] = None
    is_valid: bool = False
    latest_price: Optional[float] = None
    latest_timestamp: Optional[str] = None
    atr: Optional[float] = None
    atr_ratio_pct: Optional[float] = None
    low_volatility: bool = False


class ConvergencePanel(BaseModel):
    """SPY/QQQ convergence box, shown only when a 15m result exists."""

    available: bool = False
    spy_pct_change: Optional[float] = None
    qqq_pct_change: Optional[float] = None
    status: Optional[ConvergenceStatus] = None
    leader: Optional[str] = None
    leader_direction: Optional[LeaderDirection] = None
    signal_agrees_with_leader: Optional[bool] = None


class DashboardView(BaseModel):
    symbol: str
    interval: str
    intervals: List[str]
    is_user_loading: bool = False
    is_auto_refreshing: bool = False
    fetched_at: Optional[datetime] = None
    has_data: bool = False
    consensus: Optional[ConsensusView] = None
    detail: IntervalDetail = Field(default_factory=IntervalDetail)
    chart: Chart
    convergence: Optional[ConvergencePanel] = None


class SnapshotOut(BaseModel):
    symbol: str
    foreground_in_flight: bool
    background_in_flight: bool
    sequence: int
    applied_sequence: Optional[int] = None
    trigger: Optional[str] = None
    fetched_at: Optional[datetime] = None
    has_data: bool = False
    data: Optional[Dict[str, Any]] = None
    error_counts: Dict[str, int] = Field(default_factory=dict)


class MarketStatus(BaseModel):
    market_time: datetime
    timezone: str
    session_open: bool
    refresh_window_open: bool


class ProjectionOut(BaseModel):
    last: str
    interval: Optional[str] = None
    offset_minutes: int
    next: str


class SymbolUpdate(BaseModel):
    """Ticker change request; trimmed and upper-cased by the scheduler."""

    symbol: str


__all__ = [
    "ChartSeries",
    "PivotMarker",
    "Chart",
    "ConsensusView",
    "IntervalDetail",
    "ConvergencePanel",
    "DashboardView",
    "SnapshotOut",
    "MarketStatus",
    "ProjectionOut",
    "SymbolUpdate",
]
