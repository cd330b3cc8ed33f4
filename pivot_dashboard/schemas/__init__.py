from .dashboard import (
    Chart,
    ChartSeries,
    ConsensusView,
    ConvergencePanel,
    DashboardView,
    IntervalDetail,
    MarketStatus,
    PivotMarker,
    ProjectionOut,
    SnapshotOut,
    SymbolUpdate,
)
from .prediction import (
    INTERVALS,
    PERIOD_MAP,
    Consensus,
    ConvergenceStatus,
    IntervalResult,
    LeaderDirection,
    OhlcvBar,
    PivotPrediction,
    PredictionRequest,
    PredictionResponse,
)

__all__ = [
    "INTERVALS",
    "PERIOD_MAP",
    "Chart",
    "ChartSeries",
    "Consensus",
    "ConsensusView",
    "ConvergencePanel",
    "ConvergenceStatus",
    "DashboardView",
    "IntervalDetail",
    "IntervalResult",
    "LeaderDirection",
    "MarketStatus",
    "OhlcvBar",
    "PivotMarker",
    "PivotPrediction",
    "PredictionRequest",
    "PredictionResponse",
    "ProjectionOut",
    "SnapshotOut",
    "SymbolUpdate",
]
