"""Request and response models for the prediction backend.

Every response field is optional: the dashboard renders placeholders for
anything the backend leaves out, so only structurally wrong payloads (wrong
types, non-object bodies) fail validation. Unknown fields are kept, and an
unrecognised convergence label reads as missing.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

INTERVALS: List[str] = ["5m", "15m", "1h"]
PERIOD_MAP: Dict[str, str] = {"5m": "30d", "15m": "30d", "1h": "60d"}


class ConvergenceStatus(str, Enum):
    CONVERGENT = "convergent"
    DIVERGENT = "divergent"
    NEUTRAL = "neutral"


class LeaderDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class PredictionRequest(BaseModel):
    """Body POSTed to the prediction endpoint."""

    symbol: str
    intervals: List[str] = Field(default_factory=lambda: list(INTERVALS))
    period_map: Dict[str, str] = Field(default_factory=lambda: dict(PERIOD_MAP))


class OhlcvBar(_Lenient):
    """One OHLCV row; ``Date`` is ``YYYY-MM-DD HH:MM:SS`` market-local time."""

    date: Optional[str] = Field(default=None, alias="Date")
    open: Optional[float] = Field(default=None, alias="Open")
    high: Optional[float] = Field(default=None, alias="High")
    low: Optional[float] = Field(default=None, alias="Low")
    close: Optional[float] = Field(default=None, alias="Close")
    volume: Optional[float] = Field(default=None, alias="Volume")


class PivotPrediction(_Lenient):
    predicted_type_name: Optional[str] = None
    confidence: Optional[float] = None
    estimated_value: Optional[float] = None


class Consensus(_Lenient):
    type: Optional[str] = None
    avg_entry: Optional[float] = None
    avg_exit: Optional[float] = None
    risk_reward: Optional[float] = None


class IntervalResult(_Lenient):
    """Backend output for a single interval label."""

    ohlcv: List[OhlcvBar] = Field(default_factory=list)
    peaks: List[int] = Field(default_factory=list)
    troughs: List[int] = Field(default_factory=list)
    prediction: Optional[PivotPrediction] = None
    entry: Optional[float] = None
    exit_target: Optional[float] = None
    support: Optional[float] = None
    resistance: Optional[float] = None
    risk_reward: Optional[float] = None
    is_valid: Optional[bool] = None
    latest_price: Optional[float] = None
    latest_timestamp: Optional[str] = None
    atr: Optional[float] = None
    atr_ratio: Optional[float] = None
    low_volatility: Optional[bool] = None
    macd_tick: Optional[bool] = None
    projected_time_et: Optional[str] = None

    # Only populated on the 15m interval
    spy_pct_change: Optional[float] = None
    qqq_pct_change: Optional[float] = None
    convergence_status: Optional[ConvergenceStatus] = None
    leader: Optional[str] = None
    leader_direction: Optional[LeaderDirection] = None
    signal_agrees_with_leader: Optional[bool] = None

    @field_validator("convergence_status", "leader_direction", mode="before")
    @classmethod
    def _unknown_label_to_none(cls, v, info):
        enum = ConvergenceStatus if info.field_name == "convergence_status" else LeaderDirection
        if isinstance(v, str) and v not in {m.value for m in enum}:
            return None
        return v


class PredictionResponse(_Lenient):
    consensus: Optional[Consensus] = None
    intervals: Dict[str, IntervalResult] = Field(default_factory=dict)

    def interval(self, label: str) -> IntervalResult:
        """Return the result for ``label``, or an empty result when absent."""
        return self.intervals.get(label) or IntervalResult()


__all__ = [
    "INTERVALS",
    "PERIOD_MAP",
    "ConvergenceStatus",
    "LeaderDirection",
    "PredictionRequest",
    "OhlcvBar",
    "PivotPrediction",
    "Consensus",
    "IntervalResult",
    "PredictionResponse",
]
