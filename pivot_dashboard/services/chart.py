"""Chart annotation series for one interval.

Produces the close-price line, peak/trough markers, the projected next-pivot
marker and the horizontal support/entry/resistance levels. Styling is left to
the frontend; only names, modes and coordinates are produced here.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import pandas as pd

from pivot_dashboard.schemas.dashboard import Chart, ChartSeries, PivotMarker
from pivot_dashboard.schemas.prediction import IntervalResult, OhlcvBar
from pivot_dashboard.services.market_clock import MarketSessionClock, parse_bar_timestamp

logger = logging.getLogger(__name__)

OHLCV_COLUMNS = ["Date", "Close"]


def ohlcv_frame(bars: List[OhlcvBar]) -> pd.DataFrame:
    """Date/Close frame for ``bars`` in backend order, with a 0..n-1 index."""
    if not bars:
        return pd.DataFrame(columns=OHLCV_COLUMNS)
    rows = [bar.model_dump(by_alias=True) for bar in bars]
    return pd.DataFrame(rows).reindex(columns=OHLCV_COLUMNS).reset_index(drop=True)


def _as_list(column: pd.Series) -> list:
    # NaN -> None so the values serialise as JSON null
    return column.astype(object).where(column.notna(), None).tolist()


def _marker_series(name: str, frame: pd.DataFrame, indices: List[int]) -> Optional[ChartSeries]:
    valid = [i for i in indices if 0 <= i < len(frame)]
    if len(valid) != len(indices):
        logger.debug(f"{name}: skipped {len(indices) - len(valid)} indices outside the OHLCV range")
    if not valid:
        return None
    picked = frame.iloc[valid]
    return ChartSeries(name=name, mode="markers", x=_as_list(picked["Date"]), y=_as_list(picked["Close"]))


def next_pivot_marker(
    result: IntervalResult,
    interval: str,
    clock: MarketSessionClock,
    frame: Optional[pd.DataFrame] = None,
) -> Optional[PivotMarker]:
    """Marker for the predicted pivot, placed after the last bar on the session axis.

    When the last bar's timestamp cannot be parsed the marker stays on that
    raw value instead.
    """
    prediction = result.prediction
    if prediction is None or not result.ohlcv:
        return None
    if frame is None:
        frame = ohlcv_frame(result.ohlcv)

    last_value = frame["Date"].iloc[-1]
    last_raw = None if pd.isna(last_value) else str(last_value)
    x = last_raw or ""
    projected = False
    last = parse_bar_timestamp(last_raw)
    if last is not None:
        x = clock.format_bar_timestamp(clock.project_pivot_time(last, interval))
        projected = True

    confidence = f"{prediction.confidence * 100:.1f}%" if prediction.confidence is not None else "-"
    price = f"${prediction.estimated_value:.2f}" if prediction.estimated_value is not None else "-"
    label = f"{prediction.predicted_type_name or 'Pivot'} (Conf: {confidence}) Price: {price}"

    return PivotMarker(x=x, y=prediction.estimated_value, label=label, projected=projected)


def build_chart(result: IntervalResult, interval: str, clock: MarketSessionClock) -> Chart:
    frame = ohlcv_frame(result.ohlcv)
    dates = _as_list(frame["Date"])

    series: List[ChartSeries] = [
        ChartSeries(name="Close Price", mode="lines", x=dates, y=_as_list(frame["Close"]))
    ]
    for name, indices in (("Peaks", result.peaks), ("Troughs", result.troughs)):
        markers = _marker_series(name, frame, indices)
        if markers is not None:
            series.append(markers)

    marker = next_pivot_marker(result, interval, clock, frame)
    if marker is not None:
        series.append(
            ChartSeries(name="Next Pivot", mode="markers", x=[marker.x], y=[marker.y], label=marker.label)
        )

    for name, level in (
        ("Support", result.support),
        ("Entry", result.entry),
        ("Resistance", result.resistance),
    ):
        if level is not None:
            series.append(ChartSeries(name=name, mode="lines", x=dates, y=[level] * len(dates)))

    return Chart(interval=interval, series=series, next_pivot=marker)


__all__ = ["ohlcv_frame", "next_pivot_marker", "build_chart"]
