"""Market session clock for US equities.

Two questions are answered here:

* Should a background refresh run right now? Refreshes are allowed from
  09:25 to 16:05 market-local time (inclusive), i.e. the regular session
  padded by five minutes on each side.
* Where on the time axis does the next predicted pivot go? The last observed
  bar time is shifted by an interval-dependent offset and snapped into the
  09:30-16:00 session.

Design: Weekends and exchange holidays are not modelled. A projection that
lands after the close moves to 09:30 on the *next calendar day*, whatever day
that is, and only one day is ever added.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

from pivot_dashboard.core.config import settings

logger = logging.getLogger(__name__)

MARKET_OPEN_HOUR = 9
MARKET_OPEN_MINUTE = 30
MARKET_CLOSE_HOUR = 16
MARKET_CLOSE_MINUTE = 0

# Background refresh window: 09:25 - 16:05 (minutes since midnight, inclusive)
REFRESH_WINDOW_START = 9 * 60 + 25   # 565
REFRESH_WINDOW_END = 16 * 60 + 5     # 965

# How far ahead of the last bar the next pivot is drawn, per interval
PIVOT_OFFSET_MINUTES: Dict[str, int] = {
    "5m": 60,
    "15m": 60,
    "1h": 900,
}

BAR_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarketSessionClock:
    """Session-window arithmetic in the market's local time zone.

    Aware datetimes are converted to the market zone before any wall-clock
    test. Naive datetimes are taken to already be market-local wall time,
    which is how the backend stamps OHLCV rows.
    """

    def __init__(self, tz: ZoneInfo | str = "America/New_York", now: Callable[[], datetime] = _utcnow):
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self._now = now

    def now(self) -> datetime:
        """Current instant in the market zone."""
        return self.to_market_time(self._now())

    def to_market_time(self, instant: datetime) -> datetime:
        if instant.tzinfo is None:
            return instant.replace(tzinfo=self.tz)
        return instant.astimezone(self.tz)

    def minutes_since_midnight(self, instant: datetime) -> int:
        local = self.to_market_time(instant)
        return local.hour * 60 + local.minute

    def is_session_open_for_refresh(self, now: Optional[datetime] = None) -> bool:
        """True iff ``now`` falls within 09:25-16:05 market time, both ends included."""
        minutes = self.minutes_since_midnight(now if now is not None else self._now())
        return REFRESH_WINDOW_START <= minutes <= REFRESH_WINDOW_END

    def is_session_open(self, now: Optional[datetime] = None) -> bool:
        """Unpadded 09:30-16:00 test, with the same boundaries as the projection."""
        local = self.to_market_time(now if now is not None else self._now())
        return not (_is_past_close(local) or _is_before_open(local))

    def next_session_instant(self, last: datetime, offset_minutes: int) -> datetime:
        """Shift ``last`` by ``offset_minutes`` and snap the result into the session.

        A candidate after 16:00 moves to 09:30 on the following calendar day; a
        candidate before 09:30 moves to 09:30 the same day. Exactly 16:00 and
        exactly 09:30 are inside the session. The result keeps the kind of the
        input: naive in, naive (market wall time) out; aware in, aware in the
        market zone out.

        >>> clock = MarketSessionClock()
        >>> clock.next_session_instant(datetime(2024, 6, 3, 15, 50), 60)
        datetime.datetime(2024, 6, 4, 9, 30)
        """
        delta = timedelta(minutes=offset_minutes)
        if last.tzinfo is None:
            candidate = last + delta
            tzinfo = None
        else:
            # Offset is absolute time; DST changes must not stretch it.
            candidate = (last.astimezone(timezone.utc) + delta).astimezone(self.tz)
            tzinfo = self.tz

        if _is_past_close(candidate):
            next_day = candidate.date() + timedelta(days=1)
            candidate = datetime.combine(
                next_day, time(MARKET_OPEN_HOUR, MARKET_OPEN_MINUTE), tzinfo=tzinfo
            )

        if _is_before_open(candidate):
            candidate = candidate.replace(
                hour=MARKET_OPEN_HOUR, minute=MARKET_OPEN_MINUTE, second=0, microsecond=0
            )

        return candidate

    def project_pivot_time(self, last: datetime, interval: str) -> datetime:
        """Place the next-pivot marker for ``interval``; unknown intervals stay at ``last``."""
        offset = PIVOT_OFFSET_MINUTES.get(interval)
        if offset is None:
            return last
        return self.next_session_instant(last, offset)

    def format_bar_timestamp(self, instant: datetime) -> str:
        if instant.tzinfo is not None:
            instant = instant.astimezone(self.tz)
        return instant.strftime(BAR_TIMESTAMP_FORMAT)


def _is_past_close(instant: datetime) -> bool:
    return instant.hour > MARKET_CLOSE_HOUR or (
        instant.hour == MARKET_CLOSE_HOUR and instant.minute > MARKET_CLOSE_MINUTE
    )


def _is_before_open(instant: datetime) -> bool:
    return instant.hour < MARKET_OPEN_HOUR or (
        instant.hour == MARKET_OPEN_HOUR and instant.minute < MARKET_OPEN_MINUTE
    )


def parse_bar_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an OHLCV ``Date`` string; ``None`` when it is missing or malformed."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip().replace(" ", "T", 1))
    except (TypeError, ValueError):
        logger.debug(f"Unparseable bar timestamp: {value!r}")
        return None


@lru_cache(maxsize=4)
def get_market_clock(tz_name: Optional[str] = None) -> MarketSessionClock:
    """Shared clock for the configured market time zone."""
    return MarketSessionClock(tz_name or settings.MARKET_TIMEZONE)


__all__ = [
    "MARKET_OPEN_HOUR",
    "MARKET_OPEN_MINUTE",
    "MARKET_CLOSE_HOUR",
    "MARKET_CLOSE_MINUTE",
    "REFRESH_WINDOW_START",
    "REFRESH_WINDOW_END",
    "PIVOT_OFFSET_MINUTES",
    "BAR_TIMESTAMP_FORMAT",
    "MarketSessionClock",
    "parse_bar_timestamp",
    "get_market_clock",
]
