"""Market-aware polling of the prediction backend.

The scheduler owns one recurring tick task. Every ``TICK_SECONDS`` it asks the
market clock whether the refresh window (09:25-16:05 market time) is open and,
if so, starts a background refresh. User actions (manual refresh, ticker
change) refresh immediately and ignore the window.

Refreshes are never serialised: a slow background fetch may still be running
when a user refresh starts. Each fetch is numbered when issued, and a result
is only stored if no newer fetch has been issued in the meantime, so the
snapshot always reflects the most recently *requested* data. Superseded
fetches are allowed to finish; their outcome is dropped.

A tick never starts a background refresh while another one (including the
initial load) is still running, so a backend slower than the tick cannot keep
superseding its own results.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional, Set

from pivot_dashboard.schemas.prediction import PredictionResponse
from pivot_dashboard.services.market_clock import MarketSessionClock, get_market_clock
from pivot_dashboard.services.prediction_client import PredictionFetchError

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[PredictionResponse]]


class RefreshTrigger(str, Enum):
    USER = "user"
    BACKGROUND = "background"


@dataclass(frozen=True)
class RefreshSnapshot:
    """The latest applied refresh. ``data`` is None when that refresh failed."""

    symbol: str
    trigger: RefreshTrigger
    sequence: int
    fetched_at: datetime
    data: Optional[PredictionResponse]


def normalize_symbol(symbol: str) -> str:
    """Trim and upper-case a ticker; raise ``ValueError`` when nothing is left."""
    norm = (symbol or "").strip().upper()
    if not norm:
        raise ValueError("symbol must not be empty")
    return norm


class RefreshScheduler:
    TICK_SECONDS = 10

    def __init__(
        self,
        fetch: Fetcher,
        *,
        symbol: str = "SPY",
        clock: Optional[MarketSessionClock] = None,
    ):
        self._fetch = fetch
        self.symbol = normalize_symbol(symbol)
        self.clock = clock or get_market_clock()

        self.running = False
        self._tick_task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

        self._sequence = 0
        self._snapshot: Optional[RefreshSnapshot] = None
        self._in_flight = {RefreshTrigger.USER: 0, RefreshTrigger.BACKGROUND: 0}

    # -- state -----------------------------------------------------------

    @property
    def foreground_in_flight(self) -> bool:
        return self._in_flight[RefreshTrigger.USER] > 0

    @property
    def background_in_flight(self) -> bool:
        return self._in_flight[RefreshTrigger.BACKGROUND] > 0

    @property
    def snapshot(self) -> Optional[RefreshSnapshot]:
        return self._snapshot

    @property
    def data(self) -> Optional[PredictionResponse]:
        return self._snapshot.data if self._snapshot else None

    @property
    def sequence(self) -> int:
        """Number of the most recently issued fetch."""
        return self._sequence

    # -- lifecycle -------------------------------------------------------

    async def start(self) -> None:
        """Kick off the initial load and arm the recurring tick."""
        if self.running:
            return

        self.running = True
        logger.info(f"Starting refresh scheduler for {self.symbol} (every {self.TICK_SECONDS}s)")

        # The initial load ignores the refresh window
        self._spawn(RefreshTrigger.BACKGROUND)
        self._tick_task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the tick and any fetch still in flight."""
        self.running = False
        if self._tick_task:
            self._tick_task.cancel()
            try:
                await self._tick_task
            except asyncio.CancelledError:
                pass
            self._tick_task = None

        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Refresh scheduler stopped")

    async def __aenter__(self) -> "RefreshScheduler":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.stop()
        return False

    async def drain(self) -> None:
        """Wait for every background fetch currently in flight."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # -- triggers --------------------------------------------------------

    def tick(self, now: Optional[datetime] = None) -> bool:
        """Run one scheduling decision; True when a background refresh was started."""
        if not self.clock.is_session_open_for_refresh(now):
            logger.debug("Refresh window closed, skipping background refresh")
            return False
        if self._pending:
            logger.debug("Background refresh still running, skipping tick")
            return False
        self._spawn(RefreshTrigger.BACKGROUND)
        return True

    async def refresh_now(self) -> Optional[RefreshSnapshot]:
        """User-initiated refresh; runs regardless of the market window."""
        await self._refresh(RefreshTrigger.USER)
        return self._snapshot

    async def set_symbol(self, symbol: str) -> Optional[RefreshSnapshot]:
        """Switch ticker and refresh for it immediately."""
        self.symbol = normalize_symbol(symbol)
        logger.info(f"Ticker changed to {self.symbol}")
        return await self.refresh_now()

    # -- internals -------------------------------------------------------

    async def _run(self) -> None:
        while self.running:
            try:
                await asyncio.sleep(self.TICK_SECONDS)
                self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Refresh tick failed: {e}")

    def _spawn(self, trigger: RefreshTrigger) -> asyncio.Task:
        task = asyncio.create_task(self._refresh(trigger))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _refresh(self, trigger: RefreshTrigger) -> bool:
        self._sequence += 1
        sequence = self._sequence
        symbol = self.symbol

        data: Optional[PredictionResponse] = None
        self._in_flight[trigger] += 1
        try:
            data = await self._fetch(symbol)
        except PredictionFetchError as e:
            logger.warning(f"{trigger.value} refresh #{sequence} failed: {e}")
        except Exception:
            logger.exception(f"{trigger.value} refresh #{sequence} for {symbol} raised unexpectedly")
        finally:
            self._in_flight[trigger] -= 1

        return self._apply(sequence, trigger, symbol, data)

    def _apply(
        self,
        sequence: int,
        trigger: RefreshTrigger,
        symbol: str,
        data: Optional[PredictionResponse],
    ) -> bool:
        if sequence != self._sequence:
            logger.info(
                f"Dropping {trigger.value} refresh #{sequence} for {symbol}; "
                f"#{self._sequence} was issued after it"
            )
            return False

        self._snapshot = RefreshSnapshot(
            symbol=symbol,
            trigger=trigger,
            sequence=sequence,
            fetched_at=datetime.now(timezone.utc),
            data=data,
        )
        return True


__all__ = ["RefreshScheduler", "RefreshSnapshot", "RefreshTrigger", "normalize_symbol", "Fetcher"]
