import asyncio
import copy
from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pivot_dashboard.api.deps import get_clock, get_scheduler
from pivot_dashboard.main import app
from pivot_dashboard.schemas.prediction import PredictionResponse
from pivot_dashboard.services.market_clock import MarketSessionClock

NY = ZoneInfo("America/New_York")

SAMPLE_PAYLOAD: dict[str, Any] = {
    "consensus": {"type": "Bullish", "avg_entry": 530.12, "avg_exit": 534.5, "risk_reward": 2.1},
    "intervals": {
        "5m": {
            "ohlcv": [
                {"Date": "2024-06-03 15:45:00", "Close": 531.0},
                {"Date": "2024-06-03 15:50:00", "Close": 531.4},
            ],
            "peaks": [1],
            "troughs": [],
            "prediction": {"predicted_type_name": "Peak", "confidence": 0.61, "estimated_value": 532.0},
            "is_valid": False,
        },
        "15m": {
            "ohlcv": [
                {"Date": "2024-06-03 15:15:00", "Open": 529.0, "Close": 529.5, "Volume": 1200},
                {"Date": "2024-06-03 15:30:00", "Open": 529.5, "Close": 531.25, "Volume": 900},
                {"Date": "2024-06-03 15:45:00", "Open": 531.25, "Close": 530.0, "Volume": 1500},
            ],
            "peaks": [1, 7],
            "troughs": [0],
            "prediction": {"predicted_type_name": "Trough", "confidence": 0.875, "estimated_value": 528.4},
            "entry": 530.1,
            "exit_target": 534.0,
            "support": 528.0,
            "resistance": 535.0,
            "risk_reward": 1.8,
            "is_valid": True,
            "latest_price": 530.0,
            "latest_timestamp": "2024-06-03 15:45:00",
            "atr": 1.2345,
            "atr_ratio": 0.0015,
            "low_volatility": True,
            "macd_tick": True,
            "projected_time_et": "2024-06-04 09:45",
            "spy_pct_change": 0.0012,
            "qqq_pct_change": -0.0008,
            "convergence_status": "divergent",
            "leader": "QQQ",
            "leader_direction": "down",
            "signal_agrees_with_leader": True,
        },
        "1h": {
            "ohlcv": [{"Date": "2024-06-03 15:00:00", "Close": 530.8}],
            "peaks": [],
            "troughs": [],
        },
    },
}


class FakeNow:
    """Settable ``now`` source for MarketSessionClock."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def __call__(self) -> datetime:
        return self.instant


class GatedFetcher:
    """Fetcher whose calls block until the test releases them, one by one."""

    def __init__(self):
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, symbol: str) -> PredictionResponse:
        call = {"symbol": symbol, "gate": asyncio.Event(), "result": None, "error": None}
        self.calls.append(call)
        await call["gate"].wait()
        if call["error"] is not None:
            raise call["error"]
        return call["result"]

    def release(self, index: int, result: Optional[PredictionResponse] = None, error: Optional[Exception] = None) -> None:
        call = self.calls[index]
        call["result"] = result
        call["error"] = error
        call["gate"].set()


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def sample_response(sample_payload) -> PredictionResponse:
    return PredictionResponse.model_validate(sample_payload)


@pytest.fixture
def fake_now() -> FakeNow:
    # Monday, mid-session
    return FakeNow(datetime(2024, 6, 3, 10, 0, tzinfo=NY))


@pytest.fixture
def clock(fake_now) -> MarketSessionClock:
    return MarketSessionClock("America/New_York", now=fake_now)


@pytest.fixture
def gated_fetcher() -> GatedFetcher:
    return GatedFetcher()


@pytest_asyncio.fixture
async def api_client():
    """HTTP client bound to the app without running its lifespan."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def override_dependencies():
    """Point the scheduler/clock dependencies at test instances."""

    def _override(scheduler=None, clock=None) -> None:
        if scheduler is not None:
            app.dependency_overrides[get_scheduler] = lambda: scheduler
        if clock is not None:
            app.dependency_overrides[get_clock] = lambda: clock

    yield _override
    app.dependency_overrides.clear()
