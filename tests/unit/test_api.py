from datetime import datetime, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from pivot_dashboard.core.config import settings
from pivot_dashboard.main import app
from pivot_dashboard.services.prediction_client import PredictionClient, PredictionFetchError
from pivot_dashboard.services.refresh_scheduler import RefreshScheduler

NY = ZoneInfo("America/New_York")


@pytest.fixture
def scheduler(clock, sample_response, override_dependencies):
    sched = RefreshScheduler(AsyncMock(return_value=sample_response), clock=clock)
    override_dependencies(scheduler=sched, clock=clock)
    return sched


@pytest.mark.asyncio
async def test_healthz_endpoint(api_client):
    response = await api_client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_root_and_v1_health(api_client):
    assert (await api_client.get("/")).json()["status"] == "ok"
    assert (await api_client.get("/v1/health")).json()["scope"] == "v1"


@pytest.mark.asyncio
async def test_snapshot_before_first_refresh(api_client, scheduler):
    response = await api_client.get("/v1/snapshot")

    assert response.status_code == 200
    body = response.json()
    assert body["symbol"] == "SPY"
    assert body["has_data"] is False
    assert body["sequence"] == 0
    assert body["data"] is None
    assert isinstance(body["error_counts"], dict)
    assert body["foreground_in_flight"] is False
    assert body["background_in_flight"] is False


@pytest.mark.asyncio
async def test_refresh_returns_snapshot(api_client, scheduler):
    response = await api_client.post("/v1/refresh")

    assert response.status_code == 200
    body = response.json()
    assert body["has_data"] is True
    assert body["trigger"] == "user"
    assert body["sequence"] == 1
    assert body["applied_sequence"] == 1
    assert body["data"]["intervals"]["15m"]["ohlcv"][0]["Date"] == "2024-06-03 15:15:00"
    assert body["data"]["intervals"]["15m"]["convergence_status"] == "divergent"


@pytest.mark.asyncio
async def test_refresh_runs_outside_market_window(api_client, scheduler, fake_now):
    fake_now.instant = datetime(2024, 6, 1, 3, 0, tzinfo=NY)

    response = await api_client.post("/v1/refresh")

    assert response.json()["has_data"] is True


@pytest.mark.asyncio
async def test_refresh_failure_reports_absent_data(api_client, clock, override_dependencies):
    fetch = AsyncMock(side_effect=PredictionFetchError("SPY", "transport", "down"))
    override_dependencies(scheduler=RefreshScheduler(fetch, clock=clock), clock=clock)

    response = await api_client.post("/v1/refresh")

    assert response.status_code == 200
    assert response.json()["has_data"] is False
    assert response.json()["data"] is None


@pytest.mark.asyncio
async def test_change_symbol(api_client, scheduler):
    response = await api_client.put("/v1/symbol", json={"symbol": "  qqq "})

    assert response.status_code == 200
    assert response.json()["symbol"] == "QQQ"
    scheduler._fetch.assert_awaited_once_with("QQQ")


@pytest.mark.asyncio
async def test_change_symbol_rejects_blank(api_client, scheduler):
    response = await api_client.put("/v1/symbol", json={"symbol": "   "})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_SYMBOL"
    assert scheduler.symbol == "SPY"
    scheduler._fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_change_symbol_requires_symbol_field(api_client, scheduler):
    response = await api_client.put("/v1/symbol", json={})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "422"


@pytest.mark.asyncio
async def test_dashboard_view(api_client, scheduler):
    await api_client.post("/v1/refresh")

    response = await api_client.get("/v1/dashboard", params={"interval": "15m"})

    assert response.status_code == 200
    body = response.json()
    assert body["interval"] == "15m"
    assert body["detail"]["confidence_pct"] == 87.5
    assert body["chart"]["next_pivot"]["x"] == "2024-06-04 09:30:00"
    assert body["convergence"]["status"] == "divergent"


@pytest.mark.asyncio
async def test_dashboard_defaults_to_15m(api_client, scheduler):
    response = await api_client.get("/v1/dashboard")
    assert response.json()["interval"] == "15m"


@pytest.mark.asyncio
async def test_dashboard_rejects_unknown_interval(api_client, scheduler):
    response = await api_client.get("/v1/dashboard", params={"interval": "2h"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INTERVAL"


@pytest.mark.asyncio
async def test_scheduler_unavailable(api_client):
    app.state.scheduler = None
    response = await api_client.get("/v1/snapshot")

    assert response.status_code == 503
    assert response.json() == {
        "error": {"code": "SCHEDULER_UNAVAILABLE", "message": "Refresh scheduler is not running"}
    }


@pytest.mark.asyncio
async def test_market_status(api_client, fake_now, clock, override_dependencies):
    override_dependencies(clock=clock)
    fake_now.instant = datetime(2024, 6, 3, 20, 6, tzinfo=timezone.utc)  # 16:06 EDT

    body = (await api_client.get("/v1/market/status")).json()

    assert body["timezone"] == "America/New_York"
    assert body["session_open"] is False
    assert body["refresh_window_open"] is False
    assert body["market_time"].startswith("2024-06-03T16:06:00")


@pytest.mark.asyncio
@pytest.mark.parametrize("params,expected", [
    ({"last": "2024-06-03 15:50:00", "interval": "15m"}, "2024-06-04 09:30:00"),
    ({"last": "2024-06-03 08:00:00"}, "2024-06-03 09:30:00"),
    ({"last": "2024-06-03 10:00:00", "offset_minutes": 30}, "2024-06-03 10:30:00"),
    ({"last": "2024-06-03 10:00:00", "interval": "1h", "offset_minutes": 0}, "2024-06-03 10:00:00"),
])
async def test_projection(api_client, params, expected):
    response = await api_client.get("/v1/market/projection", params=params)

    assert response.status_code == 200
    assert response.json()["next"] == expected


@pytest.mark.asyncio
async def test_projection_rejects_bad_timestamp(api_client):
    response = await api_client.get("/v1/market/projection", params={"last": "soon"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_TIMESTAMP"


@pytest.mark.asyncio
async def test_projection_rejects_unknown_interval(api_client):
    response = await api_client.get(
        "/v1/market/projection", params={"last": "2024-06-03 10:00:00", "interval": "4h"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INTERVAL"


def test_lifespan_without_scheduler(monkeypatch):
    monkeypatch.setattr(settings, "ENABLE_SCHEDULER", False)

    with TestClient(app) as client:
        response = client.get("/v1/snapshot")

    assert response.status_code == 503


def test_lifespan_starts_and_stops_scheduler(monkeypatch, mocker, sample_response):
    monkeypatch.setattr(settings, "ENABLE_SCHEDULER", True)
    predict = mocker.patch.object(PredictionClient, "predict", AsyncMock(return_value=sample_response))

    with TestClient(app) as client:
        scheduler = app.state.scheduler
        assert scheduler.running is True
        body = client.post("/v1/refresh").json()
        assert body["has_data"] is True

    assert scheduler.running is False
    assert app.state.scheduler is None
    predict.assert_any_await(settings.DEFAULT_SYMBOL)
