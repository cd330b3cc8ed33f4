from __future__ import annotations

import asyncio
import json
from typing import Optional

import typer

from pivot_dashboard.core.config import settings
from pivot_dashboard.services.market_clock import (
    PIVOT_OFFSET_MINUTES,
    get_market_clock,
    parse_bar_timestamp,
)
from pivot_dashboard.services.prediction_client import PredictionClient, PredictionFetchError
from pivot_dashboard.services.refresh_scheduler import normalize_symbol

app = typer.Typer(help="Pivot dashboard management commands")


@app.command("market-status")
def market_status() -> None:
    """Print market-local time and whether the session / refresh window is open."""
    clock = get_market_clock(settings.MARKET_TIMEZONE)
    now = clock.now()
    typer.echo(f"market time:  {clock.format_bar_timestamp(now)} ({clock.tz})")
    typer.echo(f"session open: {'yes' if clock.is_session_open(now) else 'no'}")
    typer.echo(f"refresh open: {'yes' if clock.is_session_open_for_refresh(now) else 'no'}")


@app.command("project-time")
def project_time(
    last: str = typer.Argument(..., help="Bar timestamp, YYYY-MM-DD HH:MM:SS"),
    offset: Optional[int] = typer.Option(None, "--offset", "-o", min=0, help="Offset in minutes"),
    interval: Optional[str] = typer.Option(None, "--interval", "-i", help="5m, 15m or 1h"),
) -> None:
    """Project the next-pivot time for a bar timestamp."""
    parsed = parse_bar_timestamp(last)
    if parsed is None:
        typer.echo(f"Cannot parse timestamp: {last}", err=True)
        raise typer.Exit(code=2)
    if offset is None:
        if interval is not None and interval not in PIVOT_OFFSET_MINUTES:
            typer.echo(f"Unknown interval: {interval}", err=True)
            raise typer.Exit(code=2)
        offset = PIVOT_OFFSET_MINUTES.get(interval, 0) if interval else 0

    clock = get_market_clock(settings.MARKET_TIMEZONE)
    typer.echo(clock.format_bar_timestamp(clock.next_session_instant(parsed, offset)))


async def _fetch_once(symbol: str) -> dict:
    client = PredictionClient(settings)
    try:
        response = await client.predict(symbol)
    finally:
        await client.aclose()
    return response.model_dump(mode="json", by_alias=True, exclude_none=True)


@app.command("fetch")
def fetch(symbol: str = typer.Argument("SPY")) -> None:
    """Fetch predictions once and print the JSON response."""
    try:
        norm = normalize_symbol(symbol)
    except ValueError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    try:
        data = asyncio.run(_fetch_once(norm))
    except PredictionFetchError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(data, indent=2))


def main() -> None:  # pragma: no cover - entrypoint wrapper
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
