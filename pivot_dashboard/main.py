from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from pivot_dashboard.api.errors import init_error_handlers
from pivot_dashboard.api.v1.health import router as health_router
from pivot_dashboard.api.v1.router import router as v1_router
from pivot_dashboard.core.config import settings
from pivot_dashboard.core.cors import create_cors_middleware
from pivot_dashboard.core.logging import configure_logging, logger
from pivot_dashboard.services.market_clock import get_market_clock
from pivot_dashboard.services.prediction_client import PredictionClient
from pivot_dashboard.services.refresh_scheduler import RefreshScheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the prediction client and refresh scheduler for the app's lifetime."""
    app.state.scheduler = None
    client = PredictionClient(settings)
    try:
        logger.info("Starting application...")

        if settings.ENABLE_SCHEDULER:
            scheduler = RefreshScheduler(
                client.predict,
                symbol=settings.DEFAULT_SYMBOL,
                clock=get_market_clock(settings.MARKET_TIMEZONE),
            )
            await scheduler.start()
            app.state.scheduler = scheduler
        else:
            logger.info("Refresh scheduler disabled (ENABLE_SCHEDULER=False)")

        yield

    finally:
        logger.info("Shutting down application...")
        if app.state.scheduler is not None:
            await app.state.scheduler.stop()
            app.state.scheduler = None
        await client.aclose()


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)
init_error_handlers(app)

configure_logging(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

cors = create_cors_middleware(settings)
if cors:
    cls, kwargs = cors
    app.add_middleware(cls, **kwargs)

app.include_router(health_router)
app.include_router(v1_router)


@app.get("/")
async def root() -> dict:
    """Root endpoint useful for platform pings and quick checks."""
    return {"status": "ok", "service": "Pivot Dashboard API"}
