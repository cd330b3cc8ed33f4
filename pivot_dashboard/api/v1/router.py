from fastapi import APIRouter

from .dashboard import router as dashboard_router
from .market import router as market_router

router = APIRouter(prefix="/v1")
router.include_router(dashboard_router)
router.include_router(market_router)


@router.get("/health")
async def v1_health() -> dict:
    """Simple v1 health endpoint for platform health checks."""
    return {"status": "ok", "service": "Pivot Dashboard API", "scope": "v1"}
