from fastapi import APIRouter

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness probe; does not touch the prediction backend."""
    return {"status": "ok"}
