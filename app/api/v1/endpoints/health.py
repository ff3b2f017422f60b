from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
async def liveness() -> dict:
    """Liveness probe; does not touch the database."""
    return {"status": "ok"}
