from fastapi import APIRouter

from app.api.v1.endpoints import account_health, health

router = APIRouter(prefix="/api/v1")

router.include_router(health.router)
router.include_router(account_health.router)
