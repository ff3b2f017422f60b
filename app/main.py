import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import logging

from app.api.v1.router import router as api_v1_router
from app.core.exceptions import (
    AccountNotFoundError,
    InvalidRecalculationRequestError,
    PersistenceError,
)
from app.core.config import settings as app_settings
from app.core.rate_limit import limiter
from app.services.scheduled_health import start_health_recalc_loop
from app.core.cache import CacheService
from app.core.database import AsyncSessionLocal
from app.dependencies import get_redis_client

# Configure logging
logging.basicConfig(level=app_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application-level background tasks."""
    recalc_task = None
    redis_client = None
    if app_settings.HEALTH_AUTO_RECALC_ENABLED:
        # The loop invalidates cached summaries after each tenant run
        redis_client = await get_redis_client()
        recalc_task = asyncio.create_task(
            start_health_recalc_loop(
                AsyncSessionLocal, cache=CacheService(redis_client=redis_client)
            )
        )
        logger.info("Background health recalculation task scheduled")
    yield
    # Shutdown: cancel the background task
    if recalc_task is not None:
        recalc_task.cancel()
        try:
            await recalc_task
        except asyncio.CancelledError:
            logger.info("Background health recalculation task stopped")
    if redis_client is not None:
        await redis_client.aclose()


app = FastAPI(
    title="CRM Account Health Service",
    description="Customer-success account health scoring and risk classification",
    version="0.1.0",
    debug=app_settings.DEBUG,
    lifespan=lifespan,
)

# Attach rate limiter state so slowapi middleware can find it
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware – restricted to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in app_settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


@app.exception_handler(AccountNotFoundError)
async def account_not_found_handler(request: Request, exc: AccountNotFoundError):
    logger.warning("Account not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "account_not_found"},
    )


@app.exception_handler(InvalidRecalculationRequestError)
async def invalid_recalculation_request_handler(
    request: Request, exc: InvalidRecalculationRequestError
):
    logger.warning("Invalid recalculation request: %s", exc.detail)
    return JSONResponse(
        status_code=400,
        content={"detail": exc.detail, "type": "invalid_recalculation_request"},
    )


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("Persistence failure: %s", exc.detail)
    return JSONResponse(
        status_code=503,
        content={"detail": exc.detail, "type": "persistence_failure"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
            "type": "validation_error",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected/unhandled exceptions.

    Returns a generic 500 response so that raw stack traces are never
    leaked to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected internal error occurred. Please try again later.",
            "type": "internal_server_error",
        },
    )
