"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.smm_admin.api.router import router as admin_router
from src.smm_catalog.api.router import router as catalog_router
from src.smm_common.database import engine
from src.smm_common.errors import AppError
from src.smm_common.redis_client import close_redis, mirror_reachable
from src.smm_common.response import error_response
from src.smm_coupon.api.router import router as coupon_router
from src.smm_gateway.middleware.request_log import RequestLogMiddleware
from src.smm_ledger.api.router import router as ledger_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: check the database and mirror storage. Shutdown: dispose both."""
    # Startup
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        if not settings.OFFLINE_MIRROR_ENABLED:
            raise
        logger.warning("Database unreachable at startup; requests will use the offline mirror")
    if settings.OFFLINE_MIRROR_ENABLED and not await mirror_reachable():
        logger.warning("Offline mirror storage unreachable at startup; fallback will fail")
    yield
    # Shutdown
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(ledger_router, prefix="/api/v1")
app.include_router(catalog_router, prefix="/api/v1")
app.include_router(coupon_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
