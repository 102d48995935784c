from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from costlens.shared.core.config import get_settings, reload_settings_from_environment
from costlens.shared.core.error_governance import handle_exception
from costlens.shared.core.exceptions import CostLensException
from costlens.shared.core.logging import setup_logging
from costlens.shared.db.session import engine
from costlens.modules.reporting.api.v1.accounts import router as accounts_router
from costlens.modules.reporting.api.v1.costs import router as costs_router

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    global settings
    settings = reload_settings_from_environment()
    setup_logging()
    logger.info("app_starting", app_name=settings.APP_NAME, env=settings.ENVIRONMENT)

    yield

    await engine.dispose()
    logger.info("db_engine_disposed")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
)

__all__ = ["app", "lifespan"]


@app.exception_handler(CostLensException)
async def costlens_exception_handler(
    request: Request, exc: CostLensException
) -> JSONResponse:
    """Handle custom application exceptions."""
    return handle_exception(request, exc)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return handle_exception(request, exc)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled errors are logged and answered with a sanitized 500."""
    return handle_exception(request, exc)


@app.get("/health", tags=["Lifecycle"])
async def health() -> dict[str, str]:
    return {"status": "ok", "app": settings.APP_NAME, "version": settings.VERSION}


app.include_router(costs_router, prefix="/api/v1/costs")
app.include_router(accounts_router, prefix="/api/v1/accounts")
