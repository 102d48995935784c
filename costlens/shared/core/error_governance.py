"""
Error Governance

Classifies exceptions raised inside request handling and renders them as
one JSON shape: ``{"error": message, "code": code, "details": details}``.
"""

from typing import Any, Dict, Optional
from uuid import uuid4

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from costlens.shared.core.config import get_settings
from costlens.shared.core.exceptions import CostLensException

logger = structlog.get_logger()


def handle_exception(
    request: Request, exc: Exception, error_id: Optional[str] = None
) -> JSONResponse:
    error_id = error_id or str(uuid4())
    is_prod = get_settings().is_production

    if isinstance(exc, CostLensException):
        app_exc = exc
    elif isinstance(exc, ValueError):
        # Business validation errors are client errors
        app_exc = CostLensException(
            message="Invalid request parameters" if is_prod else str(exc),
            code="value_error",
            status_code=400,
        )
        logger.warning(
            "business_validation_error",
            error=str(exc),
            error_id=error_id,
            path=request.url.path,
        )
    else:
        app_exc = CostLensException(
            message="An unexpected internal error occurred",
            code="internal_error",
            status_code=500,
        )
        logger.exception(
            "unhandled_raw_exception",
            error=str(exc),
            error_id=error_id,
            path=request.url.path,
        )

    logger.error(
        "api_error",
        error_id=error_id,
        code=app_exc.code,
        message=app_exc.message,
        status_code=app_exc.status_code,
        path=request.url.path,
        details=app_exc.details,
    )

    details: Optional[Dict[str, Any]] = app_exc.details or None
    if is_prod and app_exc.status_code >= 500:
        details = None

    return JSONResponse(
        status_code=app_exc.status_code,
        content={
            "error": app_exc.message,
            "code": app_exc.code,
            "details": details,
        },
    )
