import logging
import time

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from schemas.common import ErrorDetail, ErrorResponse
from services.exceptions import BatchFailure, MarksheetAnalyticsError

logger = logging.getLogger(__name__)


def _error_body(request: Request, code: str, message: str, **extra) -> dict:
    started_at = getattr(request.state, "started_at", None)
    latency_ms = int((time.perf_counter() - started_at) * 1000) if started_at is not None else None

    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message),
        latency_ms=latency_ms,
        trace_id=request.headers.get("X-Request-Id"),
    ).model_dump(mode="json", exclude_none=True)
    body.update(extra)
    return body


def add_error_handlers(app: FastAPI):
    @app.exception_handler(BatchFailure)
    async def batch_failure_handler(request: Request, exc: BatchFailure):
        logger.warning(f"Batch failed: all {exc.attempted} documents failed")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                request,
                exc.code,
                exc.user_message,
                failures=[f.model_dump(by_alias=True) for f in exc.failures],
            ),
        )

    @app.exception_handler(MarksheetAnalyticsError)
    async def domain_error_handler(request: Request, exc: MarksheetAnalyticsError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.code, str(exc)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=_error_body(
                request,
                "VALIDATION_ERROR",
                "Request validation failed",
                details=jsonable_encoder(exc.errors()),
            ),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, f"HTTP_{exc.status_code}", str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=_error_body(request, "INTERNAL_ERROR", str(exc)),
        )
