"""
schemas/common.py

- Shared response schemas used across the project
- Pydantic v2
- Contents:
  1) Error response standard: ErrorDetail, ErrorResponse
  2) Success wrapper: SuccessEnvelope[T]
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field, ConfigDict


# =========================================================
# 1) Error response standard
# =========================================================

class ErrorDetail(BaseModel):
    """Smallest unit carrying an error code and message"""
    code: str = Field(..., description="Error code (e.g. INTERNAL_ERROR, BATCH_FAILED)")
    message: str = Field(..., description="Human readable error message")

class ErrorResponse(BaseModel):
    """
    Standard error body returned by the global error handlers
    - middlewares/error_handler.py renders every handled error with this schema
    """
    error: ErrorDetail
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Response creation time (UTC)"
    )
    latency_ms: Optional[int] = Field(
        default=None, ge=0, description="Request processing time in ms, when known"
    )
    trace_id: Optional[str] = Field(
        default=None, description="Request tracing id (copied from X-Request-Id)"
    )

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) Success response wrapper
# =========================================================

T = TypeVar("T")

class SuccessEnvelope(BaseModel, Generic[T]):
    """
    Standard success wrapper
    - ok: always True
    - data: the payload
    - message: advisory text (e.g. partial batch failures)
    - request tracing travels in the X-Request-Id response header
    """
    ok: bool = True
    data: T
    message: Optional[str] = None

    model_config = ConfigDict(extra="ignore")
