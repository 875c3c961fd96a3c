"""
Common response DTOs shared across multiple endpoints.

EnvelopeResponse -> {status, message, errors?, data?} shape every endpoint returns
ErrorResponse    -> error shape produced by AppError.to_dict()
HealthResponse   -> GET /health
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class EnvelopeResponse(BaseModel, Generic[T]):
    """Success envelope; ``data`` is omitted when the endpoint returns nothing."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = "success"
    message: str
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    """Error JSON body produced by the AppError exception handler."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    message: str
    code: str
    field: Optional[str] = None
    errors: Optional[dict[str, str]] = None
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]
