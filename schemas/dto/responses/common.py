"""
Response DTOs shared by every router.

ErrorResponse is the body AppError.to_dict() produces; routers list it in
their OpenAPI ``responses`` so the error shape shows up in /docs.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str


ERROR_RESPONSES: dict = {
    400: {"model": ErrorResponse, "description": "Invalid input or code"},
    401: {"model": ErrorResponse, "description": "Missing or expired session"},
    429: {"model": ErrorResponse, "description": "Too many requests"},
}
