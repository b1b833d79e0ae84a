"""
Health check endpoint.

GET /health — liveness only; the in-memory stores have no external
dependency to probe.
"""

from __future__ import annotations

from fastapi import APIRouter

from schemas.dto.responses.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok")
