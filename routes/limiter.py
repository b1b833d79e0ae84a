"""
Request limits per client IP (slowapi).

The general limit applies to every route through SlowAPIMiddleware;
signup/login and the code-sending routes carry tighter per-route limits.
Limit strings are read from RateLimitSettings at request time, so
create_app() can reconfigure them through configure_limiter().
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from config import RateLimitSettings
from shared.logging import get_logger

log = get_logger(__name__)

_limits: dict[str, str] = {
    "general": "200 per 15 minutes",
    "auth": "30 per 15 minutes",
    "otp_request": "20 per hour",
}


def general_limit() -> str:
    return _limits["general"]


def auth_limit() -> str:
    return _limits["auth"]


def otp_request_limit() -> str:
    return _limits["otp_request"]


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[general_limit],
    storage_uri="memory://",
    strategy="fixed-window",
)


def configure_limiter(settings: RateLimitSettings) -> Limiter:
    """Apply *settings* to the shared limiter and clear its counters."""
    _limits["general"] = settings.rate_limit_general
    _limits["auth"] = settings.rate_limit_auth
    _limits["otp_request"] = settings.rate_limit_otp_request
    limiter.enabled = settings.rate_limit_enabled
    limiter.reset()
    log.info(
        "rate_limiter_configured",
        enabled=settings.rate_limit_enabled,
        general=settings.rate_limit_general,
    )
    return limiter
