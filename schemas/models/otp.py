"""
One-time-code state models.

PendingCode   — a hashed code awaiting verification (OTP or password reset)
IssuanceCounter — per-target issuance count for the current hour bucket
AttemptCounter  — per-target failed-verification count and lockout deadline

The plaintext code is never stored; code_hash/salt come from shared.crypto.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

OTP_KEY_PREFIX = ""
RESET_KEY_PREFIX = "reset:"


def target_key(channel: str, target: str, prefix: str = OTP_KEY_PREFIX) -> str:
    """Build the store key for a (channel, target) pair, e.g. ``email:a@b.com``."""
    return f"{prefix}{channel}:{target}"


class PendingCode(BaseModel):
    target_key: str
    code_hash: str
    salt: str
    target: str
    channel: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class IssuanceCounter(BaseModel):
    target_key: str
    count: int = Field(default=0, ge=0)
    hour_start: datetime


class AttemptCounter(BaseModel):
    target_key: str
    count: int = Field(default=0, ge=0)
    blocked_until: Optional[datetime] = None
    last_failed_at: Optional[datetime] = None

    def is_blocked(self, now: datetime) -> bool:
        return self.blocked_until is not None and now < self.blocked_until
