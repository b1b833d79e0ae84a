"""
User record model.

Two creation paths produce slightly different shapes:
- Signup: phone is always set, password fields only when a password was given
- OAuth / implicit provisioning: google_id or a placeholder email, phone may be None

Both paths are handled via Optional fields with sensible defaults.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserCandidate(BaseModel):
    """Fields supplied by the caller when creating a user."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    phone: Optional[str] = None
    google_id: Optional[str] = None
    password_hash: Optional[str] = None
    password_salt: Optional[str] = None


class User(UserCandidate):
    """
    Stored user record.

    token_version increments on every password change; session tokens carry
    the version they were issued under and are rejected once it moves on.
    """

    id: str
    token_version: int = Field(default=0, ge=0)
    created_at: datetime

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash and self.password_salt)
