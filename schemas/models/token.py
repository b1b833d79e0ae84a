"""
Session token claims.

SessionClaims is what TokenCodec signs into (and recovers from) the
``accessToken`` cookie. The token itself is never stored server-side.
SessionGrant pairs a signed token with its user for the route layer.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.user import User


class SessionClaims(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sub: str
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    token_version: int = Field(default=0, alias="tokenVersion")
    iat: Optional[int] = None
    exp: Optional[int] = None


class SessionGrant(BaseModel):
    """A freshly signed session token and the user it was issued for."""

    user: User
    access_token: str
