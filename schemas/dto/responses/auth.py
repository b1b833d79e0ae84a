"""
Response DTOs for authentication endpoints.

PublicUserResponse  — {id, name, email, phone}; GET /auth/me and inside VerifyOtpResponse
SignupResponse      — POST /auth/signup  (200)
MessageResponse     — login, forgot-password, reset-password  (200)
RequestOtpResponse  — POST /auth/request-otp  (200)
VerifyOtpResponse   — POST /auth/verify-otp  (200)
StatusResponse      — POST /auth/logout  (200)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class PublicUserResponse(BaseModel):
    """Public projection of a user; never carries credential fields."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    phone: str = ""


class StatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"


class SignupResponse(StatusResponse):
    next: str = "verify-otp"


class MessageResponse(StatusResponse):
    message: str


class RequestOtpResponse(MessageResponse):
    expires_in: int


class VerifyOtpResponse(StatusResponse):
    user: PublicUserResponse
