"""
Request DTOs for authentication endpoints.

SignupRequest          — POST /auth/signup
LoginRequest           — POST /auth/login
RequestOtpRequest      — POST /auth/request-otp
VerifyOtpRequest       — POST /auth/verify-otp
ForgotPasswordRequest  — POST /auth/forgot-password
ResetPasswordRequest   — POST /auth/reset-password

Fields are deliberately loose (optional strings); AuthService owns the
validation rules and their error messages.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    otp_channel: Optional[str] = Field(default=None, alias="otpChannel")


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(populate_by_name=True)

    email_or_phone: Optional[str] = Field(default=None, alias="emailOrPhone")


class ChannelTargetRequest(BaseModel):
    """A delivery channel plus the email or phone number it applies to."""

    model_config = ConfigDict(populate_by_name=True)

    channel: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def target(self) -> Optional[str]:
        return self.phone if self.channel == "phone" else self.email


class RequestOtpRequest(ChannelTargetRequest):
    """Request body for POST /auth/request-otp."""


class VerifyOtpRequest(ChannelTargetRequest):
    """Request body for POST /auth/verify-otp.

    ``code`` is the 6-digit code delivered to the email address or phone.
    """

    code: Optional[str] = None


class ForgotPasswordRequest(ChannelTargetRequest):
    """Request body for POST /auth/forgot-password."""


class ResetPasswordRequest(ChannelTargetRequest):
    """Request body for POST /auth/reset-password."""

    code: Optional[str] = None
    new_password: Optional[str] = Field(default=None, alias="newPassword")
