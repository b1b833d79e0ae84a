"""
Authentication routes mounted at /auth.

POST /auth/signup           create account, send first code
POST /auth/login            send a sign-in code to a registered email/phone
POST /auth/request-otp      send a sign-in code on an explicit channel
POST /auth/verify-otp       exchange a code for the session cookie
POST /auth/forgot-password  send a password-reset code
POST /auth/reset-password   set a new password, re-issue the session cookie
GET  /auth/me               current user from the session cookie
POST /auth/logout           clear the session cookie

Handlers stay thin: AuthService validates and raises AppError subclasses,
which the global handlers in errors.py render as JSON.
"""

from fastapi import APIRouter, Depends, Request, Response

from config import AppSettings
from dependencies import get_auth_service, get_current_user, get_settings
from routes.limiter import auth_limit, limiter, otp_request_limit
from schemas.dto.requests.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RequestOtpRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyOtpRequest,
)
from schemas.dto.responses.auth import (
    MessageResponse,
    PublicUserResponse,
    RequestOtpResponse,
    SignupResponse,
    StatusResponse,
    VerifyOtpResponse,
)
from schemas.dto.responses.common import ERROR_RESPONSES
from schemas.models.user import User
from services.auth_service import PASSWORD_UPDATED_MESSAGE, AuthService, public_profile

router = APIRouter(prefix="/auth", tags=["auth"], responses=ERROR_RESPONSES)


def set_session_cookie(response: Response, token: str, settings: AppSettings) -> None:
    response.set_cookie(
        key=settings.jwt.cookie_name,
        value=token,
        max_age=settings.jwt.access_token_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: AppSettings) -> None:
    response.delete_cookie(
        key=settings.jwt.cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


@router.post("/signup", response_model=SignupResponse)
@limiter.limit(auth_limit)
async def signup(
    request: Request,
    body: SignupRequest,
    auth: AuthService = Depends(get_auth_service),
) -> SignupResponse:
    result = await auth.signup(
        name=body.name,
        email=body.email,
        phone=body.phone,
        password=body.password,
        otp_channel=body.otp_channel,
    )
    return SignupResponse(**result)


@router.post("/login", response_model=MessageResponse)
@limiter.limit(auth_limit)
async def login(
    request: Request,
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    result = await auth.login(body.email_or_phone)
    return MessageResponse(**result)


@router.post("/request-otp", response_model=RequestOtpResponse)
@limiter.limit(otp_request_limit)
async def request_otp(
    request: Request,
    body: RequestOtpRequest,
    auth: AuthService = Depends(get_auth_service),
) -> RequestOtpResponse:
    result = await auth.request_otp(body.channel, body.target)
    return RequestOtpResponse(**result)


@router.post("/verify-otp", response_model=VerifyOtpResponse)
async def verify_otp(
    request: Request,
    response: Response,
    body: VerifyOtpRequest,
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> VerifyOtpResponse:
    grant = await auth.verify_otp(body.channel, body.target, body.code)
    set_session_cookie(response, grant.access_token, settings)
    return VerifyOtpResponse(user=PublicUserResponse(**public_profile(grant.user)))


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(otp_request_limit)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    result = await auth.forgot_password(body.channel, body.target)
    return MessageResponse(**result)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: Request,
    response: Response,
    body: ResetPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> MessageResponse:
    grant = await auth.reset_password(
        body.channel, body.target, body.code, body.new_password
    )
    set_session_cookie(response, grant.access_token, settings)
    return MessageResponse(message=PASSWORD_UPDATED_MESSAGE)


@router.get("/me", response_model=PublicUserResponse)
async def me(user: User = Depends(get_current_user)) -> PublicUserResponse:
    return PublicUserResponse(**public_profile(user))


@router.post("/logout", response_model=StatusResponse)
async def logout(
    response: Response,
    settings: AppSettings = Depends(get_settings),
) -> StatusResponse:
    clear_session_cookie(response, settings)
    return StatusResponse()
