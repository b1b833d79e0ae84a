"""
Google sign-in routes mounted at /auth.

GET /auth/google           redirect to Google's consent screen
GET /auth/google/callback  exchange the code, set the session cookie and
                           redirect back to the frontend

Failures never surface as JSON: the browser is sent back to
``{origin}/login?error=...`` so the frontend can show a message.
"""

from typing import Optional

import httpx
from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from starlette.responses import Response

from config import AppSettings
from dependencies import get_auth_service, get_oauth_provider, get_settings
from errors import AppError
from infrastructure.oauth_clients import OAuthProfileProvider
from routes.auth_routes import set_session_cookie
from routes.limiter import limiter
from services.auth_service import AuthService
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["oauth"])


def _login_error_redirect(settings: AppSettings, error: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.origin}/login?error={error}", status_code=302)


@router.get("/google")
@limiter.limit("10/minute")
async def google_login(
    request: Request,
    settings: AppSettings = Depends(get_settings),
    provider: Optional[OAuthProfileProvider] = Depends(get_oauth_provider),
) -> Response:
    if provider is None:
        return _login_error_redirect(settings, "google_not_configured")
    redirect_uri = settings.oauth.google_oauth_redirect_uri or str(
        request.url_for("google_callback")
    )
    return await provider.authorize_redirect(request, redirect_uri)


@router.get("/google/callback", name="google_callback")
@limiter.limit("20/minute")
async def google_callback(
    request: Request,
    settings: AppSettings = Depends(get_settings),
    provider: Optional[OAuthProfileProvider] = Depends(get_oauth_provider),
    auth: AuthService = Depends(get_auth_service),
) -> Response:
    if provider is None:
        return _login_error_redirect(settings, "google_not_configured")

    provider_error = request.query_params.get("error")
    if provider_error:
        log.warning("oauth_callback_denied", provider="google", error=provider_error)
        return _login_error_redirect(settings, "google_failed")

    try:
        profile = await provider.exchange_code_for_profile(request)
        grant = await auth.oauth_login(profile)
    except (OAuthError, AppError, httpx.HTTPError) as e:
        log.error(
            "oauth_callback_failed",
            provider="google",
            error=str(e),
            error_type=type(e).__name__,
        )
        return _login_error_redirect(settings, "google_failed")

    response = RedirectResponse(f"{settings.origin}/account", status_code=302)
    set_session_cookie(response, grant.access_token, settings)
    return response
