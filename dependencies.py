"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services live on app.state, wired by create_app().
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from config import AppSettings
from infrastructure.oauth_clients import OAuthProfileProvider
from schemas.models.user import User
from services.auth_service import AuthService


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_oauth_provider(request: Request) -> Optional[OAuthProfileProvider]:
    """Return the Google profile provider, or None when OAuth is not configured."""
    return request.app.state.oauth_provider


async def get_current_user(
    request: Request,
    settings: AppSettings = Depends(get_settings),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Resolve the signed-in user from the session cookie.

    The legacy cookie name is accepted when the current one is absent.

    Raises AuthenticationError / SessionExpiredError, which the global
    handlers turn into 401 responses.
    """
    token = request.cookies.get(settings.jwt.cookie_name) or request.cookies.get(
        settings.jwt.legacy_cookie_name
    )
    return await auth.validate_session(token)
