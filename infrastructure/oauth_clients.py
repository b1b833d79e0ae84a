"""Google sign-in via Authlib's Starlette client.

The auth service only needs a verified ``OAuthProfile``; everything
provider-specific (authorize redirect, code exchange, userinfo shape)
stays behind the OAuthProfileProvider protocol so tests can substitute a
fake.
"""

from typing import Any, Dict, Optional, Protocol

from authlib.integrations.starlette_client import OAuth
from pydantic import BaseModel
from starlette.requests import Request
from starlette.responses import Response

from config import OAuthProviderSettings
from errors import AuthenticationError
from shared.logging import get_logger, mask_target

log = get_logger(__name__)

GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"


class OAuthProfile(BaseModel):
    """Verified identity returned by an OAuth provider."""

    provider_id: str
    email: str
    name: str = ""


class OAuthProfileProvider(Protocol):
    async def authorize_redirect(self, request: Request, redirect_uri: str) -> Response: ...

    async def exchange_code_for_profile(self, request: Request) -> OAuthProfile: ...


def extract_user_info_from_google(userinfo: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "provider_user_id": userinfo.get("sub", ""),
        "email": (userinfo.get("email") or "").lower().strip(),
        "email_verified": userinfo.get("email_verified", False),
        "name": userinfo.get("name", ""),
        "given_name": userinfo.get("given_name", ""),
        "family_name": userinfo.get("family_name", ""),
    }


def profile_from_google_userinfo(userinfo: Dict[str, Any]) -> OAuthProfile:
    """Build an OAuthProfile, refusing accounts without a verified email."""
    info = extract_user_info_from_google(userinfo)
    if not info["provider_user_id"] or not info["email"]:
        raise AuthenticationError("Google profile is missing an id or email")
    if not info["email_verified"]:
        raise AuthenticationError("Google email is not verified")
    name = info["name"] or " ".join(
        part for part in (info["given_name"], info["family_name"]) if part
    )
    return OAuthProfile(provider_id=info["provider_user_id"], email=info["email"], name=name)


class GoogleOAuthProvider:
    def __init__(self, settings: OAuthProviderSettings) -> None:
        self._settings = settings
        self._oauth = OAuth()
        self._client = self._oauth.register(
            name="google",
            client_id=settings.google_oauth_client_id,
            client_secret=settings.google_oauth_client_secret,
            server_metadata_url=GOOGLE_METADATA_URL,
            client_kwargs={
                "scope": "openid email profile",
                "prompt": "select_account",
            },
        )
        log.info("oauth_provider_initialized", provider="google")

    async def authorize_redirect(self, request: Request, redirect_uri: str) -> Response:
        return await self._client.authorize_redirect(request, redirect_uri)

    async def exchange_code_for_profile(self, request: Request) -> OAuthProfile:
        token = await self._client.authorize_access_token(request)
        userinfo = token.get("userinfo")
        if not userinfo:
            userinfo = await self._client.userinfo(token=token)
        profile = profile_from_google_userinfo(dict(userinfo))
        log.info("oauth_profile_fetched", provider="google", email=mask_target(profile.email))
        return profile


def init_google_oauth(settings: OAuthProviderSettings) -> Optional[GoogleOAuthProvider]:
    """Return a GoogleOAuthProvider, or None when client credentials are missing."""
    if not settings.google_configured:
        log.warning("oauth_no_providers_configured")
        return None
    return GoogleOAuthProvider(settings)
