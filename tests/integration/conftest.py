"""
Integration test configuration.

Apps are built through create_app() with recording email/SMS providers, a
FakeClock and (optionally) a fake Google provider, so no network calls are
made and delivered codes can be read back.
"""

import pytest
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient

from app import create_app
from config import AppSettings, JWTSettings
from infrastructure.oauth_clients import OAuthProfile


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


class FakeGoogleProvider:
    def __init__(self, profile=None, error=None):
        self.profile = profile or OAuthProfile(
            provider_id="g-1", email="grace@example.com", name="Grace Hopper"
        )
        self.error = error
        self.redirect_uris: list[str] = []

    async def authorize_redirect(self, request, redirect_uri):
        self.redirect_uris.append(redirect_uri)
        return RedirectResponse(
            f"https://accounts.google.test/o/oauth2/auth?redirect_uri={redirect_uri}",
            status_code=302,
        )

    async def exchange_code_for_profile(self, request):
        if self.error is not None:
            raise self.error
        return self.profile


@pytest.fixture
def make_app(clock, email_provider, sms_provider):
    def _make(oauth_provider=None, **settings_overrides):
        settings_overrides.setdefault("env", "development")
        settings_overrides.setdefault("jwt", JWTSettings(jwt_secret="integration-secret"))
        settings = AppSettings(**settings_overrides)
        return create_app(
            settings,
            email_provider=email_provider,
            sms_provider=sms_provider,
            oauth_provider=oauth_provider,
            clock=clock,
        )

    return _make


@pytest.fixture
def client(make_app):
    with TestClient(make_app()) as c:
        yield c


@pytest.fixture
def google_provider():
    return FakeGoogleProvider()
