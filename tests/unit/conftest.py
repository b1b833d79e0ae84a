"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv().

Service fixtures are wired to in-memory stores, recording providers and the
shared FakeClock. The OTP service runs in production mode so codes are
random and must be read back from the recording providers.
"""

import pytest

from config import OtpSettings
from repositories.code_repository import InMemoryCodeRepository
from repositories.user_repository import InMemoryUserRepository
from services.auth_service import AuthService
from services.notification_service import NotificationDispatcher
from services.otp_service import OtpService
from services.reset_service import ResetService
from shared.tokens import TokenCodec

TEST_SECRET = "unit-test-secret"
TEN_DAYS = 10 * 24 * 60 * 60


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def otp_settings():
    return OtpSettings()


@pytest.fixture
def notifier(email_provider, sms_provider):
    return NotificationDispatcher(email_provider, sms_provider)


@pytest.fixture
def otp_codes():
    return InMemoryCodeRepository()


@pytest.fixture
def otp_service(otp_codes, notifier, otp_settings, clock):
    return OtpService(otp_codes, notifier, otp_settings, is_production=True, clock=clock)


@pytest.fixture
def reset_codes():
    return InMemoryCodeRepository()


@pytest.fixture
def reset_service(reset_codes, notifier, clock):
    return ResetService(reset_codes, notifier, ttl_seconds=180, clock=clock)


@pytest.fixture
def users(clock):
    return InMemoryUserRepository(clock=clock)


@pytest.fixture
def tokens(clock):
    return TokenCodec(TEST_SECRET, TEN_DAYS, clock=clock)


@pytest.fixture
def auth_service(users, otp_service, reset_service, tokens, clock):
    return AuthService(users, otp_service, reset_service, tokens, clock=clock)
