"""
Shared test fixtures.

FakeClock lets tests move time forward without sleeping; the recording
providers capture delivered codes so tests can read them back.
"""

import re
from datetime import datetime, timedelta, timezone

import pytest

from routes.limiter import limiter

_CODE_PATTERN = re.compile(r"\b([0-9]{6})\b")


class FakeClock:
    def __init__(self, start: datetime = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingEmailProvider:
    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: list[dict] = []

    async def send_otp_email(self, email, otp_code, ttl_minutes):
        self.sent.append(
            {"kind": "otp", "to": email, "code": otp_code, "ttl_minutes": ttl_minutes}
        )
        return self.succeed

    async def send_password_reset_email(self, email, otp_code, ttl_minutes):
        self.sent.append(
            {"kind": "reset", "to": email, "code": otp_code, "ttl_minutes": ttl_minutes}
        )
        return self.succeed

    def last_code(self, to=None) -> str:
        for entry in reversed(self.sent):
            if to is None or entry["to"] == to:
                return entry["code"]
        raise AssertionError(f"no email sent to {to}")


class RecordingSmsProvider:
    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: list[dict] = []

    async def send(self, to, message):
        self.sent.append({"to": to, "message": message})
        return self.succeed

    def last_code(self, to=None) -> str:
        for entry in reversed(self.sent):
            if to is None or entry["to"] == to:
                return _CODE_PATTERN.search(entry["message"]).group(1)
        raise AssertionError(f"no sms sent to {to}")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def email_provider():
    return RecordingEmailProvider()


@pytest.fixture
def sms_provider():
    return RecordingSmsProvider()


@pytest.fixture(autouse=True)
def reset_route_limits():
    """Route limits are process-wide; start every test with empty counters."""
    limiter.reset()
    yield
    limiter.reset()
