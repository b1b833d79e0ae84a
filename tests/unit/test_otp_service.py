"""Unit tests for OtpService and ResetService."""

import asyncio

import pytest

from config import OtpSettings
from errors import (
    DeliveryError,
    InvalidOrExpiredCodeError,
    LockedOutError,
    RateLimitError,
)
from services.otp_service import OtpService

EMAIL = "a@b.com"
PHONE = "+15551234567"


def _wrong(code: str) -> str:
    return "000001" if code != "000001" else "000002"


# ── issue ─────────────────────────────────────────────────────────────────────


class TestOtpIssue:
    async def test_delivers_code_and_returns_expiry(self, otp_service, email_provider, clock):
        expires_at = await otp_service.issue("email", EMAIL)
        assert (expires_at - clock()).total_seconds() == 300
        assert len(email_provider.sent) == 1
        sent = email_provider.sent[0]
        assert sent["kind"] == "otp"
        assert sent["to"] == EMAIL
        assert sent["ttl_minutes"] == 5
        assert len(sent["code"]) == 6 and sent["code"].isdigit()

    async def test_phone_channel_uses_sms(self, otp_service, sms_provider, email_provider):
        await otp_service.issue("phone", PHONE)
        assert email_provider.sent == []
        assert sms_provider.sent[0]["to"] == PHONE
        assert "verification code" in sms_provider.sent[0]["message"]

    async def test_code_stored_hashed(self, otp_service, otp_codes, email_provider):
        await otp_service.issue("email", EMAIL)
        pending = await otp_codes.get_pending("email:" + EMAIL)
        code = email_provider.last_code()
        assert code not in pending.code_hash
        assert pending.expires_at > pending.created_at

    async def test_sixth_issue_in_hour_rate_limited(self, otp_service, email_provider):
        for _ in range(5):
            await otp_service.issue("email", EMAIL)
        with pytest.raises(RateLimitError):
            await otp_service.issue("email", EMAIL)
        assert len(email_provider.sent) == 5

    async def test_cap_resets_in_next_hour_bucket(self, otp_service, clock):
        for _ in range(5):
            await otp_service.issue("email", EMAIL)
        clock.advance(hours=1)
        await otp_service.issue("email", EMAIL)

    async def test_cap_is_per_target(self, otp_service):
        for _ in range(5):
            await otp_service.issue("email", EMAIL)
        await otp_service.issue("email", "other@b.com")

    async def test_new_code_overwrites_previous(self, otp_service, email_provider):
        await otp_service.issue("email", EMAIL)
        first = email_provider.last_code()
        await otp_service.issue("email", EMAIL)
        second = email_provider.last_code()
        if first != second:
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp_service.verify("email", EMAIL, first)
        await otp_service.verify("email", EMAIL, second)

    async def test_delivery_failure_discards_code(self, otp_service, otp_codes, email_provider):
        email_provider.succeed = False
        with pytest.raises(DeliveryError):
            await otp_service.issue("email", EMAIL)
        assert await otp_codes.get_pending("email:" + EMAIL) is None
        # The attempt still counts towards the hourly cap
        assert (await otp_codes.get_issuance("email:" + EMAIL)).count == 1

    async def test_test_code_outside_production(
        self, otp_codes, notifier, email_provider, clock
    ):
        service = OtpService(
            otp_codes, notifier, OtpSettings(), is_production=False, clock=clock
        )
        await service.issue("email", EMAIL)
        assert email_provider.last_code() == "000000"
        await service.verify("email", EMAIL, "000000")

    async def test_production_never_uses_test_code(self, otp_service, email_provider):
        codes = set()
        for _ in range(5):
            await otp_service.issue("email", EMAIL)
            codes.add(email_provider.last_code())
        assert codes != {"000000"}

    async def test_concurrent_issues_respect_cap(self, otp_service):
        results = await asyncio.gather(
            *(otp_service.issue("email", EMAIL) for _ in range(7)),
            return_exceptions=True,
        )
        limited = [r for r in results if isinstance(r, RateLimitError)]
        assert len(limited) == 2

    async def test_old_targets_do_not_accumulate(
        self, otp_service, otp_codes, email_provider, clock
    ):
        for i in range(20):
            target = f"user{i}@b.com"
            await otp_service.issue("email", target)
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp_service.verify("email", target, _wrong(email_provider.last_code()))
        assert otp_codes.attempts_count == 20

        clock.advance(days=2)
        await otp_service.issue("email", EMAIL)
        assert otp_codes.pending_count == 1
        assert otp_codes.issuance_count == 1
        assert otp_codes.attempts_count == 0


# ── verify ────────────────────────────────────────────────────────────────────


class TestOtpVerify:
    async def test_correct_code_succeeds_once(self, otp_service, email_provider):
        await otp_service.issue("email", EMAIL)
        code = email_provider.last_code()
        await otp_service.verify("email", EMAIL, code)
        with pytest.raises(InvalidOrExpiredCodeError):
            await otp_service.verify("email", EMAIL, code)

    async def test_no_code_issued(self, otp_service):
        with pytest.raises(InvalidOrExpiredCodeError):
            await otp_service.verify("email", EMAIL, "123456")

    async def test_expired_code(self, otp_service, email_provider, clock):
        await otp_service.issue("email", EMAIL)
        clock.advance(seconds=300)
        with pytest.raises(InvalidOrExpiredCodeError):
            await otp_service.verify("email", EMAIL, email_provider.last_code())

    async def test_same_message_for_missing_and_wrong(self, otp_service, email_provider):
        with pytest.raises(InvalidOrExpiredCodeError) as missing:
            await otp_service.verify("email", EMAIL, "123456")
        await otp_service.issue("email", EMAIL)
        with pytest.raises(InvalidOrExpiredCodeError) as wrong:
            await otp_service.verify("email", EMAIL, _wrong(email_provider.last_code()))
        assert missing.value.message == wrong.value.message

    async def test_wrong_code_keeps_pending_code(self, otp_service, email_provider):
        await otp_service.issue("email", EMAIL)
        code = email_provider.last_code()
        with pytest.raises(InvalidOrExpiredCodeError):
            await otp_service.verify("email", EMAIL, _wrong(code))
        await otp_service.verify("email", EMAIL, code)

    async def test_success_clears_attempts(self, otp_service, otp_codes, email_provider):
        await otp_service.issue("email", EMAIL)
        code = email_provider.last_code()
        for _ in range(3):
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp_service.verify("email", EMAIL, _wrong(code))
        await otp_service.verify("email", EMAIL, code)
        assert await otp_codes.get_attempts("email:" + EMAIL) is None


class TestOtpLockout:
    async def test_five_failures_lock_target(self, otp_service, email_provider, clock):
        await otp_service.issue("email", EMAIL)
        code = email_provider.last_code()
        for _ in range(5):
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp_service.verify("email", EMAIL, _wrong(code))

        assert await otp_service.is_locked("email", EMAIL) is True
        # Even the correct code is refused while locked
        with pytest.raises(LockedOutError) as exc:
            await otp_service.verify("email", EMAIL, code)
        assert "15 minutes" in exc.value.message

    async def test_locked_check_consumes_no_attempt(self, otp_service, otp_codes, email_provider):
        await otp_service.issue("email", EMAIL)
        code = email_provider.last_code()
        for _ in range(5):
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp_service.verify("email", EMAIL, _wrong(code))
        for _ in range(3):
            with pytest.raises(LockedOutError):
                await otp_service.verify("email", EMAIL, code)
        assert (await otp_codes.get_attempts("email:" + EMAIL)).count == 5

    async def test_correct_code_succeeds_after_lockout(
        self, otp_service, email_provider, clock
    ):
        await otp_service.issue("email", EMAIL)
        code = email_provider.last_code()
        for _ in range(5):
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp_service.verify("email", EMAIL, _wrong(code))

        clock.advance(minutes=15)
        assert await otp_service.is_locked("email", EMAIL) is False
        await otp_service.issue("email", EMAIL)
        await otp_service.verify("email", EMAIL, email_provider.last_code())

    async def test_counter_restarts_after_lockout(self, otp_service, email_provider, clock):
        await otp_service.issue("email", EMAIL)
        code = email_provider.last_code()
        for _ in range(5):
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp_service.verify("email", EMAIL, _wrong(code))

        clock.advance(minutes=15)
        await otp_service.issue("email", EMAIL)
        fresh = email_provider.last_code()
        with pytest.raises(InvalidOrExpiredCodeError):
            await otp_service.verify("email", EMAIL, _wrong(fresh))
        assert await otp_service.is_locked("email", EMAIL) is False

    async def test_failures_without_code_count(self, otp_service):
        for _ in range(5):
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp_service.verify("phone", PHONE, "123456")
        with pytest.raises(LockedOutError):
            await otp_service.verify("phone", PHONE, "123456")

    async def test_lockout_is_per_target(self, otp_service):
        for _ in range(5):
            with pytest.raises(InvalidOrExpiredCodeError):
                await otp_service.verify("email", EMAIL, "123456")
        assert await otp_service.is_locked("email", "other@b.com") is False


# ── ResetService ──────────────────────────────────────────────────────────────


class TestResetService:
    async def test_issue_sends_reset_variant(self, reset_service, email_provider, clock):
        expires_at = await reset_service.issue("email", EMAIL)
        assert (expires_at - clock()).total_seconds() == 180
        sent = email_provider.sent[0]
        assert sent["kind"] == "reset"
        assert sent["ttl_minutes"] == 3

    async def test_sms_reset_variant(self, reset_service, sms_provider):
        await reset_service.issue("phone", PHONE)
        assert "password reset code" in sms_provider.sent[0]["message"]
        assert "3 minutes" in sms_provider.sent[0]["message"]

    async def test_verify_and_consume(self, reset_service, email_provider):
        await reset_service.issue("email", EMAIL)
        code = email_provider.last_code()
        await reset_service.verify_and_consume("email", EMAIL, code)
        with pytest.raises(InvalidOrExpiredCodeError):
            await reset_service.verify_and_consume("email", EMAIL, code)

    async def test_failure_leaves_code_live(self, reset_service, email_provider):
        await reset_service.issue("email", EMAIL)
        code = email_provider.last_code()
        for _ in range(6):
            with pytest.raises(InvalidOrExpiredCodeError):
                await reset_service.verify_and_consume("email", EMAIL, _wrong(code))
        await reset_service.verify_and_consume("email", EMAIL, code)

    async def test_expires_after_three_minutes(self, reset_service, email_provider, clock):
        await reset_service.issue("email", EMAIL)
        clock.advance(minutes=3, seconds=1)
        with pytest.raises(InvalidOrExpiredCodeError) as exc:
            await reset_service.verify_and_consume("email", EMAIL, email_provider.last_code())
        assert exc.value.message == "Invalid or expired code. Request a new one."

    async def test_no_hourly_cap(self, reset_service):
        for _ in range(8):
            await reset_service.issue("email", EMAIL)

    async def test_namespaces_are_separate(
        self, reset_service, otp_service, email_provider
    ):
        await reset_service.issue("email", EMAIL)
        reset_code = email_provider.last_code()
        with pytest.raises(InvalidOrExpiredCodeError):
            await otp_service.verify("email", EMAIL, reset_code)

    async def test_delivery_failure_discards_code(
        self, reset_service, reset_codes, email_provider
    ):
        email_provider.succeed = False
        with pytest.raises(DeliveryError):
            await reset_service.issue("email", EMAIL)
        assert reset_codes.pending_count == 0
