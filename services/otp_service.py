"""
OtpService — issues and verifies one-time sign-in codes.

Per (channel, target) the lifecycle is::

    NoCode -> CodeIssued -> Consumed | Expired | LockedOut

Rules:
- At most ``otp_max_per_hour`` codes per target per UTC hour bucket.
- A new code overwrites the previous one for the same target.
- ``otp_max_verify_attempts`` failed verifications lock the target for
  ``otp_lockout_seconds``; a lockout check never consumes an attempt.
- Unknown, expired and wrong codes fail with the same error.

Each read-check-write sequence runs under a per-target lock. Hashing runs
in a worker thread so scrypt does not block the event loop.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from config import OtpSettings
from errors import InvalidOrExpiredCodeError, LockedOutError, RateLimitError
from repositories.code_repository import CodeRepository
from schemas.models.otp import (
    OTP_KEY_PREFIX,
    AttemptCounter,
    IssuanceCounter,
    PendingCode,
    target_key,
)
from services.notification_service import PURPOSE_VERIFICATION, NotificationDispatcher
from shared.crypto import hash_secret, verify_secret
from shared.datetime_utils import Clock, hour_bucket, utcnow
from shared.generators import generate_otp_code
from shared.locks import KeyedLock
from shared.logging import get_logger, mask_target

log = get_logger(__name__)

INVALID_CODE_MESSAGE = "Invalid or expired code"
ISSUE_RATE_LIMITED_MESSAGE = "Too many code requests. Try again later."


def lockout_message(lockout_seconds: int) -> str:
    minutes = max(1, lockout_seconds // 60)
    return f"Too many wrong attempts. Try again in {minutes} minutes."


class OtpService:
    def __init__(
        self,
        codes: CodeRepository,
        notifier: NotificationDispatcher,
        settings: OtpSettings,
        *,
        is_production: bool = True,
        clock: Optional[Clock] = None,
    ) -> None:
        self._codes = codes
        self._notifier = notifier
        self._settings = settings
        self._is_production = is_production
        self._clock = clock or utcnow
        self._locks = KeyedLock()

    @property
    def ttl_seconds(self) -> int:
        return self._settings.otp_ttl_seconds

    def _new_code(self) -> str:
        if not self._is_production and self._settings.test_otp_code:
            return self._settings.test_otp_code
        return generate_otp_code(self._settings.otp_code_length)

    async def issue(self, channel: str, target: str) -> datetime:
        """Store a fresh code for *target* and deliver it.

        Returns:
            The instant the new code expires.

        Raises:
            RateLimitError: the hourly issuance cap for *target* is reached.
            DeliveryError: the provider failed; the stored code is discarded.
        """
        key = target_key(channel, target, OTP_KEY_PREFIX)
        async with self._locks(key):
            now = self._clock()
            await self._codes.purge_expired(now)

            bucket = hour_bucket(now)
            counter = await self._codes.get_issuance(key)
            if counter is None or counter.hour_start != bucket:
                counter = IssuanceCounter(target_key=key, count=0, hour_start=bucket)

            if counter.count >= self._settings.otp_max_per_hour:
                log.warning(
                    "otp_issue_rate_limited",
                    channel=channel,
                    target=mask_target(target),
                    count=counter.count,
                )
                raise RateLimitError(ISSUE_RATE_LIMITED_MESSAGE)

            code = self._new_code()
            code_hash, salt = await asyncio.to_thread(hash_secret, code)
            expires_at = now + timedelta(seconds=self._settings.otp_ttl_seconds)
            pending = PendingCode(
                target_key=key,
                code_hash=code_hash,
                salt=salt,
                target=target,
                channel=channel,
                created_at=now,
                expires_at=expires_at,
            )
            await self._codes.put_pending(pending)
            await self._codes.put_issuance(
                counter.model_copy(update={"count": counter.count + 1})
            )

            if not self._is_production:
                log.info("otp_dev_code", channel=channel, target=mask_target(target), code=code)

            try:
                await self._notifier.deliver(
                    channel, target, code, PURPOSE_VERIFICATION, self.ttl_seconds
                )
            except Exception:
                await self._codes.delete_pending(key)
                raise

        log.info(
            "otp_issued",
            channel=channel,
            target=mask_target(target),
            expires_at=expires_at.isoformat(),
        )
        return expires_at

    async def is_locked(self, channel: str, target: str) -> bool:
        key = target_key(channel, target, OTP_KEY_PREFIX)
        async with self._locks(key):
            return await self._check_lock(key, self._clock())

    async def _check_lock(self, key: str, now: datetime) -> bool:
        attempts = await self._codes.get_attempts(key)
        if attempts is None or attempts.blocked_until is None:
            return False
        if attempts.is_blocked(now):
            return True
        # Lockout window has passed; start counting from zero again
        await self._codes.delete_attempts(key)
        return False

    async def _record_failure(self, key: str, now: datetime) -> AttemptCounter:
        attempts = await self._codes.get_attempts(key)
        if attempts is None or (
            attempts.blocked_until is not None and not attempts.is_blocked(now)
        ):
            attempts = AttemptCounter(target_key=key, count=0)

        count = attempts.count + 1
        blocked_until = attempts.blocked_until
        if count >= self._settings.otp_max_verify_attempts:
            blocked_until = now + timedelta(seconds=self._settings.otp_lockout_seconds)

        updated = AttemptCounter(
            target_key=key, count=count, blocked_until=blocked_until, last_failed_at=now
        )
        await self._codes.put_attempts(updated)
        return updated

    async def verify(self, channel: str, target: str, code: str) -> None:
        """Consume the pending code for *target* if *code* matches.

        Raises:
            LockedOutError: too many recent failures; no attempt is consumed.
            InvalidOrExpiredCodeError: no live code, or *code* does not match.
        """
        key = target_key(channel, target, OTP_KEY_PREFIX)
        async with self._locks(key):
            now = self._clock()
            await self._codes.purge_expired(now)

            if await self._check_lock(key, now):
                log.warning("otp_verify_locked", channel=channel, target=mask_target(target))
                raise LockedOutError(lockout_message(self._settings.otp_lockout_seconds))

            pending = await self._codes.get_pending(key)
            matched = False
            if pending is not None and not pending.is_expired(now):
                matched = await asyncio.to_thread(
                    verify_secret, code, pending.code_hash, pending.salt
                )

            if not matched:
                attempts = await self._record_failure(key, now)
                log.info(
                    "otp_verify_failed",
                    channel=channel,
                    target=mask_target(target),
                    reason="no_code" if pending is None else "mismatch_or_expired",
                    attempts=attempts.count,
                )
                if attempts.blocked_until is not None and attempts.is_blocked(now):
                    log.warning(
                        "otp_target_locked",
                        channel=channel,
                        target=mask_target(target),
                        blocked_until=attempts.blocked_until.isoformat(),
                    )
                raise InvalidOrExpiredCodeError(INVALID_CODE_MESSAGE)

            await self._codes.delete_pending(key)
            await self._codes.delete_attempts(key)

        log.info("otp_verified", channel=channel, target=mask_target(target))
