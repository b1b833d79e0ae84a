"""
ResetService — short-lived password-reset codes.

Separate from OtpService: its own store namespace (``reset:``), a fixed
TTL, always a random code, and no issuance cap or lockout. A failed
verification leaves the code live until it expires.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from errors import InvalidOrExpiredCodeError
from repositories.code_repository import CodeRepository
from schemas.models.otp import RESET_KEY_PREFIX, PendingCode, target_key
from services.notification_service import PURPOSE_PASSWORD_RESET, NotificationDispatcher
from shared.crypto import hash_secret, verify_secret
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_otp_code
from shared.locks import KeyedLock
from shared.logging import get_logger, mask_target

log = get_logger(__name__)

INVALID_RESET_CODE_MESSAGE = "Invalid or expired code. Request a new one."


class ResetService:
    def __init__(
        self,
        codes: CodeRepository,
        notifier: NotificationDispatcher,
        ttl_seconds: int = 180,
        code_length: int = 6,
        clock: Optional[Clock] = None,
    ) -> None:
        self._codes = codes
        self._notifier = notifier
        self.ttl_seconds = ttl_seconds
        self._code_length = code_length
        self._clock = clock or utcnow
        self._locks = KeyedLock()

    async def issue(self, channel: str, target: str) -> datetime:
        key = target_key(channel, target, RESET_KEY_PREFIX)
        async with self._locks(key):
            now = self._clock()
            await self._codes.purge_expired(now)

            code = generate_otp_code(self._code_length)
            code_hash, salt = await asyncio.to_thread(hash_secret, code)
            expires_at = now + timedelta(seconds=self.ttl_seconds)
            await self._codes.put_pending(
                PendingCode(
                    target_key=key,
                    code_hash=code_hash,
                    salt=salt,
                    target=target,
                    channel=channel,
                    created_at=now,
                    expires_at=expires_at,
                )
            )

            try:
                await self._notifier.deliver(
                    channel, target, code, PURPOSE_PASSWORD_RESET, self.ttl_seconds
                )
            except Exception:
                await self._codes.delete_pending(key)
                raise

        log.info("reset_code_issued", channel=channel, target=mask_target(target))
        return expires_at

    async def verify_and_consume(self, channel: str, target: str, code: str) -> None:
        key = target_key(channel, target, RESET_KEY_PREFIX)
        async with self._locks(key):
            now = self._clock()
            await self._codes.purge_expired(now)

            pending = await self._codes.get_pending(key)
            if pending is None or pending.is_expired(now):
                log.info("reset_verify_failed", channel=channel, reason="no_code")
                raise InvalidOrExpiredCodeError(INVALID_RESET_CODE_MESSAGE)

            matched = await asyncio.to_thread(
                verify_secret, code, pending.code_hash, pending.salt
            )
            if not matched:
                log.info("reset_verify_failed", channel=channel, reason="mismatch")
                raise InvalidOrExpiredCodeError(INVALID_RESET_CODE_MESSAGE)

            await self._codes.delete_pending(key)

        log.info("reset_code_consumed", channel=channel, target=mask_target(target))
