"""
NotificationDispatcher — delivers one-time codes over email or SMS.

Wraps an EmailProvider and an SmsProvider. Providers report failure by
returning False (or by raising); both outcomes become a DeliveryError so
the caller can roll back the code it just stored.
"""

from __future__ import annotations

from errors import DeliveryError
from infrastructure.email.protocol import EmailProvider
from infrastructure.sms.protocol import SmsProvider
from shared.logging import get_logger, mask_target
from shared.validators import CHANNEL_EMAIL, CHANNEL_PHONE

log = get_logger(__name__)

PURPOSE_VERIFICATION = "verification"
PURPOSE_PASSWORD_RESET = "password_reset"
PURPOSES = (PURPOSE_VERIFICATION, PURPOSE_PASSWORD_RESET)

DELIVERY_FAILED_MESSAGE = "Failed to send code"


def _ttl_minutes(ttl_seconds: int) -> int:
    return max(1, ttl_seconds // 60)


def sms_body(code: str, purpose: str, ttl_seconds: int) -> str:
    minutes = _ttl_minutes(ttl_seconds)
    if purpose == PURPOSE_PASSWORD_RESET:
        return f"Your Draftdesk password reset code is {code}. Valid for {minutes} minutes."
    return f"Your Draftdesk verification code is {code}. Expires in {minutes} minutes."


class NotificationDispatcher:
    def __init__(self, email_provider: EmailProvider, sms_provider: SmsProvider) -> None:
        self._email = email_provider
        self._sms = sms_provider

    async def send_email(
        self, to: str, code: str, purpose: str, ttl_seconds: int
    ) -> None:
        minutes = _ttl_minutes(ttl_seconds)
        try:
            if purpose == PURPOSE_PASSWORD_RESET:
                sent = await self._email.send_password_reset_email(to, code, minutes)
            else:
                sent = await self._email.send_otp_email(to, code, minutes)
        except Exception as e:
            log.error(
                "code_delivery_failed",
                channel=CHANNEL_EMAIL,
                destination=mask_target(to),
                purpose=purpose,
                error_type=type(e).__name__,
            )
            raise DeliveryError(DELIVERY_FAILED_MESSAGE) from e

        if not sent:
            log.error(
                "code_delivery_failed",
                channel=CHANNEL_EMAIL,
                destination=mask_target(to),
                purpose=purpose,
            )
            raise DeliveryError(DELIVERY_FAILED_MESSAGE)

    async def send_sms(self, to: str, code: str, purpose: str, ttl_seconds: int) -> None:
        try:
            sent = await self._sms.send(to, sms_body(code, purpose, ttl_seconds))
        except Exception as e:
            log.error(
                "code_delivery_failed",
                channel=CHANNEL_PHONE,
                destination=mask_target(to),
                purpose=purpose,
                error_type=type(e).__name__,
            )
            raise DeliveryError(DELIVERY_FAILED_MESSAGE) from e

        if not sent:
            log.error(
                "code_delivery_failed",
                channel=CHANNEL_PHONE,
                destination=mask_target(to),
                purpose=purpose,
            )
            raise DeliveryError(DELIVERY_FAILED_MESSAGE)

    async def deliver(
        self, channel: str, to: str, code: str, purpose: str, ttl_seconds: int
    ) -> None:
        """Route *code* to the provider for *channel*."""
        if channel == CHANNEL_EMAIL:
            await self.send_email(to, code, purpose, ttl_seconds)
        else:
            await self.send_sms(to, code, purpose, ttl_seconds)
