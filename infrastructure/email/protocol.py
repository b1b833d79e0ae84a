"""EmailProvider protocol — the notification service depends on this, not the concrete implementation."""

from typing import Protocol


class EmailProvider(Protocol):
    async def send_otp_email(self, email: str, otp_code: str, ttl_minutes: int) -> bool: ...

    async def send_password_reset_email(
        self, email: str, otp_code: str, ttl_minutes: int
    ) -> bool: ...
