"""SmsProvider protocol — the notification service depends on this, not the concrete implementation."""

from typing import Protocol


class SmsProvider(Protocol):
    async def send(self, to: str, message: str) -> bool: ...
