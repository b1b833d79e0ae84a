"""Console EmailProvider for development: logs instead of sending."""

from shared.logging import get_logger, mask_target

log = get_logger(__name__)


class ConsoleEmailProvider:
    def __init__(self, reveal_codes: bool = False) -> None:
        # Outside production the code is logged so it can be typed in by hand
        self._reveal_codes = reveal_codes

    async def _log(self, kind: str, email: str, otp_code: str) -> bool:
        log.info(
            "email_mock_sent",
            kind=kind,
            to_email=mask_target(email),
            otp=otp_code if self._reveal_codes else "******",
        )
        return True

    async def send_otp_email(self, email: str, otp_code: str, ttl_minutes: int) -> bool:
        return await self._log("verification", email, otp_code)

    async def send_password_reset_email(
        self, email: str, otp_code: str, ttl_minutes: int
    ) -> bool:
        return await self._log("password_reset", email, otp_code)
