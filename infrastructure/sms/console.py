"""Console SmsProvider for development: logs a masked destination instead of sending."""

from shared.logging import get_logger, mask_target

log = get_logger(__name__)


class ConsoleSmsProvider:
    def __init__(self, reveal_codes: bool = False) -> None:
        self._reveal_codes = reveal_codes

    async def send(self, to: str, message: str) -> bool:
        log.info(
            "sms_mock_sent",
            destination=mask_target(to),
            body=message if self._reveal_codes else "***",
        )
        return True
