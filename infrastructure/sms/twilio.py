"""Twilio implementation of SmsProvider over the Twilio REST API."""

from config import SmsSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger, mask_target

log = get_logger(__name__)

_TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


class TwilioSmsProvider:
    def __init__(self, settings: SmsSettings, http_client: HttpClient) -> None:
        self._settings = settings
        self._http = http_client

    @property
    def configured(self) -> bool:
        return bool(
            self._settings.twilio_account_sid
            and self._settings.twilio_auth_token
            and self._settings.twilio_from_number
        )

    async def send(self, to: str, message: str) -> bool:
        if not self.configured:
            log.error("sms_send_failed", reason="twilio_not_configured")
            return False

        sid = self._settings.twilio_account_sid
        url = f"{_TWILIO_API_BASE}/Accounts/{sid}/Messages.json"
        data = {
            "To": to,
            "From": self._settings.twilio_from_number,
            "Body": message,
        }

        try:
            response = await self._http.post(
                url, data=data, auth=(sid, self._settings.twilio_auth_token)
            )
        except Exception as e:
            log.error(
                "sms_send_error",
                destination=mask_target(to),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code in (200, 201):
            log.info("sms_sent_success", destination=mask_target(to))
            return True
        log.error(
            "sms_send_failed",
            destination=mask_target(to),
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False
