"""ZeptoMail implementation of EmailProvider.

Codes go out as transactional mail through the ZeptoMail HTTP API. The HTML
body comes from a Jinja2 template under templates/emails; a plain-text
alternative is always attached.
"""

import os

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger, mask_target

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"
_TOKEN_PREFIX = "Zoho-enczapikey "
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)

# kind -> (subject, template, plain-text body)
_MESSAGES = {
    "otp": (
        "Your verification code",
        "otp.html",
        "Your verification code is: {code}. It expires in {ttl} minutes.",
    ),
    "password_reset": (
        "Password reset code",
        "password_reset.html",
        "Your password reset code is: {code}. It is valid for {ttl} minutes.",
    ),
}


def _authorization(token: str) -> str:
    return token if token.startswith(_TOKEN_PREFIX) else _TOKEN_PREFIX + token


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        app_name: str = "Draftdesk",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_name = app_name
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def send_otp_email(self, email: str, otp_code: str, ttl_minutes: int) -> bool:
        return await self._deliver("otp", email, otp_code, ttl_minutes)

    async def send_password_reset_email(
        self, email: str, otp_code: str, ttl_minutes: int
    ) -> bool:
        return await self._deliver("password_reset", email, otp_code, ttl_minutes)

    async def _deliver(self, kind: str, email: str, code: str, ttl_minutes: int) -> bool:
        token = self._settings.zepto_api_token
        if not token:
            log.error("zepto_mail_send_failed", reason="token_not_configured")
            return False

        subject, template_name, text = _MESSAGES[kind]
        html_body = self._jinja.get_template(template_name).render(
            otp_code=code, ttl_minutes=ttl_minutes, app_name=self._app_name
        )
        payload = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": email, "name": email}}],
            "subject": subject,
            "htmlbody": html_body,
            "textbody": text.format(code=code, ttl=ttl_minutes),
        }

        try:
            response = await self._http.post(
                _ZEPTO_API_URL,
                json=payload,
                headers={
                    "Authorization": _authorization(token),
                    "Content-Type": "application/json",
                },
            )
        except Exception as e:
            log.error(
                "email_send_error",
                kind=kind,
                to_email=mask_target(email),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if 200 <= response.status_code < 300:
            log.info("email_sent_success", kind=kind, to_email=mask_target(email))
            return True
        log.error(
            "email_sent_failed",
            kind=kind,
            to_email=mask_target(email),
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False
