"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Each concern owns a BaseSettings sub-config; AppSettings composes them in a
model_validator so a single AppSettings() call reads everything from the
same env/dotenv source.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_secret: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_ttl_days: int = 10
    cookie_name: str = "accessToken"
    # Older clients still send the session under this name; read-only
    legacy_cookie_name: str = "access_token"

    @property
    def access_token_ttl_seconds(self) -> int:
        return self.access_token_ttl_days * 24 * 60 * 60


class OtpSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Codes are checked as exactly six digits at the API boundary
    otp_code_length: int = Field(default=6, ge=6, le=6)
    otp_ttl_seconds: int = 300
    otp_max_per_hour: int = 5
    otp_max_verify_attempts: int = 5
    otp_lockout_seconds: int = 900
    reset_ttl_seconds: int = 180

    # Creates a placeholder account when a code is verified for an unknown
    # target. Meant for local end-to-end testing only.
    allow_implicit_provisioning: bool = False

    # Substituted for the random code outside production
    test_otp_code: str = Field(default="000000", pattern=r"^[0-9]{6}$")


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    email_provider: str = "console"  # "console" | "zeptomail"

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@draftdesk.app"
    zepto_from_name: str = "Draftdesk"


class SmsSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sms_provider: str = "console"  # "console" | "twilio"

    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""


class OAuthProviderSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    google_oauth_client_id: str = ""
    google_oauth_client_secret: str = ""
    google_oauth_redirect_uri: str = ""

    @property
    def google_configured(self) -> bool:
        return bool(self.google_oauth_client_id and self.google_oauth_client_secret)


class RateLimitSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    rate_limit_enabled: bool = True
    rate_limit_general: str = "200 per 15 minutes"
    rate_limit_auth: str = "30 per 15 minutes"
    rate_limit_otp_request: str = "20 per hour"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "draftdesk-auth"
    secret_key: str = ""

    # Frontend origin; OAuth callbacks redirect back here
    origin: str = "http://localhost:5173"
    cors_origins: list[str] = []

    # OpenAPI docs URL (None disables the docs UI)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    jwt: Optional[JWTSettings] = None
    otp: Optional[OtpSettings] = None
    email: Optional[EmailSettings] = None
    sms: Optional[SmsSettings] = None
    oauth: Optional[OAuthProviderSettings] = None
    rate_limit: Optional[RateLimitSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if not self.cors_origins:
            self.cors_origins = [self.origin]

        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.otp is None:
            self.otp = OtpSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.sms is None:
            self.sms = SmsSettings()
        if self.oauth is None:
            self.oauth = OAuthProviderSettings()
        if self.rate_limit is None:
            self.rate_limit = RateLimitSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        # SessionMiddleware (OAuth state) needs a signing key
        if not self.secret_key:
            self.secret_key = self.jwt.jwt_secret

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production
