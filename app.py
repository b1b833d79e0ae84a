"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.sessions import SessionMiddleware

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.console import ConsoleEmailProvider
from infrastructure.email.protocol import EmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from infrastructure.oauth_clients import OAuthProfileProvider, init_google_oauth
from infrastructure.sms.console import ConsoleSmsProvider
from infrastructure.sms.protocol import SmsProvider
from infrastructure.sms.twilio import TwilioSmsProvider
from repositories.code_repository import InMemoryCodeRepository
from repositories.user_repository import InMemoryUserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.limiter import configure_limiter
from routes.oauth_routes import router as oauth_router
from services.auth_service import AuthService
from services.notification_service import NotificationDispatcher
from services.otp_service import OtpService
from services.reset_service import ResetService
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger, setup_logging
from shared.tokens import TokenCodec

log = get_logger(__name__)


def _build_email_provider(
    settings: AppSettings, http_clients: list[HttpClient]
) -> EmailProvider:
    if settings.email.email_provider == "zeptomail":
        client = HttpClient(timeout=10.0, service="zeptomail")
        http_clients.append(client)
        return ZeptoMailProvider(settings.email, client, app_name=settings.email.zepto_from_name)
    return ConsoleEmailProvider(reveal_codes=not settings.is_production)


def _build_sms_provider(
    settings: AppSettings, http_clients: list[HttpClient]
) -> SmsProvider:
    if settings.sms.sms_provider == "twilio":
        client = HttpClient(timeout=10.0, service="twilio")
        http_clients.append(client)
        return TwilioSmsProvider(settings.sms, client)
    return ConsoleSmsProvider(reveal_codes=not settings.is_production)


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    email_provider: Optional[EmailProvider] = None,
    sms_provider: Optional[SmsProvider] = None,
    oauth_provider: Optional[OAuthProfileProvider] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Create and return a fully configured FastAPI application.

    Providers and the clock can be injected for tests; otherwise they are
    built from *settings*.
    """
    if settings is None:
        settings = AppSettings()
    clock = clock or utcnow

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            environment=settings.env,
        )

    setup_logging(settings.logging.log_level, settings.logging.log_format)

    if settings.is_production and settings.jwt.jwt_secret == "dev-secret-change-in-production":
        log.warning("jwt_secret_is_default")

    http_clients: list[HttpClient] = []
    if email_provider is None:
        email_provider = _build_email_provider(settings, http_clients)
    if sms_provider is None:
        sms_provider = _build_sms_provider(settings, http_clients)
    if oauth_provider is None:
        oauth_provider = init_google_oauth(settings.oauth)

    notifier = NotificationDispatcher(email_provider, sms_provider)
    users = InMemoryUserRepository(clock=clock)
    otp_service = OtpService(
        InMemoryCodeRepository(attempt_retention_seconds=settings.otp.otp_lockout_seconds),
        notifier,
        settings.otp,
        is_production=settings.is_production,
        clock=clock,
    )
    reset_service = ResetService(
        InMemoryCodeRepository(),
        notifier,
        ttl_seconds=settings.otp.reset_ttl_seconds,
        code_length=settings.otp.otp_code_length,
        clock=clock,
    )
    tokens = TokenCodec(
        settings.jwt.jwt_secret,
        settings.jwt.access_token_ttl_seconds,
        algorithm=settings.jwt.jwt_algorithm,
        clock=clock,
    )
    auth_service = AuthService(
        users,
        otp_service,
        reset_service,
        tokens,
        allow_implicit_provisioning=settings.otp.allow_implicit_provisioning,
        clock=clock,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("app_started", env=settings.env, app_name=settings.app_name)
        yield
        # ── Shutdown ─────────────────────────────────────────────────────────
        for client in http_clients:
            await client.aclose()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.users = users
    app.state.otp_service = otp_service
    app.state.reset_service = reset_service
    app.state.auth_service = auth_service
    app.state.oauth_provider = oauth_provider
    app.state.limiter = configure_limiter(settings.rate_limit)

    app.add_middleware(SlowAPIMiddleware)
    # Authlib keeps the OAuth state parameter in the session
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        same_site="lax",
        https_only=settings.cookie_secure,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(oauth_router)

    return app
