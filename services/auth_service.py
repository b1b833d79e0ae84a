"""
AuthService — orchestrates signup, sign-in by one-time code, password
reset and session validation.

Every operation validates and normalises its input before touching the
user directory or the code registries. Routes translate the returned
SessionGrant into the ``accessToken`` cookie; this layer never sees HTTP.
"""

from __future__ import annotations

import asyncio
import re
from typing import Optional

from errors import (
    AuthenticationError,
    DuplicateIdentityError,
    InvalidOrExpiredCodeError,
    NotRegisteredError,
    SessionExpiredError,
    ValidationError,
)
from infrastructure.oauth_clients import OAuthProfile
from repositories.user_repository import DUPLICATE_IDENTITY_MESSAGE, UserRepository
from schemas.models.token import SessionClaims, SessionGrant
from schemas.models.user import User, UserCandidate
from services.otp_service import INVALID_CODE_MESSAGE, OtpService
from services.reset_service import ResetService
from shared.crypto import hash_secret
from shared.datetime_utils import Clock, seconds_until, utcnow
from shared.logging import get_logger, mask_target
from shared.tokens import TokenCodec
from shared.validators import (
    CHANNEL_EMAIL,
    CHANNEL_PHONE,
    classify_email_or_phone,
    is_valid_channel,
    is_valid_e164,
    is_valid_email,
    is_valid_name,
    is_valid_otp_code,
    is_valid_password,
    normalize_email,
    normalize_target,
    strip_invisible,
)

log = get_logger(__name__)

INVALID_NAME_MESSAGE = "Invalid name (2–50 characters)"
INVALID_EMAIL_MESSAGE = "Invalid email"
INVALID_PHONE_MESSAGE = "Invalid phone (E.164)"
INVALID_EMAIL_OR_PHONE_MESSAGE = "Invalid email or phone"
INVALID_CHANNEL_MESSAGE = "Invalid channel"
MISSING_TARGET_MESSAGE = "Missing email or phone"
WEAK_PASSWORD_MESSAGE = (
    "Password must be 8+ characters with uppercase, lowercase and a number"
)
NOT_REGISTERED_MESSAGE = "Email or phone not registered. Please sign up first."
ACCOUNT_NOT_FOUND_MESSAGE = "Account not found. Please sign up first."
LOGIN_MESSAGE = "If an account exists, you will receive a code."
CODE_SENT_MESSAGE = "Code sent."
PASSWORD_UPDATED_MESSAGE = "Password updated."
UNAUTHORIZED_MESSAGE = "Unauthorized"
SESSION_EXPIRED_MESSAGE = "Session expired. Please sign in again."

PROVISIONED_USER_NAME = "Test User"
PROVISIONED_EMAIL_DOMAIN = "otp.local"


def public_profile(user: User) -> dict:
    """The subset of a user record safe to return to clients."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone or "",
    }


def reset_sent_message(ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    return f"Reset code sent. Valid for {minutes} minutes."


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        otp: OtpService,
        resets: ResetService,
        tokens: TokenCodec,
        *,
        allow_implicit_provisioning: bool = False,
        clock: Optional[Clock] = None,
    ) -> None:
        self._users = users
        self._otp = otp
        self._resets = resets
        self._tokens = tokens
        self._allow_implicit_provisioning = allow_implicit_provisioning
        self._clock = clock or utcnow

    # ── Input helpers ────────────────────────────────────────────────────────

    @staticmethod
    def _require_channel(channel: Optional[str]) -> str:
        if not is_valid_channel(channel):
            raise ValidationError(INVALID_CHANNEL_MESSAGE, field="channel")
        return channel  # type: ignore[return-value]

    @staticmethod
    def _require_target(channel: str, raw_target: Optional[str]) -> str:
        target = normalize_target(channel, raw_target)
        if not target:
            raise ValidationError(MISSING_TARGET_MESSAGE)
        if channel == CHANNEL_EMAIL and not is_valid_email(target):
            raise ValidationError(INVALID_EMAIL_MESSAGE, field="email")
        if channel == CHANNEL_PHONE and not is_valid_e164(target):
            raise ValidationError(INVALID_PHONE_MESSAGE, field="phone")
        return target

    @staticmethod
    def _require_code(code: Optional[str]) -> str:
        cleaned = strip_invisible(code)
        if not is_valid_otp_code(cleaned):
            raise InvalidOrExpiredCodeError(INVALID_CODE_MESSAGE)
        return cleaned

    async def _find_by_target(self, channel: str, target: str) -> Optional[User]:
        if channel == CHANNEL_EMAIL:
            return await self._users.find_by_email(target)
        return await self._users.find_by_phone(target)

    async def _hash_password(self, password: str) -> tuple[str, str]:
        return await asyncio.to_thread(hash_secret, password)

    def _grant(self, user: User) -> SessionGrant:
        token = self._tokens.issue(
            SessionClaims(
                sub=user.id,
                email=user.email,
                name=user.name,
                phone=user.phone,
                token_version=user.token_version,
            )
        )
        return SessionGrant(user=user, access_token=token)

    # ── Operations ───────────────────────────────────────────────────────────

    async def signup(
        self,
        name: Optional[str],
        email: Optional[str],
        phone: Optional[str],
        password: Optional[str] = None,
        otp_channel: Optional[str] = None,
    ) -> dict:
        """Create an account and send the first verification code.

        The password is optional; a blank one is treated as absent. The code
        goes to the email address unless *otp_channel* is ``"phone"``.
        """
        clean_name = (name or "").strip()
        if not is_valid_name(clean_name):
            raise ValidationError(INVALID_NAME_MESSAGE, field="name")
        clean_email = normalize_target(CHANNEL_EMAIL, email)
        if not is_valid_email(clean_email):
            raise ValidationError(INVALID_EMAIL_MESSAGE, field="email")
        clean_phone = normalize_target(CHANNEL_PHONE, phone)
        if not is_valid_e164(clean_phone):
            raise ValidationError(INVALID_PHONE_MESSAGE, field="phone")

        clean_password = strip_invisible(password) or None
        if clean_password is not None and not is_valid_password(clean_password):
            raise ValidationError(WEAK_PASSWORD_MESSAGE, field="password")

        channel = otp_channel or CHANNEL_EMAIL
        self._require_channel(channel)

        if await self._users.find_by_email(clean_email) or await self._users.find_by_phone(
            clean_phone
        ):
            log.info("signup_rejected", reason="duplicate_identity")
            raise DuplicateIdentityError(DUPLICATE_IDENTITY_MESSAGE)

        password_hash = password_salt = None
        if clean_password is not None:
            password_hash, password_salt = await self._hash_password(clean_password)

        user = await self._users.create(
            UserCandidate(
                name=clean_name,
                email=clean_email,
                phone=clean_phone,
                password_hash=password_hash,
                password_salt=password_salt,
            )
        )
        log.info("signup_completed", user_id=user.id, otp_channel=channel)

        target = clean_phone if channel == CHANNEL_PHONE else clean_email
        await self._otp.issue(channel, target)
        return {"status": "ok", "next": "verify-otp"}

    async def login(self, email_or_phone: Optional[str]) -> dict:
        channel = classify_email_or_phone(email_or_phone)
        if channel is None:
            raise ValidationError(INVALID_EMAIL_OR_PHONE_MESSAGE, field="emailOrPhone")
        target = normalize_target(channel, email_or_phone)

        if await self._find_by_target(channel, target) is None:
            log.info("login_rejected", channel=channel, target=mask_target(target))
            raise NotRegisteredError(NOT_REGISTERED_MESSAGE)

        await self._otp.issue(channel, target)
        return {"status": "ok", "message": LOGIN_MESSAGE}

    async def request_otp(self, channel: Optional[str], target: Optional[str]) -> dict:
        channel = self._require_channel(channel)
        clean_target = self._require_target(channel, target)
        expires_at = await self._otp.issue(channel, clean_target)
        return {
            "status": "ok",
            "message": CODE_SENT_MESSAGE,
            "expires_in": seconds_until(expires_at, self._clock()),
        }

    async def verify_otp(
        self, channel: Optional[str], target: Optional[str], code: Optional[str]
    ) -> SessionGrant:
        """Consume a sign-in code and open a session for its owner."""
        channel = self._require_channel(channel)
        clean_code = self._require_code(code)
        clean_target = self._require_target(channel, target)

        await self._otp.verify(channel, clean_target, clean_code)

        user = await self._find_by_target(channel, clean_target)
        if user is None:
            if not self._allow_implicit_provisioning:
                log.info("otp_login_unknown_target", channel=channel)
                raise NotRegisteredError(ACCOUNT_NOT_FOUND_MESSAGE)
            user = await self._provision(channel, clean_target)

        log.info("session_opened", user_id=user.id, method="otp", channel=channel)
        return self._grant(user)

    async def _provision(self, channel: str, target: str) -> User:
        if channel == CHANNEL_EMAIL:
            email, phone = target, None
        else:
            digits = re.sub(r"[^0-9]", "", target)
            email, phone = f"phone-{digits}@{PROVISIONED_EMAIL_DOMAIN}", target
        user = await self._users.create(
            UserCandidate(name=PROVISIONED_USER_NAME, email=email, phone=phone)
        )
        log.warning("user_provisioned_implicitly", user_id=user.id, channel=channel)
        return user

    async def forgot_password(self, channel: Optional[str], target: Optional[str]) -> dict:
        channel = self._require_channel(channel)
        clean_target = self._require_target(channel, target)

        if await self._find_by_target(channel, clean_target) is None:
            raise NotRegisteredError(NOT_REGISTERED_MESSAGE)

        await self._resets.issue(channel, clean_target)
        return {"status": "ok", "message": reset_sent_message(self._resets.ttl_seconds)}

    async def reset_password(
        self,
        channel: Optional[str],
        target: Optional[str],
        code: Optional[str],
        new_password: Optional[str],
    ) -> SessionGrant:
        """Consume a reset code, replace the password and open a new session.

        Replacing the password bumps the user's token version, so every
        session token issued before the reset stops validating.
        """
        channel = self._require_channel(channel)
        clean_code = self._require_code(code)
        clean_password = strip_invisible(new_password)
        if not is_valid_password(clean_password):
            raise ValidationError(WEAK_PASSWORD_MESSAGE, field="newPassword")
        clean_target = self._require_target(channel, target)

        await self._resets.verify_and_consume(channel, clean_target, clean_code)

        user = await self._find_by_target(channel, clean_target)
        if user is None:
            raise NotRegisteredError(ACCOUNT_NOT_FOUND_MESSAGE)

        password_hash, password_salt = await self._hash_password(clean_password)
        await self._users.update_password(user.id, password_hash, password_salt)
        updated = await self._users.find_by_id(user.id)
        if updated is None:
            raise NotRegisteredError(ACCOUNT_NOT_FOUND_MESSAGE)

        log.info("password_reset_completed", user_id=updated.id)
        return self._grant(updated)

    async def validate_session(self, token: Optional[str]) -> User:
        """Resolve the user behind a session token.

        Raises:
            AuthenticationError: missing, malformed, forged or expired token,
                or a subject that no longer exists.
            SessionExpiredError: the token predates a password change.
        """
        if not token:
            raise AuthenticationError(UNAUTHORIZED_MESSAGE)
        claims = self._tokens.verify(token)
        if claims is None:
            raise AuthenticationError(UNAUTHORIZED_MESSAGE)
        user = await self._users.find_by_id(claims.sub)
        if user is None:
            raise AuthenticationError(UNAUTHORIZED_MESSAGE)
        if claims.token_version != user.token_version:
            log.info("session_rejected", user_id=user.id, reason="token_version")
            raise SessionExpiredError(SESSION_EXPIRED_MESSAGE)
        return user

    async def oauth_login(self, profile: OAuthProfile) -> SessionGrant:
        """Find or create the user for a verified Google profile."""
        user = await self._users.find_by_google_id(profile.provider_id)
        if user is None:
            user = await self._users.find_by_email(normalize_email(profile.email))
        if user is None:
            name = profile.name.strip() if profile.name else ""
            if not is_valid_name(name):
                name = profile.email.split("@", 1)[0][:50] or PROVISIONED_USER_NAME
            user = await self._users.create(
                UserCandidate(
                    name=name,
                    email=normalize_email(profile.email),
                    google_id=profile.provider_id,
                )
            )
        log.info("session_opened", user_id=user.id, method="google")
        return self._grant(user)
