"""
Input validators and normalisers — framework-agnostic, pure functions.

Normalisation always runs before validation: zero-width characters are
stripped, text is NFC-normalised, emails are lower-cased and whitespace is
removed from phone numbers.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
TECHNICAL_EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+")
E164_PATTERN = re.compile(r"\+[1-9][0-9]{1,14}")
OTP_CODE_PATTERN = re.compile(r"[0-9]{6}")
PASSWORD_CHARSET_PATTERN = re.compile(r"[a-zA-Z0-9]+")
_INVISIBLE_PATTERN = re.compile("[\u200b-\u200d\ufeff]")

CHANNEL_EMAIL = "email"
CHANNEL_PHONE = "phone"
CHANNELS = (CHANNEL_EMAIL, CHANNEL_PHONE)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8


def strip_invisible(value: Optional[str]) -> str:
    """Remove zero-width characters and surrounding whitespace."""
    if not isinstance(value, str):
        return ""
    return _INVISIBLE_PATTERN.sub("", value).strip()


def normalize_email(value: Optional[str]) -> str:
    return unicodedata.normalize("NFC", strip_invisible(value)).lower()


def normalize_phone(value: Optional[str]) -> str:
    return unicodedata.normalize("NFC", re.sub(r"\s", "", strip_invisible(value)))


def normalize_target(channel: str, value: Optional[str]) -> str:
    """Normalise *value* according to the delivery *channel*."""
    if channel == CHANNEL_EMAIL:
        return normalize_email(value)
    return normalize_phone(value)


def is_valid_email(value: Optional[str]) -> bool:
    """Return True for an RFC-lite email of 3–254 characters."""
    if not isinstance(value, str):
        return False
    email = normalize_email(value)
    if len(email) < 3 or len(email) > 254:
        return False
    return bool(
        EMAIL_PATTERN.fullmatch(email) or TECHNICAL_EMAIL_PATTERN.fullmatch(email)
    )


def is_valid_e164(value: Optional[str]) -> bool:
    """Return True for an E.164 phone number such as ``+15551234567``."""
    if not isinstance(value, str):
        return False
    return bool(E164_PATTERN.fullmatch(re.sub(r"\s", "", value)))


def is_valid_name(value: Optional[str]) -> bool:
    name = value.strip() if isinstance(value, str) else ""
    return NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH


def is_valid_password(value: Optional[str]) -> bool:
    """Validate an account password.

    Rules:
    - At least 8 characters
    - ASCII letters and digits only
    - At least one uppercase letter, one lowercase letter and one digit
    """
    if not isinstance(value, str):
        return False
    password = strip_invisible(value)
    if len(password) < PASSWORD_MIN_LENGTH:
        return False
    if not PASSWORD_CHARSET_PATTERN.fullmatch(password):
        return False
    if not re.search(r"[a-z]", password):
        return False
    if not re.search(r"[A-Z]", password):
        return False
    if not re.search(r"[0-9]", password):
        return False
    return True


def is_valid_otp_code(value: Optional[str]) -> bool:
    return isinstance(value, str) and bool(OTP_CODE_PATTERN.fullmatch(value))


def is_valid_channel(value: Optional[str]) -> bool:
    return value in CHANNELS


def is_valid_target(channel: str, target: str) -> bool:
    """Validate an already-normalised *target* for *channel*."""
    if channel == CHANNEL_EMAIL:
        return is_valid_email(target)
    return is_valid_e164(target)


def classify_email_or_phone(value: Optional[str]) -> Optional[str]:
    """Return ``"email"``, ``"phone"`` or ``None`` for a free-form identifier."""
    candidate = value.strip() if isinstance(value, str) else ""
    if is_valid_email(candidate):
        return CHANNEL_EMAIL
    if is_valid_e164(candidate):
        return CHANNEL_PHONE
    return None
