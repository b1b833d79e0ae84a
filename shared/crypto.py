"""
Cryptographic helpers — salted scrypt hashing for passwords and OTP codes.

Every call to hash_secret() draws a fresh 32-byte salt, so two hashes of the
same secret never share a salt or digest. verify_secret() compares digests
with hmac.compare_digest so the comparison time does not depend on where the
first mismatching byte is.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Tuple

from shared.validators import strip_invisible

SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LENGTH = 64
SALT_LENGTH = 32


def _derive(secret: str, salt_hex: str) -> bytes:
    # The stored hex string itself is the KDF salt
    return hashlib.scrypt(
        secret.encode("utf-8"),
        salt=salt_hex.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LENGTH,
    )


def hash_secret(secret: str) -> Tuple[str, str]:
    """Hash *secret* with scrypt under a freshly generated salt.

    Returns:
        ``(digest_hex, salt_hex)`` — a 128-char digest and a 64-char salt.
    """
    salt_hex = secrets.token_hex(SALT_LENGTH)
    digest = _derive(strip_invisible(secret), salt_hex)
    return digest.hex(), salt_hex


def verify_secret(secret: str, digest_hex: str, salt_hex: str) -> bool:
    """Verify *secret* against a stored ``(digest_hex, salt_hex)`` pair.

    Returns:
        ``True`` if the secret matches, ``False`` for any failure
        (wrong secret, malformed digest, empty salt).
    """
    if not digest_hex or not salt_hex:
        return False
    try:
        expected = bytes.fromhex(digest_hex)
    except ValueError:
        return False
    if len(expected) != KEY_LENGTH:
        return False
    derived = _derive(strip_invisible(secret), salt_hex)
    return hmac.compare_digest(derived, expected)
