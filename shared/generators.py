"""
Random code and identifier generators — pure, side-effect-free functions.

All generators use cryptographically secure sources (``secrets`` module).
"""

from __future__ import annotations

import secrets
import string


def generate_otp_code(length: int = 6) -> str:
    """Generate a cryptographically secure numeric OTP.

    Args:
        length: Number of digits (default 6).

    Returns:
        String of random decimal digits.
    """
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_user_id() -> str:
    """Generate an opaque user identifier, e.g. ``usr_3f9c0a7d51e24b6c``."""
    return f"usr_{secrets.token_hex(8)}"
