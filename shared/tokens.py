"""
Session token codec — signs and verifies the ``accessToken`` JWT.

verify() collapses every failure (malformed token, ``alg: none``, bad
signature, missing claims, expiry) into a single ``None`` result so callers
cannot tell a forged token from an expired one.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import jwt
from pydantic import ValidationError as PydanticValidationError

from schemas.models.token import SessionClaims
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger

log = get_logger(__name__)


class TokenCodec:
    def __init__(
        self,
        secret: str,
        ttl_seconds: int,
        algorithm: str = "HS256",
        clock: Optional[Clock] = None,
    ) -> None:
        if not secret:
            raise ValueError("a signing secret is required")
        if algorithm.lower() == "none":
            raise ValueError("unsigned tokens are not supported")
        self._secret = secret
        self._algorithm = algorithm
        self.ttl_seconds = ttl_seconds
        self._clock = clock or utcnow

    def issue(self, claims: SessionClaims) -> str:
        """Sign *claims* with an ``iat`` of now and ``exp`` of now + TTL."""
        now = self._clock()
        payload = {
            "sub": claims.sub,
            "email": claims.email,
            "name": claims.name,
            "phone": claims.phone,
            "tokenVersion": claims.token_version,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.ttl_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Optional[SessionClaims]:
        """Return the claims of a valid token, or ``None``."""
        if not token:
            return None
        try:
            header = jwt.get_unverified_header(token)
            alg = header.get("alg")
            if not alg or str(alg).lower() == "none":
                log.warning("session_token_rejected", reason="unsigned")
                return None
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["sub", "exp", "iat"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
            claims = SessionClaims.model_validate(payload)
            # Expiry is judged against the injected clock, not the host time
            if claims.exp is None or claims.exp <= int(self._clock().timestamp()):
                raise jwt.ExpiredSignatureError("Signature has expired")
            return claims
        except jwt.ExpiredSignatureError:
            log.info("session_token_rejected", reason="expired")
            return None
        except (jwt.InvalidTokenError, PydanticValidationError) as e:
            log.warning(
                "session_token_rejected", reason="invalid", error_type=type(e).__name__
            )
            return None
