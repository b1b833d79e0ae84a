"""
One-time-code state — repository protocol and the default in-memory store.

Holds three kinds of record, all keyed by target key:
- PendingCode      (one live code per key; put() overwrites)
- IssuanceCounter  (hourly issuance cap)
- AttemptCounter   (failed-verification lockout)

The OTP and password-reset services each own a separate instance, so
their codes and counters never mix. Locking is the caller's job: the
services wrap each read-check-write sequence in a per-key lock.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Protocol

from schemas.models.otp import AttemptCounter, IssuanceCounter, PendingCode
from shared.datetime_utils import hour_bucket


class CodeRepository(Protocol):
    async def get_pending(self, key: str) -> Optional[PendingCode]: ...

    async def put_pending(self, code: PendingCode) -> None: ...

    async def delete_pending(self, key: str) -> None: ...

    async def purge_expired(self, now: datetime) -> int: ...

    async def get_issuance(self, key: str) -> Optional[IssuanceCounter]: ...

    async def put_issuance(self, counter: IssuanceCounter) -> None: ...

    async def get_attempts(self, key: str) -> Optional[AttemptCounter]: ...

    async def put_attempts(self, counter: AttemptCounter) -> None: ...

    async def delete_attempts(self, key: str) -> None: ...


class InMemoryCodeRepository:
    """Dict-backed store; purge_expired keeps every map bounded by live targets.

    An unblocked attempt counter with no pending code is kept for
    ``attempt_retention_seconds`` after its last failure, so failures
    against a target that has no code still add up to a lockout.
    """

    def __init__(self, attempt_retention_seconds: int = 900) -> None:
        self._attempt_retention = timedelta(seconds=attempt_retention_seconds)
        self._pending: dict[str, PendingCode] = {}
        self._issuance: dict[str, IssuanceCounter] = {}
        self._attempts: dict[str, AttemptCounter] = {}

    async def get_pending(self, key: str) -> Optional[PendingCode]:
        return self._pending.get(key)

    async def put_pending(self, code: PendingCode) -> None:
        self._pending[code.target_key] = code

    async def delete_pending(self, key: str) -> None:
        self._pending.pop(key, None)

    async def purge_expired(self, now: datetime) -> int:
        """Drop expired codes and counters that no longer affect any decision."""
        expired = [k for k, v in self._pending.items() if v.is_expired(now)]
        for key in expired:
            del self._pending[key]

        bucket = hour_bucket(now)
        stale_issuance = [k for k, v in self._issuance.items() if v.hour_start != bucket]
        for key in stale_issuance:
            del self._issuance[key]

        stale_attempts = [
            k for k, v in self._attempts.items() if self._attempts_stale(k, v, now)
        ]
        for key in stale_attempts:
            del self._attempts[key]

        return len(expired) + len(stale_issuance) + len(stale_attempts)

    def _attempts_stale(self, key: str, counter: AttemptCounter, now: datetime) -> bool:
        if counter.blocked_until is not None:
            return counter.blocked_until <= now
        if key in self._pending:
            return False
        return (
            counter.last_failed_at is None
            or now - counter.last_failed_at >= self._attempt_retention
        )

    async def get_issuance(self, key: str) -> Optional[IssuanceCounter]:
        return self._issuance.get(key)

    async def put_issuance(self, counter: IssuanceCounter) -> None:
        self._issuance[counter.target_key] = counter

    async def get_attempts(self, key: str) -> Optional[AttemptCounter]:
        return self._attempts.get(key)

    async def put_attempts(self, counter: AttemptCounter) -> None:
        self._attempts[counter.target_key] = counter

    async def delete_attempts(self, key: str) -> None:
        self._attempts.pop(key, None)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def issuance_count(self) -> int:
        return len(self._issuance)

    @property
    def attempts_count(self) -> int:
        return len(self._attempts)
