"""
User directory — repository protocol and the default in-memory store.

Services depend on the UserRepository protocol; a database-backed
implementation can replace InMemoryUserRepository without touching them.

Lookups normalise their argument (email lower-cased, phone stripped to
canonical E.164) so callers may pass raw input. create() and
update_password() run inside a single write lock, which makes the
"is this email/phone taken?" check and the insert one atomic step.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol

from errors import DuplicateIdentityError
from schemas.models.user import User, UserCandidate
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_user_id
from shared.logging import get_logger
from shared.validators import normalize_email, normalize_phone

log = get_logger(__name__)

DUPLICATE_IDENTITY_MESSAGE = "Email or phone already registered."


class UserRepository(Protocol):
    async def find_by_email(self, email: str) -> Optional[User]: ...

    async def find_by_phone(self, phone: str) -> Optional[User]: ...

    async def find_by_google_id(self, google_id: str) -> Optional[User]: ...

    async def find_by_id(self, user_id: str) -> Optional[User]: ...

    async def create(self, candidate: UserCandidate) -> User: ...

    async def update_password(
        self, user_id: str, password_hash: str, password_salt: str
    ) -> None: ...


class InMemoryUserRepository:
    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or utcnow
        self._users: dict[str, User] = {}
        self._by_email: dict[str, str] = {}
        self._by_phone: dict[str, str] = {}
        self._by_google_id: dict[str, str] = {}
        self._write_lock = asyncio.Lock()

    def _get(self, user_id: Optional[str]) -> Optional[User]:
        if user_id is None:
            return None
        user = self._users.get(user_id)
        # Hand out copies so callers cannot mutate stored records
        return user.model_copy() if user else None

    async def find_by_email(self, email: str) -> Optional[User]:
        return self._get(self._by_email.get(normalize_email(email)))

    async def find_by_phone(self, phone: str) -> Optional[User]:
        normalized = normalize_phone(phone)
        if not normalized:
            return None
        return self._get(self._by_phone.get(normalized))

    async def find_by_google_id(self, google_id: str) -> Optional[User]:
        if not google_id:
            return None
        return self._get(self._by_google_id.get(google_id))

    async def find_by_id(self, user_id: str) -> Optional[User]:
        return self._get(user_id)

    async def create(self, candidate: UserCandidate) -> User:
        email = normalize_email(candidate.email)
        phone = normalize_phone(candidate.phone) or None
        google_id = candidate.google_id or None

        async with self._write_lock:
            if (
                email in self._by_email
                or (phone is not None and phone in self._by_phone)
                or (google_id is not None and google_id in self._by_google_id)
            ):
                log.warning("user_create_rejected", reason="duplicate_identity")
                raise DuplicateIdentityError(DUPLICATE_IDENTITY_MESSAGE)

            user_id = generate_user_id()
            while user_id in self._users:
                user_id = generate_user_id()

            user = User(
                id=user_id,
                name=candidate.name.strip(),
                email=email,
                phone=phone,
                google_id=google_id,
                password_hash=candidate.password_hash,
                password_salt=candidate.password_salt,
                token_version=0,
                created_at=self._clock(),
            )
            self._users[user.id] = user
            self._by_email[email] = user.id
            if phone is not None:
                self._by_phone[phone] = user.id
            if google_id is not None:
                self._by_google_id[google_id] = user.id

        log.info(
            "user_created",
            user_id=user.id,
            has_password=user.has_password,
            has_google_id=google_id is not None,
        )
        return user.model_copy()

    async def update_password(
        self, user_id: str, password_hash: str, password_salt: str
    ) -> None:
        async with self._write_lock:
            user = self._users.get(user_id)
            if user is None:
                return
            self._users[user_id] = user.model_copy(
                update={
                    "password_hash": password_hash,
                    "password_salt": password_salt,
                    "token_version": user.token_version + 1,
                }
            )
        log.info("user_password_updated", user_id=user_id)

    def __len__(self) -> int:
        return len(self._users)
