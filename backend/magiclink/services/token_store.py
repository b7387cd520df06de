"""Token store contract and the record types that cross it.

The token service depends only on the TokenStore protocol. The production
implementation lives in magiclink.repositories.login_token_repository; tests
use an in-memory fake.

Store guarantees the service relies on:
- create() rejects a duplicate token, or a duplicate (email, code) among
  active records, with DuplicateTokenError and persists nothing.
- deactivate() and mark_used() are conditional on the record still being
  active and report whether they applied. Under concurrency at most one
  caller sees True for a given record.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Protocol


class DuplicateTokenError(Exception):
    """Raised by TokenStore.create when a uniqueness constraint rejects the insert."""


@dataclass(frozen=True)
class NewTokenRecord:
    """Values for a record about to be created.

    Attributes:
        email: Lowercased email address.
        token: Magic link token.
        code: One-time code.
        expires_at: Absolute expiry time.
        context: Caller metadata, stored verbatim.
        ip_address: Requesting client's IP, if known.
        user_agent: Requesting client's User-Agent, if known.
    """

    email: str
    token: str
    code: str
    expires_at: datetime
    context: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class SanitizedTokenRecord:
    """A token record with the token and code removed."""

    id: uuid.UUID
    email: str
    expires_at: datetime
    is_active: bool
    context: dict[str, Any]
    ip_address: str | None
    user_agent: str | None
    last_used_at: datetime | None
    created_at: datetime | None


@dataclass(frozen=True)
class TokenRecord:
    """A persisted credential pair, secrets included.

    Only the issuer returns this type to callers. Everything else hands out
    sanitized() views.
    """

    id: uuid.UUID
    email: str
    token: str
    code: str
    expires_at: datetime
    is_active: bool
    context: dict[str, Any]
    ip_address: str | None
    user_agent: str | None
    last_used_at: datetime | None
    created_at: datetime | None

    def sanitized(self) -> SanitizedTokenRecord:
        """Return a view of this record without token and code."""
        return SanitizedTokenRecord(
            id=self.id,
            email=self.email,
            expires_at=self.expires_at,
            is_active=self.is_active,
            context=dict(self.context),
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            last_used_at=self.last_used_at,
            created_at=self.created_at,
        )

    def consumed(self, used_at: datetime) -> "TokenRecord":
        """Return this record as it looks after a successful mark_used."""
        return replace(self, is_active=False, last_used_at=used_at)


class TokenStore(Protocol):
    """Persistence operations required by the token lifecycle."""

    async def token_exists(self, token: str) -> bool:
        """True if any record, active or not, holds this token."""
        ...

    async def active_code_exists(self, email: str, code: str) -> bool:
        """True if an active record for this email holds this code."""
        ...

    async def deactivate_active_for_email(self, email: str) -> int:
        """Deactivate every active record for the email; return the count."""
        ...

    async def create(self, record: NewTokenRecord) -> TokenRecord:
        """Persist a new active record.

        Raises:
            DuplicateTokenError: On a token or active (email, code) clash.
        """
        ...

    async def find_active_by_token(self, token: str) -> TokenRecord | None:
        """Return the active record holding this token, if any."""
        ...

    async def find_active_by_code(self, email: str, code: str) -> TokenRecord | None:
        """Return the newest active record for (email, code), if any."""
        ...

    async def deactivate(self, record_id: uuid.UUID) -> bool:
        """Deactivate the record if still active; True if this call did it."""
        ...

    async def mark_used(self, record_id: uuid.UUID, used_at: datetime) -> bool:
        """Deactivate and stamp last_used_at if still active; True if applied."""
        ...
