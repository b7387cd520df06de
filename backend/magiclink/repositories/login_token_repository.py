"""SQLAlchemy implementation of the token store.

Every mutation commits in its own transaction, so a redemption is durable
once mark_used() returns True. Conditional deactivation is a single
``UPDATE ... WHERE id = :id AND is_active RETURNING id``: PostgreSQL row
locking makes a concurrent second update see zero rows.
"""

import uuid
from datetime import datetime

from sqlalchemy import exists, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from magiclink.models.login_token import LoginToken
from magiclink.services.token_store import (
    DuplicateTokenError,
    NewTokenRecord,
    TokenRecord,
)


def _to_record(row: LoginToken) -> TokenRecord:
    return TokenRecord(
        id=row.id,
        email=row.email,
        token=row.token,
        code=row.code,
        expires_at=row.expires_at,
        is_active=row.is_active,
        context=dict(row.context or {}),
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        last_used_at=row.last_used_at,
        created_at=row.created_at,
    )


class SqlAlchemyTokenStore:
    """Token store backed by the login_tokens table.

    Args:
        db: Async database session. The store commits on it after each write.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def token_exists(self, token: str) -> bool:
        """Check whether any record, active or not, holds the token."""
        stmt = select(exists().where(LoginToken.token == token))
        result = await self._db.execute(stmt)
        return bool(result.scalar())

    async def active_code_exists(self, email: str, code: str) -> bool:
        """Check whether an active record for the email holds the code."""
        stmt = select(
            exists().where(
                LoginToken.email == email,
                LoginToken.code == code,
                LoginToken.is_active.is_(True),
            )
        )
        result = await self._db.execute(stmt)
        return bool(result.scalar())

    async def deactivate_active_for_email(self, email: str) -> int:
        """Deactivate all active records for an email.

        Args:
            email: Lowercased email address.

        Returns:
            Number of records deactivated.
        """
        stmt = (
            update(LoginToken)
            .where(LoginToken.email == email, LoginToken.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        await self._db.commit()
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    async def create(self, record: NewTokenRecord) -> TokenRecord:
        """Insert a new active record.

        Args:
            record: Values for the new row.

        Returns:
            The stored record with database-generated fields.

        Raises:
            DuplicateTokenError: If the token, or the active (email, code)
                pair, already exists. Nothing is persisted.
        """
        stmt = (
            insert(LoginToken)
            .values(
                email=record.email,
                token=record.token,
                code=record.code,
                expires_at=record.expires_at,
                is_active=True,
                context=record.context,
                ip_address=record.ip_address,
                user_agent=record.user_agent,
            )
            .returning(LoginToken)
        )
        try:
            result = await self._db.execute(stmt)
            row = result.scalar_one()
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            raise DuplicateTokenError("login token uniqueness violated") from exc
        return _to_record(row)

    async def find_active_by_token(self, token: str) -> TokenRecord | None:
        """Fetch the active record holding a token."""
        stmt = select(LoginToken).where(
            LoginToken.token == token,
            LoginToken.is_active.is_(True),
        )
        result = await self._db.execute(stmt)
        row = result.scalar_one_or_none()
        return _to_record(row) if row is not None else None

    async def find_active_by_code(self, email: str, code: str) -> TokenRecord | None:
        """Fetch the newest active record for (email, code)."""
        stmt = (
            select(LoginToken)
            .where(
                LoginToken.email == email,
                LoginToken.code == code,
                LoginToken.is_active.is_(True),
            )
            .order_by(LoginToken.created_at.desc())
            .limit(1)
        )
        result = await self._db.execute(stmt)
        row = result.scalar_one_or_none()
        return _to_record(row) if row is not None else None

    async def _deactivate_if_active(
        self, record_id: uuid.UUID, **values: object
    ) -> bool:
        stmt = (
            update(LoginToken)
            .where(LoginToken.id == record_id, LoginToken.is_active.is_(True))
            .values(is_active=False, **values)
            .returning(LoginToken.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        applied = result.scalar_one_or_none() is not None
        await self._db.commit()
        return applied

    async def deactivate(self, record_id: uuid.UUID) -> bool:
        """Deactivate a record if it is still active.

        Returns:
            True if this call flipped is_active, False otherwise.
        """
        return await self._deactivate_if_active(record_id)

    async def mark_used(self, record_id: uuid.UUID, used_at: datetime) -> bool:
        """Deactivate a record and stamp last_used_at, if it is still active.

        Returns:
            True if this call redeemed the record, False if another caller
            got there first.
        """
        return await self._deactivate_if_active(record_id, last_used_at=used_at)
