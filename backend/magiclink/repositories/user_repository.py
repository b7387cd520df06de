"""Repository for User operations used by sign-in provisioning."""

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from magiclink.models.user import User

# Fields that may be updated via UserRepository.update().
# Security: 'blocked' and 'role' are deliberately absent; sign-in must never
# be able to unblock or promote an account.
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "confirmed",
        "user_agent",
        "client_ip",
        "attribution",
    }
)


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key."""
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == email.lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        username: str,
        name: str | None,
        provider: str,
        role: str,
        confirmed: bool,
        user_agent: str | None = None,
        client_ip: str | None = None,
        attribution: dict[str, Any] | None = None,
    ) -> User:
        """Create a new user.

        Email is normalized to lowercase before storage.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If email already exists.
        """
        user = User(
            email=email.lower(),
            username=username,
            name=name,
            provider=provider,
            role=role,
            confirmed=confirmed,
            user_agent=user_agent,
            client_ip=client_ip,
            attribution=attribution,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def update(
        db: AsyncSession,
        user_id: uuid.UUID,
        **kwargs: Any,
    ) -> User | None:
        """Update user fields.

        Only fields in _UPDATABLE_FIELDS are allowed.

        Args:
            db: Async database session.
            user_id: UUID of the user to update.
            **kwargs: Field names and values to update.

        Returns:
            Updated User if found, None if user does not exist.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        user = await db.get(User, user_id)
        if user is None:
            return None

        for field, value in kwargs.items():
            setattr(user, field, value)

        await db.flush()
        await db.refresh(user)
        return user
