"""Tests for UserRepository.

Covers lookup, creation, email uniqueness, and the restricted update set.
Skipped when PostgreSQL is not reachable.
"""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from magiclink.repositories.user_repository import UserRepository

_MISSING_UUID = uuid.UUID("99999999-9999-9999-9999-999999999999")
_TEST_EMAIL = "test@example.com"


async def _create(db: AsyncSession, email: str = _TEST_EMAIL, **overrides):
    values = {
        "email": email,
        "username": email,
        "name": email.split("@", 1)[0],
        "provider": "magiclink",
        "role": "authenticated",
        "confirmed": True,
    }
    values.update(overrides)
    return await UserRepository.create(db, **values)


class TestGetById:
    """Test UserRepository.get_by_id()."""

    async def test_returns_user_when_found(self, db_session: AsyncSession):
        created = await _create(db_session)
        user = await UserRepository.get_by_id(db_session, created.id)
        assert user is not None
        assert user.email == _TEST_EMAIL

    async def test_returns_none_when_not_found(self, db_session: AsyncSession):
        assert await UserRepository.get_by_id(db_session, _MISSING_UUID) is None


class TestGetByEmail:
    """Test UserRepository.get_by_email()."""

    async def test_email_lookup_is_case_insensitive(self, db_session: AsyncSession):
        created = await _create(db_session)
        user = await UserRepository.get_by_email(db_session, "TEST@EXAMPLE.COM")
        assert user is not None
        assert user.id == created.id

    async def test_returns_none_when_not_found(self, db_session: AsyncSession):
        user = await UserRepository.get_by_email(db_session, "nobody@example.com")
        assert user is None


class TestCreate:
    """Test UserRepository.create()."""

    async def test_creates_user_with_defaults(self, db_session: AsyncSession):
        user = await _create(
            db_session,
            email="New@Example.com",
            attribution={"utm_source": "mail"},
            client_ip="10.0.0.1",
        )
        assert user.id is not None
        assert user.email == "new@example.com"
        assert user.blocked is False
        assert user.attribution == {"utm_source": "mail"}
        assert user.created_at is not None

    async def test_duplicate_email_raises(self, db_session: AsyncSession):
        await _create(db_session)
        with pytest.raises(IntegrityError):
            await _create(db_session, email="TEST@example.com")


class TestUpdate:
    """Test UserRepository.update()."""

    async def test_updates_allowed_fields(self, db_session: AsyncSession):
        created = await _create(db_session, confirmed=False)
        user = await UserRepository.update(db_session, created.id, confirmed=True)
        assert user is not None
        assert user.confirmed is True

    async def test_returns_none_when_not_found(self, db_session: AsyncSession):
        result = await UserRepository.update(db_session, _MISSING_UUID, name="x")
        assert result is None

    @pytest.mark.parametrize("field", ["blocked", "role", "email"])
    async def test_rejects_protected_fields(self, db_session: AsyncSession, field):
        created = await _create(db_session)
        with pytest.raises(ValueError, match="Unknown fields"):
            await UserRepository.update(db_session, created.id, **{field: "x"})
