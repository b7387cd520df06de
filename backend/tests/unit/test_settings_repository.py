"""Tests for EmailTemplateSettingsRepository against PostgreSQL."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from magiclink.repositories.settings_repository import EmailTemplateSettingsRepository


class TestEmailTemplateSettingsRepository:
    """Single-row get/upsert."""

    async def test_get_returns_none_before_first_write(self, db_session: AsyncSession):
        assert await EmailTemplateSettingsRepository.get(db_session) is None

    async def test_upsert_creates_then_overwrites_every_field(
        self, db_session: AsyncSession
    ):
        await EmailTemplateSettingsRepository.upsert(
            db_session, subject="First", html_body="<p>1</p>"
        )
        await EmailTemplateSettingsRepository.upsert(db_session, subject="Second")

        row = await EmailTemplateSettingsRepository.get(db_session)

        assert row is not None
        assert row.subject == "Second"
        assert row.html_body == ""
        assert row.default_from == ""

    async def test_upsert_rejects_unknown_fields(self, db_session: AsyncSession):
        with pytest.raises(ValueError, match="Unknown fields"):
            await EmailTemplateSettingsRepository.upsert(db_session, footer="x")
