"""Repository for the persisted email template settings row."""

from sqlalchemy.ext.asyncio import AsyncSession

from magiclink.models.email_template_settings import (
    EMAIL_SETTINGS_KEY,
    EmailTemplateSetting,
)

_TEMPLATE_FIELDS: tuple[str, ...] = (
    "default_from",
    "default_reply_to",
    "subject",
    "text_body",
    "html_body",
)


class EmailTemplateSettingsRepository:
    """Stateless repository for the email_template_settings table."""

    @staticmethod
    async def get(
        db: AsyncSession, key: str = EMAIL_SETTINGS_KEY
    ) -> EmailTemplateSetting | None:
        """Fetch the settings row, or None if nothing was ever saved."""
        return await db.get(EmailTemplateSetting, key)

    @staticmethod
    async def upsert(
        db: AsyncSession,
        *,
        key: str = EMAIL_SETTINGS_KEY,
        **fields: str,
    ) -> EmailTemplateSetting:
        """Create or overwrite the settings row.

        Every template field is written; fields not passed are reset to "".

        Args:
            db: Async database session.
            key: Row key.
            **fields: Template field values.

        Returns:
            The stored row.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(fields) - set(_TEMPLATE_FIELDS)
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        row = await db.get(EmailTemplateSetting, key)
        if row is None:
            row = EmailTemplateSetting(key=key)
            db.add(row)

        for name in _TEMPLATE_FIELDS:
            setattr(row, name, fields.get(name, ""))

        await db.flush()
        return row
