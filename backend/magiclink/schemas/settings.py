"""Admin email template settings schemas.

The admin UI speaks camelCase (defaultFrom, defaultReplyTo). Update
payloads are lenient: a non-string value is stored as "".
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from magiclink.services.settings_service import EmailTemplateSettings


class EmailTemplateSettingsUpdate(BaseModel):
    """Request body for PUT /admin/settings.

    Every field is written; omitted fields are stored as "".
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    default_from: Any = Field(default=None, alias="defaultFrom")
    default_reply_to: Any = Field(default=None, alias="defaultReplyTo")
    subject: Any = None
    text: Any = None
    html: Any = None

    def to_payload(self) -> dict[str, Any]:
        """Values keyed by settings field name."""
        return self.model_dump(by_alias=False)


class EmailTemplateSettingsResponse(BaseModel):
    """Email template settings as returned by the admin endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    default_from: str = Field(alias="defaultFrom")
    default_reply_to: str = Field(alias="defaultReplyTo")
    subject: str
    text: str
    html: str

    @classmethod
    def from_settings(
        cls, value: EmailTemplateSettings
    ) -> "EmailTemplateSettingsResponse":
        """Build from the service dataclass."""
        return cls(
            default_from=value.default_from,
            default_reply_to=value.default_reply_to,
            subject=value.subject,
            text=value.text,
            html=value.html,
        )
