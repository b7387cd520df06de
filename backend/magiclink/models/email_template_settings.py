"""Email template settings model - admin-edited template layer.

Uses a VARCHAR key as PK (not UUID). A single row keyed "email" holds the
dynamically persisted layer of the settings resolver.
"""

from sqlalchemy import String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from magiclink.models.base import Base, TimestampMixin

EMAIL_SETTINGS_KEY = "email"


class EmailTemplateSetting(Base, TimestampMixin):
    """Persisted email template overrides.

    Empty strings mean "unset": the resolver falls through to deployment
    configuration, then to the built-in defaults.

    Attributes:
        key: Settings key (PK). Always EMAIL_SETTINGS_KEY today.
        default_from: From address override.
        default_reply_to: Reply-To address override.
        subject: Subject template override.
        text_body: Plain-text body template override.
        html_body: HTML body template override.
    """

    __tablename__ = "email_template_settings"

    key: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
    )
    default_from: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        server_default=text("''"),
    )
    default_reply_to: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        server_default=text("''"),
    )
    subject: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
        server_default=text("''"),
    )
    text_body: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
        server_default=text("''"),
    )
    html_body: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
        server_default=text("''"),
    )
