"""Login token model - magic link tokens and one-time codes.

One row per issued credential pair. Rows are deactivated, never deleted,
by the token lifecycle; retention is an operational concern.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from magiclink.core.config import MAX_CODE_LENGTH, MAX_TOKEN_LENGTH
from magiclink.models.base import Base, TimestampMixin


class LoginToken(Base, TimestampMixin):
    """Single-use sign-in credential bound to an email address.

    Constraints enforced by the database:
    - token is unique across all rows, active or not.
    - (email, code) is unique among active rows only (partial index), so
      different emails, or an email's spent codes, may repeat a code.

    Attributes:
        id: UUID primary key.
        email: Lowercased email address.
        token: Opaque magic link secret.
        code: Zero-padded numeric one-time code.
        expires_at: Creation time plus the configured TTL.
        is_active: True until consumed, observed expired, or invalidated.
        context: Caller-supplied metadata, stored verbatim.
        user_agent: Requesting client's User-Agent, if known.
        ip_address: Requesting client's IP, if known.
        last_used_at: Set when the credential is consumed.
        created_at: Insert timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "login_tokens"
    __table_args__ = (
        Index("uq_login_tokens_token", "token", unique=True),
        Index(
            "uq_login_tokens_active_email_code",
            "email",
            "code",
            unique=True,
            postgresql_where=text("is_active"),
        ),
        Index("idx_login_tokens_email_active", "email", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(
        String(MAX_TOKEN_LENGTH),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(
        String(MAX_CODE_LENGTH),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("true"),
    )
    context: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    user_agent: Mapped[str | None] = mapped_column(
        Text(),
        nullable=True,
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(45),
        nullable=True,
    )
    last_used_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
