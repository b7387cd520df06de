"""User model - identity handed back after a successful exchange.

Only the provisioning collaborator reads and writes this table.
"""

import uuid
from typing import Any

from sqlalchemy import Boolean, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from magiclink.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """User account provisioned from a validated email.

    Attributes:
        id: UUID primary key.
        email: Unique, lowercased email address.
        username: Login name (the email for magic link accounts).
        name: Display name (email local part by default).
        provider: How the account was created (e.g. "magiclink").
        role: Role name assigned at registration.
        confirmed: Whether the email has been proven by a redeemed credential.
        blocked: Blocked accounts may not sign in.
        user_agent: User-Agent reported at registration.
        client_ip: Client IP reported at registration.
        attribution: Marketing/referral metadata reported at registration.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    username: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    provider: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        server_default="magiclink",
    )
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        server_default="authenticated",
    )
    confirmed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
    )
    blocked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
    )
    user_agent: Mapped[str | None] = mapped_column(
        Text(),
        nullable=True,
    )
    client_ip: Mapped[str | None] = mapped_column(
        String(45),
        nullable=True,
    )
    attribution: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
    )
