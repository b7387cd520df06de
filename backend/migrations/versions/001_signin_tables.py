"""Create sign-in tables: users, login_tokens, email_template_settings.

Revision ID: 001_signin_tables
Revises: 000_enable_pgcrypto
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_signin_tables"
down_revision: str | None = "000_enable_pgcrypto"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # Users provisioned by a successful exchange
    op.create_table(
        "users",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column(
            "provider", sa.String(50), nullable=False, server_default="magiclink"
        ),
        sa.Column(
            "role", sa.String(50), nullable=False, server_default="authenticated"
        ),
        sa.Column("confirmed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("blocked", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("client_ip", sa.String(45), nullable=True),
        sa.Column("attribution", postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("email", name="users_email_key"),
    )

    # Issued credential pairs. Rows are deactivated, never deleted.
    op.create_table(
        "login_tokens",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("token", sa.String(255), nullable=False),
        sa.Column("code", sa.String(16), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column(
            "context",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    # Tokens are unique forever; codes only among an email's active rows
    op.create_index("uq_login_tokens_token", "login_tokens", ["token"], unique=True)
    op.create_index(
        "uq_login_tokens_active_email_code",
        "login_tokens",
        ["email", "code"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )
    op.create_index(
        "idx_login_tokens_email_active", "login_tokens", ["email", "is_active"]
    )

    # Admin-edited template layer, one row keyed 'email'
    op.create_table(
        "email_template_settings",
        sa.Column("key", sa.String(50), primary_key=True),
        sa.Column(
            "default_from", sa.String(255), nullable=False, server_default=""
        ),
        sa.Column(
            "default_reply_to", sa.String(255), nullable=False, server_default=""
        ),
        sa.Column("subject", sa.Text(), nullable=False, server_default=""),
        sa.Column("text_body", sa.Text(), nullable=False, server_default=""),
        sa.Column("html_body", sa.Text(), nullable=False, server_default=""),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("email_template_settings")
    op.drop_index("idx_login_tokens_email_active", table_name="login_tokens")
    op.drop_index("uq_login_tokens_active_email_code", table_name="login_tokens")
    op.drop_index("uq_login_tokens_token", table_name="login_tokens")
    op.drop_table("login_tokens")
    op.drop_table("users")
