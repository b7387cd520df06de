"""Enable the pgcrypto extension.

Revision ID: 000_enable_pgcrypto
Revises:
Create Date: 2026-10-19

pgcrypto provides gen_random_uuid() for UUID primary keys.
"""

from collections.abc import Sequence

from alembic import op

revision: str = "000_enable_pgcrypto"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")


def downgrade() -> None:
    # Fails while tables still default to gen_random_uuid()
    op.execute("DROP EXTENSION IF EXISTS pgcrypto")
