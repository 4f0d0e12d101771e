"""lesson progress

Revision ID: 8d2f5a61c9e3
Revises: 3b1e9c0d7a42
Create Date: 2026-10-19 12:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8d2f5a61c9e3"
down_revision: str | Sequence[str] | None = "3b1e9c0d7a42"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column(
        "enrollments",
        sa.Column("progress", sa.Float(), nullable=False, server_default="0"),
    )
    op.add_column(
        "enrollments",
        sa.Column("completed_at", sa.BigInteger(), nullable=True),
    )
    op.create_table(
        "lesson_completions",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("lesson_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("completed_at", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["lesson_id"], ["lessons.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "lesson_id"),
    )


def downgrade() -> None:
    op.drop_table("lesson_completions")
    op.drop_column("enrollments", "completed_at")
    op.drop_column("enrollments", "progress")
