"""Add memory_notes table for remembered user facts.

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""

import sqlalchemy as sa

from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        sa.text(
            "CREATE TABLE IF NOT EXISTS memory_notes ("
            "  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),"
            "  user_id VARCHAR(255) NOT NULL,"
            "  type VARCHAR(32) NOT NULL DEFAULT 'note',"
            "  key VARCHAR(120) NOT NULL,"
            "  value TEXT NOT NULL,"
            "  created_at TIMESTAMPTZ NOT NULL DEFAULT now(),"
            "  updated_at TIMESTAMPTZ NOT NULL DEFAULT now()"
            ")"
        )
    )

    indexes = [
        "CREATE INDEX IF NOT EXISTS ix_memory_notes_user_id ON memory_notes (user_id)",
        "CREATE INDEX IF NOT EXISTS ix_memory_notes_type ON memory_notes (type)",
        "CREATE INDEX IF NOT EXISTS ix_memory_notes_key ON memory_notes (key)",
        (
            "CREATE INDEX IF NOT EXISTS ix_memory_notes_recent "
            "ON memory_notes (user_id, updated_at DESC)"
        ),
    ]
    for idx in indexes:
        op.execute(idx)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS memory_notes CASCADE")
