"""Create meetings and delete_votes tables.

Revision ID: 001_meetings_and_delete_votes
Revises:
Create Date: 2026-10-17

- meetings: scheduled meetings on the shared board
- delete_votes: one row per (meeting, voter); the unique constraint is what
  makes a repeated vote a no-op. Rows cascade with their meeting.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_meetings_and_delete_votes"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── meetings table ───────────────────────────────────────────────────

    op.create_table(
        "meetings",
        sa.Column("id", UUID(as_uuid=True), nullable=False),
        sa.Column("seq", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("link", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_meetings"),
    )
    # Listing queries filter and sort on scheduled_at
    op.create_index("ix_meetings_scheduled_at", "meetings", ["scheduled_at"])

    # ── delete_votes table ───────────────────────────────────────────────

    op.create_table(
        "delete_votes",
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("meeting_id", UUID(as_uuid=True), nullable=False),
        sa.Column("voter_id", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_delete_votes"),
        sa.ForeignKeyConstraint(
            ["meeting_id"],
            ["meetings.id"],
            name="fk_delete_votes_meeting_id_meetings",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "meeting_id", "voter_id", name="uq_delete_votes_meeting_voter"
        ),
    )


def downgrade() -> None:
    op.drop_table("delete_votes")
    op.drop_index("ix_meetings_scheduled_at", table_name="meetings")
    op.drop_table("meetings")
