"""Meeting persistence models -- meetings and their delete votes.

Two SQLAlchemy models:
- MeetingModel: A scheduled meeting on the shared board
- DeleteVoteModel: One voter's request to delete one meeting

The vote count is never stored on the meeting; it is always derived by
counting DeleteVoteModel rows. The (meeting_id, voter_id) unique constraint
is what makes a repeated vote a no-op.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Identity,
    Index,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.app.core.database import Base


class MeetingModel(Base):
    """A meeting anyone on the board can edit or vote to delete.

    Deletion is physical: once the delete-vote quorum is reached the row
    and all of its votes are removed in the same transaction.
    """

    __tablename__ = "meetings"
    __table_args__ = (
        Index("ix_meetings_scheduled_at", "scheduled_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Insertion order; breaks ties between meetings at the same time
    seq: Mapped[int] = mapped_column(BigInteger, Identity(), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class DeleteVoteModel(Base):
    """A single voter's delete vote for a meeting."""

    __tablename__ = "delete_votes"
    __table_args__ = (
        UniqueConstraint(
            "meeting_id",
            "voter_id",
            name="uq_delete_votes_meeting_voter",
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    meeting_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("meetings.id", ondelete="CASCADE"),
        nullable=False,
    )
    voter_id: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
