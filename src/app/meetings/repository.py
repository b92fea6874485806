"""Meeting repository -- async persistence for meetings and delete votes.

Provides MeetingRepository with the session_factory callable pattern: every
method opens its own AsyncSession, so each call is one unit of work.

Vote counts are derived with COUNT over delete_votes on every read. Vote
deduplication relies on the (meeting_id, voter_id) unique constraint through
INSERT ... ON CONFLICT DO NOTHING, never on a read-then-check.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.meetings.errors import MeetingNotFoundError
from src.app.meetings.models import DeleteVoteModel, MeetingModel
from src.app.meetings.schemas import Meeting, MeetingValues, VoteTally

logger = structlog.get_logger(__name__)


# ── Serialization Helpers ───────────────────────────────────────────────────


def _parse_meeting_id(meeting_id: str | uuid.UUID) -> uuid.UUID:
    """Parse a meeting id; anything that is not a UUID cannot exist."""
    if isinstance(meeting_id, uuid.UUID):
        return meeting_id
    try:
        return uuid.UUID(str(meeting_id))
    except ValueError as exc:
        raise MeetingNotFoundError(str(meeting_id)) from exc


def _model_to_meeting(model: MeetingModel, vote_count: int) -> Meeting:
    """Convert MeetingModel plus its derived vote count to Meeting schema."""
    return Meeting(
        id=model.id,
        title=model.title,
        scheduled_at=model.scheduled_at,
        link=model.link or "",
        delete_votes=int(vote_count or 0),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _vote_count_stmt(meeting_id: uuid.UUID):
    return select(func.count(DeleteVoteModel.id)).where(
        DeleteVoteModel.meeting_id == meeting_id
    )


# ── Repository ──────────────────────────────────────────────────────────────


class MeetingRepository:
    """Async store operations for meetings and delete votes.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    # ── Meetings ─────────────────────────────────────────────────────────

    async def create_meeting(self, values: MeetingValues) -> Meeting:
        """Insert a new meeting with a freshly generated id.

        Args:
            values: Validated title, scheduled time and optional link.

        Returns:
            Meeting with deleteVotes = 0.
        """
        async for session in self._session_factory():
            model = MeetingModel(
                id=uuid.uuid4(),
                title=values.title,
                scheduled_at=values.scheduled_at,
                link=values.link or None,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _model_to_meeting(model, 0)

    async def update_meeting(
        self, meeting_id: str | uuid.UUID, values: MeetingValues
    ) -> Meeting:
        """Overwrite title, time and link; votes are left untouched.

        Last write wins: there is no version check.

        Returns:
            Updated Meeting with the current vote count.

        Raises:
            MeetingNotFoundError: If no meeting has this id.
        """
        mid = _parse_meeting_id(meeting_id)
        async for session in self._session_factory():
            result = await session.execute(
                select(MeetingModel).where(MeetingModel.id == mid)
            )
            model = result.scalar_one_or_none()
            if model is None:
                raise MeetingNotFoundError(str(meeting_id))

            model.title = values.title
            model.scheduled_at = values.scheduled_at
            model.link = values.link or None
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)

            vote_count = await session.scalar(_vote_count_stmt(mid))
            return _model_to_meeting(model, vote_count)

    async def list_meetings(self, scheduled_after: datetime) -> list[Meeting]:
        """List meetings scheduled strictly after a cutoff, with vote counts.

        Ordered by scheduled time; equal times keep insertion order.
        """
        async for session in self._session_factory():
            vote_count = func.count(DeleteVoteModel.id).label("vote_count")
            stmt = (
                select(MeetingModel, vote_count)
                .outerjoin(
                    DeleteVoteModel,
                    DeleteVoteModel.meeting_id == MeetingModel.id,
                )
                .where(MeetingModel.scheduled_at > scheduled_after)
                .group_by(MeetingModel.id)
                .order_by(
                    MeetingModel.scheduled_at,
                    MeetingModel.seq,
                )
            )
            result = await session.execute(stmt)
            return [_model_to_meeting(model, count) for model, count in result.all()]

    # ── Delete Votes ─────────────────────────────────────────────────────

    async def record_vote(
        self, meeting_id: str | uuid.UUID, voter_id: str, quorum: int
    ) -> VoteTally:
        """Record a delete vote and delete the meeting once quorum is reached.

        Runs as one transaction:
        1. lock the meeting row (SELECT ... FOR UPDATE)
        2. insert the vote, ignoring a duplicate (meeting_id, voter_id)
        3. count the votes
        4. if count >= quorum, delete the votes and the meeting

        The row lock serialises concurrent votes on the same meeting, so only
        one transaction can observe the threshold crossing; a vote queued
        behind it finds the row gone and raises MeetingNotFoundError.

        Raises:
            MeetingNotFoundError: If the meeting does not exist.
        """
        mid = _parse_meeting_id(meeting_id)
        async for session in self._session_factory():
            async with session.begin():
                locked = await session.execute(
                    select(MeetingModel.id)
                    .where(MeetingModel.id == mid)
                    .with_for_update()
                )
                if locked.scalar_one_or_none() is None:
                    raise MeetingNotFoundError(str(meeting_id))

                await session.execute(
                    pg_insert(DeleteVoteModel)
                    .values(meeting_id=mid, voter_id=voter_id)
                    .on_conflict_do_nothing(
                        index_elements=["meeting_id", "voter_id"],
                    )
                )

                vote_count = int(await session.scalar(_vote_count_stmt(mid)) or 0)
                deleted = vote_count >= quorum
                if deleted:
                    # Both statements are no-ops when the rows are already gone
                    await session.execute(
                        delete(DeleteVoteModel).where(DeleteVoteModel.meeting_id == mid)
                    )
                    await session.execute(
                        delete(MeetingModel).where(MeetingModel.id == mid)
                    )

            logger.debug(
                "meetings.vote_transaction_committed",
                meeting_id=str(mid),
                vote_count=vote_count,
                deleted=deleted,
            )
            return VoteTally(meeting_id=mid, vote_count=vote_count, deleted=deleted)
