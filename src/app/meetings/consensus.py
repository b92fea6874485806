"""Delete-vote consensus engine.

A meeting is removed only when ``quorum`` distinct voters have asked for it.
Per meeting the lifecycle is Active -> (accumulating votes) -> Deleted, where
Deleted is only ever observed as absence: the meeting row and all of its vote
rows disappear in the same transaction.

The voter id is an opaque, unauthenticated token supplied by the caller. The
engine guarantees only that one token counts once per meeting.
"""

from __future__ import annotations

import structlog

from src.app.core.monitoring import meeting_votes_total, meetings_deleted_total
from src.app.meetings.errors import ValidationError, store_errors
from src.app.meetings.repository import MeetingRepository
from src.app.meetings.schemas import VoteOutcome, VoteTally

logger = structlog.get_logger(__name__)

DEFAULT_QUORUM = 5

# Keeps (meeting_id, voter_id) well inside the btree index entry limit
MAX_VOTER_ID_LENGTH = 512


def outcome_from_tally(tally: VoteTally, quorum: int) -> VoteOutcome:
    """Turn a committed tally into the caller-facing outcome."""
    if tally.deleted:
        return VoteOutcome(deleted=True)
    return VoteOutcome(deleted=False, votes_remaining=max(quorum - tally.vote_count, 0))


class DeleteVoteEngine:
    """Accepts delete votes and destroys a meeting once quorum is reached.

    Args:
        repository: MeetingRepository (or a compatible test double) whose
            ``record_vote`` performs insert, tally and conditional delete
            atomically.
        quorum: Distinct voters required to delete a meeting.
    """

    def __init__(self, repository: MeetingRepository, quorum: int = DEFAULT_QUORUM) -> None:
        if quorum < 1:
            raise ValueError(f"quorum must be at least 1, got {quorum}")
        self._repository = repository
        self._quorum = quorum

    @property
    def quorum(self) -> int:
        return self._quorum

    async def cast_vote(self, meeting_id: str, voter_id: str | None) -> VoteOutcome:
        """Record ``voter_id``'s vote to delete ``meeting_id``.

        A repeated vote from the same voter is a silent no-op and reports the
        same remaining count as before.

        Raises:
            ValidationError: If voter_id is missing, blank or longer than
                MAX_VOTER_ID_LENGTH.
            MeetingNotFoundError: If the meeting does not exist, including
                when a concurrent vote has just deleted it.
            DependencyError: If the store fails; never retried here.
        """
        voter = (voter_id or "").strip()
        if not voter:
            raise ValidationError("User ID is required to vote for deletion.")
        if len(voter) > MAX_VOTER_ID_LENGTH:
            raise ValidationError(
                f"User ID must be at most {MAX_VOTER_ID_LENGTH} characters."
            )

        async with store_errors("cast_vote"):
            tally = await self._repository.record_vote(meeting_id, voter, self._quorum)

        outcome = outcome_from_tally(tally, self._quorum)

        if outcome.deleted:
            meeting_votes_total.labels(outcome="deleted").inc()
            meetings_deleted_total.inc()
            logger.info(
                "meetings.deleted_by_quorum",
                meeting_id=str(tally.meeting_id),
                vote_count=tally.vote_count,
                quorum=self._quorum,
            )
        else:
            meeting_votes_total.labels(outcome="recorded").inc()
            logger.info(
                "meetings.vote_recorded",
                meeting_id=str(tally.meeting_id),
                vote_count=tally.vote_count,
                votes_remaining=outcome.votes_remaining,
            )
        return outcome
