"""Pydantic v2 schemas for the meeting board domain.

Defines the data contracts shared by the repository, the lifecycle and
consensus services, and the API layer: the stored meeting, its projection
with a derived vote count, write payloads, and the outcome of a delete vote.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ── Meeting Models ───────────────────────────────────────────────────────────


class Meeting(BaseModel):
    """A stored meeting together with its live delete-vote count.

    ``delete_votes`` is always computed from the vote table at read time.
    ``link`` is an empty string when the meeting has no link.
    """

    id: uuid.UUID
    title: str
    scheduled_at: datetime
    link: str = ""
    delete_votes: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MeetingWrite(BaseModel):
    """Raw create/update payload.

    Fields are deliberately loose; MeetingLifecycleService performs the
    validation so that every rejection surfaces as a ValidationError.
    """

    title: str | None = None
    time: str | None = None
    link: str | None = None


class MeetingValues(BaseModel):
    """Validated values ready to be written to the store."""

    title: str
    scheduled_at: datetime
    link: str | None = None


# ── Delete Vote Models ───────────────────────────────────────────────────────


class VoteTally(BaseModel):
    """What the store observed inside one vote transaction."""

    meeting_id: uuid.UUID
    vote_count: int
    deleted: bool


class VoteOutcome(BaseModel):
    """Result of casting a delete vote, as reported to the caller."""

    deleted: bool
    votes_remaining: int | None = Field(
        default=None,
        description="Distinct votes still needed; None once the meeting is deleted",
    )

    @property
    def message(self) -> str:
        if self.deleted:
            return "Meeting deleted successfully."
        return f"Vote recorded. {self.votes_remaining} more vote(s) needed to delete."


# ── API Projection ───────────────────────────────────────────────────────────


class MeetingView(BaseModel):
    """Wire projection: ``{id, title, time, link, deleteVotes}``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    time: str
    link: str = ""
    delete_votes: int = Field(default=0, alias="deleteVotes")
