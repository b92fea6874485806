"""Shared fixtures for meeting board tests.

Provides:
- InMemoryMeetingRepository: dict-backed double of MeetingRepository that
  keeps the same transactional shape for record_vote (one lock per meeting
  standing in for the SELECT ... FOR UPDATE row lock)
- repo fixture
- FastAPI app wired with the in-memory repository, and an AsyncClient
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from src.app.config import Settings
from src.app.meetings.errors import MeetingNotFoundError
from src.app.meetings.repository import _parse_meeting_id
from src.app.meetings.schemas import Meeting, MeetingValues, VoteTally


# ── In-Memory Test Double ────────────────────────────────────────────────────


class InMemoryMeetingRepository:
    """In-memory MeetingRepository for testing without a database.

    Votes are stored as a set per meeting, which gives the same no-op
    behaviour as the (meeting_id, voter_id) unique constraint.

    get_meeting, count_votes and vote_rows exist only for assertions; the
    services never read single meetings or bare counts.
    """

    def __init__(self) -> None:
        self._meetings: dict[uuid.UUID, Meeting] = {}
        self._votes: dict[uuid.UUID, set[str]] = {}
        self._locks: dict[uuid.UUID, asyncio.Lock] = {}
        self.deletions: list[uuid.UUID] = []
        self.fail_with: Exception | None = None

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _with_count(self, meeting: Meeting) -> Meeting:
        return meeting.model_copy(
            update={"delete_votes": len(self._votes.get(meeting.id, set()))}
        )

    def vote_rows(self, meeting_id: uuid.UUID) -> set[str]:
        return set(self._votes.get(meeting_id, set()))

    async def create_meeting(self, values: MeetingValues) -> Meeting:
        self._maybe_fail()
        now = datetime.now(timezone.utc)
        meeting = Meeting(
            id=uuid.uuid4(),
            title=values.title,
            scheduled_at=values.scheduled_at,
            link=values.link or "",
            delete_votes=0,
            created_at=now,
        )
        self._meetings[meeting.id] = meeting
        self._votes[meeting.id] = set()
        return meeting

    async def get_meeting(self, meeting_id: str | uuid.UUID) -> Meeting | None:
        self._maybe_fail()
        try:
            mid = _parse_meeting_id(meeting_id)
        except MeetingNotFoundError:
            return None
        meeting = self._meetings.get(mid)
        return self._with_count(meeting) if meeting else None

    async def update_meeting(
        self, meeting_id: str | uuid.UUID, values: MeetingValues
    ) -> Meeting:
        self._maybe_fail()
        mid = _parse_meeting_id(meeting_id)
        meeting = self._meetings.get(mid)
        if meeting is None:
            raise MeetingNotFoundError(str(meeting_id))
        updated = meeting.model_copy(
            update={
                "title": values.title,
                "scheduled_at": values.scheduled_at,
                "link": values.link or "",
                "updated_at": datetime.now(timezone.utc),
            }
        )
        self._meetings[mid] = updated
        return self._with_count(updated)

    async def list_meetings(self, scheduled_after: datetime) -> list[Meeting]:
        self._maybe_fail()
        live = [m for m in self._meetings.values() if m.scheduled_at > scheduled_after]
        # sorted() is stable, so equal times keep insertion order
        return [self._with_count(m) for m in sorted(live, key=lambda m: m.scheduled_at)]

    async def count_votes(self, meeting_id: str | uuid.UUID) -> int:
        self._maybe_fail()
        return len(self._votes.get(_parse_meeting_id(meeting_id), set()))

    async def record_vote(
        self, meeting_id: str | uuid.UUID, voter_id: str, quorum: int
    ) -> VoteTally:
        self._maybe_fail()
        mid = _parse_meeting_id(meeting_id)
        lock = self._locks.setdefault(mid, asyncio.Lock())
        async with lock:
            if mid not in self._meetings:
                raise MeetingNotFoundError(str(meeting_id))
            self._votes[mid].add(voter_id)
            # Yield so concurrent callers interleave as they would on a real store
            await asyncio.sleep(0)
            vote_count = len(self._votes[mid])
            deleted = vote_count >= quorum
            if deleted:
                self._votes.pop(mid, None)
                self._meetings.pop(mid, None)
                self.deletions.append(mid)
        return VoteTally(meeting_id=mid, vote_count=vote_count, deleted=deleted)


def _store_down() -> OperationalError:
    """A driver-level failure as SQLAlchemy would raise it."""
    return OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def repo() -> InMemoryMeetingRepository:
    return InMemoryMeetingRepository()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DELETE_VOTE_QUORUM=5,
        LISTING_WINDOW_MINUTES=120,
        URL_SHORTENING_ENABLED=False,
        _env_file=None,
    )


@pytest.fixture
def app(repo, settings):
    """Full application with the in-memory repository on app.state."""
    from src.app.main import create_app, install_meeting_services

    application = create_app()
    install_meeting_services(application, repo, settings)
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API (lifespan is not run)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def store_failure() -> OperationalError:
    """A driver-level failure as SQLAlchemy would raise it."""
    return _store_down()
