"""Unit tests for MeetingRepository statement construction.

Runs the repository against a recording fake session and compiles the
captured statements with the PostgreSQL dialect, to pin down the parts the
vote guarantees depend on: the row lock, ON CONFLICT DO NOTHING, and the
purge of vote rows together with the meeting.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import BigInteger, Text
from sqlalchemy.dialects import postgresql
from sqlalchemy.sql.dml import Delete, Insert

from src.app.meetings.errors import MeetingNotFoundError
from src.app.meetings.models import DeleteVoteModel, MeetingModel
from src.app.meetings.repository import MeetingRepository, _model_to_meeting


# ── Recording Fake Session ───────────────────────────────────────────────────


class _Result:
    def __init__(self, value=None, rows=None) -> None:
        self._value = value
        self._rows = rows or []

    def scalar_one_or_none(self):
        return self._value

    def all(self):
        return self._rows


class FakeSession:
    """Records statements; answers the lock query and COUNT with fixed values."""

    def __init__(self, meeting_exists: bool = True, vote_count: int = 0) -> None:
        self.meeting_exists = meeting_exists
        self.vote_count = vote_count
        self.statements: list = []
        self.transactions = 0

    def begin(self):
        return self

    async def __aenter__(self):
        self.transactions += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def execute(self, stmt):
        self.statements.append(stmt)
        if getattr(stmt, "_for_update_arg", None) is not None:
            return _Result(value=uuid.uuid4() if self.meeting_exists else None)
        return _Result()

    async def scalar(self, stmt):
        self.statements.append(stmt)
        return self.vote_count


def _factory(session: FakeSession):
    async def session_factory():
        yield session

    return session_factory


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


# ── record_vote ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_record_vote_locks_row_and_ignores_duplicate_insert():
    session = FakeSession(vote_count=2)
    repo = MeetingRepository(session_factory=_factory(session))

    tally = await repo.record_vote(str(uuid.uuid4()), "alice", quorum=5)

    assert tally.vote_count == 2
    assert tally.deleted is False
    assert session.transactions == 1

    lock_sql = _sql(session.statements[0])
    assert "FROM meetings" in lock_sql
    assert "FOR UPDATE" in lock_sql

    insert = session.statements[1]
    assert isinstance(insert, Insert)
    assert "ON CONFLICT (meeting_id, voter_id) DO NOTHING" in _sql(insert)

    assert "count(delete_votes.id)" in _sql(session.statements[2])
    assert not any(isinstance(s, Delete) for s in session.statements)


@pytest.mark.asyncio
async def test_record_vote_at_quorum_purges_votes_and_meeting_in_same_transaction():
    session = FakeSession(vote_count=5)
    repo = MeetingRepository(session_factory=_factory(session))

    tally = await repo.record_vote(str(uuid.uuid4()), "eve", quorum=5)

    assert tally.deleted is True
    assert session.transactions == 1
    deletes = [s for s in session.statements if isinstance(s, Delete)]
    assert [d.table.name for d in deletes] == ["delete_votes", "meetings"]


@pytest.mark.asyncio
async def test_record_vote_on_missing_meeting_writes_nothing():
    session = FakeSession(meeting_exists=False)
    repo = MeetingRepository(session_factory=_factory(session))

    with pytest.raises(MeetingNotFoundError):
        await repo.record_vote(str(uuid.uuid4()), "alice", quorum=5)

    assert len(session.statements) == 1


@pytest.mark.asyncio
async def test_record_vote_malformed_id_raises_before_touching_store():
    session = FakeSession()
    repo = MeetingRepository(session_factory=_factory(session))

    with pytest.raises(MeetingNotFoundError):
        await repo.record_vote("not-a-uuid", "alice", quorum=5)

    assert session.statements == []


# ── Listing & serialization ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_meetings_counts_with_left_join_and_orders_by_time():
    session = FakeSession()
    repo = MeetingRepository(session_factory=_factory(session))

    result = await repo.list_meetings(datetime.now(timezone.utc) - timedelta(hours=2))

    assert result == []
    sql = _sql(session.statements[-1])
    assert "LEFT OUTER JOIN delete_votes" in sql
    assert "meetings.scheduled_at >" in sql
    assert "GROUP BY meetings.id" in sql
    assert "ORDER BY meetings.scheduled_at, meetings.seq" in sql


def test_model_to_meeting_maps_null_link_to_empty_string():
    now = datetime.now(timezone.utc)
    model = MeetingModel(
        id=uuid.uuid4(),
        title="Planning",
        scheduled_at=now + timedelta(hours=1),
        link=None,
        created_at=now,
        updated_at=None,
    )

    meeting = _model_to_meeting(model, 3)

    assert meeting.link == ""
    assert meeting.delete_votes == 3
    assert meeting.title == "Planning"


# ── Schema ───────────────────────────────────────────────────────────────────


def test_voter_id_column_is_unbounded_text():
    column = DeleteVoteModel.__table__.c.voter_id

    assert isinstance(column.type, Text)
    assert getattr(column.type, "length", None) is None


def test_meetings_carry_identity_sequence_for_tie_order():
    column = MeetingModel.__table__.c.seq

    assert isinstance(column.type, BigInteger)
    assert column.identity is not None
    assert column.nullable is False
