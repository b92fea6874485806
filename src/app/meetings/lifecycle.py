"""Meeting lifecycle service -- validated create and update.

Both operations enforce the future-only rule at the moment of the write:
the new scheduled time must be strictly after ``now``. Nothing re-checks it
afterwards; meetings drift into the past on their own and the listing window
takes care of hiding them.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from src.app.meetings.errors import ValidationError, store_errors
from src.app.meetings.repository import MeetingRepository
from src.app.meetings.schemas import Meeting, MeetingValues, MeetingWrite
from src.app.meetings.shortener import UrlShortenerClient

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_meeting_time(raw: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    A trailing ``Z`` is accepted; a value without an offset is taken as UTC.

    Raises:
        ValidationError: If the value is not a parseable timestamp.
    """
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError("Invalid time format.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as exc:
        # Offset pushes the instant outside the datetime range
        raise ValidationError("Invalid time format.") from exc


class MeetingLifecycleService:
    """Creates and updates meetings.

    Args:
        repository: MeetingRepository (or a compatible test double).
        shortener: Optional link shortener; when given, links on create are
            replaced by their shortened form and a shortener failure fails
            the whole create.
        clock: Returns the current aware datetime; injectable for tests.
    """

    def __init__(
        self,
        repository: MeetingRepository,
        shortener: UrlShortenerClient | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._shortener = shortener
        self._clock = clock

    def validate(self, payload: MeetingWrite) -> MeetingValues:
        """Check a create/update payload and return the values to store.

        Raises:
            ValidationError: Missing title or time, unparseable time, or a
                time that is not strictly in the future.
        """
        title = (payload.title or "").strip()
        raw_time = (payload.time or "").strip()
        if not title or not raw_time:
            raise ValidationError("Title and time are required.")

        scheduled_at = parse_meeting_time(raw_time)
        if scheduled_at <= self._clock():
            raise ValidationError("Meeting time cannot be in the past.")

        link = (payload.link or "").strip() or None
        return MeetingValues(title=title, scheduled_at=scheduled_at, link=link)

    async def create(self, payload: MeetingWrite) -> Meeting:
        """Validate, optionally shorten the link, then insert the meeting.

        The shortener runs before the insert so a shortener failure leaves
        nothing behind.
        """
        values = self.validate(payload)

        if values.link and self._shortener is not None:
            short_link = await self._shortener.shorten(values.link)
            values = values.model_copy(update={"link": short_link})

        async with store_errors("create_meeting"):
            meeting = await self._repository.create_meeting(values)

        logger.info(
            "meetings.created",
            meeting_id=str(meeting.id),
            scheduled_at=meeting.scheduled_at.isoformat(),
            has_link=bool(meeting.link),
        )
        return meeting

    async def update(self, meeting_id: str, payload: MeetingWrite) -> Meeting:
        """Validate and overwrite title, time and link of an existing meeting.

        Delete votes are preserved; the returned count is re-read from the
        vote table.

        Raises:
            ValidationError: As for create.
            MeetingNotFoundError: If the meeting does not exist.
        """
        values = self.validate(payload)

        async with store_errors("update_meeting"):
            meeting = await self._repository.update_meeting(meeting_id, values)

        logger.info(
            "meetings.updated",
            meeting_id=str(meeting.id),
            scheduled_at=meeting.scheduled_at.isoformat(),
            delete_votes=meeting.delete_votes,
        )
        return meeting
