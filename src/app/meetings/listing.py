"""Listing projection: live meetings with derived vote counts."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from src.app.meetings.errors import store_errors
from src.app.meetings.lifecycle import utc_now
from src.app.meetings.repository import MeetingRepository
from src.app.meetings.schemas import Meeting

DEFAULT_WINDOW = timedelta(hours=2)


class MeetingListingService:
    """Lists meetings not yet older than the recency window.

    A meeting stays visible until ``window`` has passed since its scheduled
    time. Results are ordered by scheduled time ascending.
    """

    def __init__(
        self,
        repository: MeetingRepository,
        window: timedelta = DEFAULT_WINDOW,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._window = window
        self._clock = clock

    async def list(self, now: datetime | None = None) -> list[Meeting]:
        cutoff = (now or self._clock()) - self._window
        async with store_errors("list_meetings"):
            return await self._repository.list_meetings(cutoff)
