"""Error taxonomy for meeting lifecycle and delete-vote operations.

The API layer maps each class to a status code:
ValidationError -> 400, MeetingNotFoundError -> 404, DependencyError -> 500.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger(__name__)


class MeetingError(Exception):
    """Base class for meeting board errors carrying a user-facing message."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MeetingError):
    """Caller-supplied input failed a precondition. Nothing was written."""

    status_code = 400


class MeetingNotFoundError(MeetingError):
    """The referenced meeting does not exist (never created or already deleted)."""

    status_code = 404

    def __init__(self, meeting_id: str) -> None:
        super().__init__("Meeting not found.")
        self.meeting_id = meeting_id


class DependencyError(MeetingError):
    """The database or an outbound helper service failed or timed out.

    Never retried internally; callers may retry the whole operation.
    """

    status_code = 500


@asynccontextmanager
async def store_errors(operation: str) -> AsyncGenerator[None, None]:
    """Translate database and timeout failures into DependencyError.

    Usage:
        async with store_errors("cast_vote"):
            tally = await repo.record_vote(...)

    MeetingError subclasses raised inside the block propagate unchanged.
    """
    try:
        yield
    except MeetingError:
        raise
    except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
        logger.error(
            "meetings.store_failed",
            operation=operation,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        raise DependencyError(f"Failed to {operation.replace('_', ' ')}.") from exc
