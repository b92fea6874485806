"""REST endpoints for the shared meeting board.

Realises the four board operations on the ``/api/meetings`` resource:
list (GET), create (POST), update (PATCH /{id}) and cast a delete vote
(DELETE /{id}). There is no authentication; a delete vote is attributed to
the opaque voter id carried in the configured header (``X-User-Id`` by
default).

Errors raised by the services are rendered by the handlers registered in
src/app/api/errors.py.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from src.app.config import get_settings
from src.app.meetings.schemas import Meeting, MeetingView, MeetingWrite

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/meetings", tags=["meetings"])


# ── Response Schemas ─────────────────────────────────────────────────────────


class VoteResponse(BaseModel):
    """Response for a delete vote."""

    model_config = ConfigDict(populate_by_name=True)

    deleted: bool
    votes_remaining: int | None = Field(default=None, alias="votesRemaining")
    message: str


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_state(request: Request, name: str) -> Any:
    """Retrieve a service from app.state, 503 if not available."""
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{name} not initialized",
        )
    return service


# ── Conversion Helpers ───────────────────────────────────────────────────────


def meeting_to_view(m: Meeting) -> MeetingView:
    """Convert Meeting schema to the wire projection."""
    return MeetingView(
        id=str(m.id),
        title=m.title,
        time=m.scheduled_at.isoformat(),
        link=m.link or "",
        delete_votes=m.delete_votes,
    )


def _view_response(m: Meeting, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=meeting_to_view(m).model_dump(mode="json", by_alias=True),
    )


# ── REST Endpoints ───────────────────────────────────────────────────────────


@router.get("", response_model=list[MeetingView], response_model_by_alias=True)
async def list_meetings(request: Request) -> JSONResponse:
    """List meetings inside the recency window, each with its vote count."""
    listing = _get_state(request, "meeting_listing")
    meetings = await listing.list()
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=[
            meeting_to_view(m).model_dump(mode="json", by_alias=True)
            for m in meetings
        ],
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=MeetingView,
    response_model_by_alias=True,
)
async def create_meeting(
    request: Request,
    body: MeetingWrite = Body(...),
) -> JSONResponse:
    """Create a meeting. The time must be strictly in the future."""
    lifecycle = _get_state(request, "meeting_lifecycle")
    meeting = await lifecycle.create(body)
    return _view_response(meeting, status.HTTP_201_CREATED)


@router.patch(
    "/{meeting_id}",
    response_model=MeetingView,
    response_model_by_alias=True,
)
async def update_meeting(
    meeting_id: str,
    request: Request,
    body: MeetingWrite = Body(...),
) -> JSONResponse:
    """Overwrite a meeting's title, time and link; votes are kept."""
    lifecycle = _get_state(request, "meeting_lifecycle")
    meeting = await lifecycle.update(meeting_id, body)
    return _view_response(meeting, status.HTTP_200_OK)


@router.delete(
    "/{meeting_id}",
    response_model=VoteResponse,
    response_model_by_alias=True,
)
async def vote_to_delete_meeting(meeting_id: str, request: Request) -> JSONResponse:
    """Cast the caller's delete vote; the meeting goes once quorum is reached."""
    engine = _get_state(request, "delete_vote_engine")
    voter_id = request.headers.get(get_settings().VOTER_ID_HEADER)
    outcome = await engine.cast_vote(meeting_id, voter_id)

    response = VoteResponse(
        deleted=outcome.deleted,
        votes_remaining=outcome.votes_remaining,
        message=outcome.message,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=response.model_dump(mode="json", by_alias=True, exclude_none=True),
    )
