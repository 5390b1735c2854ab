"""
Movie night request/response schemas.
"""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.core.config import settings
from app.db.models import NightStatusEnum
from app.schemas.movies import MovieSummary


class CreateNightRequest(BaseModel):
    """Schedule a new movie night. The caller becomes host."""

    title: str = Field(..., min_length=1, max_length=120)
    date: datetime


class AddCandidateRequest(BaseModel):
    """Append a cached movie to the night's roulette wheel."""

    movie_id: UUID


class UpdateStatusRequest(BaseModel):
    status: NightStatusEnum


class CompleteNightRequest(BaseModel):
    """Mark the night watched; optionally rate the picked movie."""

    score: int | None = Field(default=None, ge=settings.RATING_MIN, le=settings.RATING_MAX)
    note: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def note_needs_score(self) -> "CompleteNightRequest":
        if self.note and self.score is None:
            raise ValueError("A note can only be left together with a score")
        return self


class NightAttendeeResponse(BaseModel):
    user_id: UUID
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    joined_at: datetime


class NightCandidateResponse(BaseModel):
    position: int
    movie: MovieSummary
    added_at: datetime


class NightResponse(BaseModel):
    id: UUID
    title: str
    date: datetime
    host_id: UUID
    host_username: str
    status: NightStatusEnum
    attendee_count: int
    candidate_count: int
    picked_movie: MovieSummary | None = None
    picked_by: UUID | None = None
    picked_at: datetime | None = None
    is_spinning: bool = False
    # Set only while a spin is live, so a reloaded client can replay the reveal
    spin_started_by: UUID | None = None
    pending_movie: MovieSummary | None = None
    pending_rotation: float | None = None
    created_at: datetime


class NightDetailResponse(NightResponse):
    attendees: list[NightAttendeeResponse]
    candidates: list[NightCandidateResponse]


class CalendarNightResponse(BaseModel):
    """A night as shown on the calendar, with its group rating once watched."""

    id: UUID
    title: str
    date: datetime
    status: NightStatusEnum
    picked_movie: MovieSummary | None = None
    avg_rating: float | None = None


class SpinResponse(BaseModel):
    """
    Result of one roulette draw.

    The client animates the wheel by exactly rotation_degrees and then calls
    /spin/settle to commit the winner.
    """

    night_id: UUID
    winner_index: int
    winner_id: UUID
    winner: MovieSummary
    rotation_degrees: float
    sector_degrees: float
    spin_started_at: datetime
    spin_expires_at: datetime


class CompleteNightResponse(BaseModel):
    night: NightResponse
    watched_entry_id: UUID
