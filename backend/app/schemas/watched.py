"""
Watched log request/response schemas.
"""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.config import settings
from app.schemas.movies import MovieSummary


class CreateWatchedEntryRequest(BaseModel):
    """Log a movie as watched outside the night flow."""

    movie_id: UUID
    night_id: UUID | None = None
    picked_by: UUID | None = None
    watched_at: datetime


class RatingRequest(BaseModel):
    """The caller's score for a watched entry. Re-submitting replaces it."""

    score: int = Field(..., ge=settings.RATING_MIN, le=settings.RATING_MAX)
    note: str | None = Field(default=None, max_length=1000)


class RatingResponse(BaseModel):
    user_id: UUID
    username: str
    score: int
    note: str | None = None
    updated_at: datetime


class WatchedEntryResponse(BaseModel):
    id: UUID
    movie: MovieSummary
    night_id: UUID | None = None
    picked_by: UUID | None = None
    watched_at: datetime
    ratings: list[RatingResponse] = Field(default_factory=list)
    avg_rating: float | None = None
