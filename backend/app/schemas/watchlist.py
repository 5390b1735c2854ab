"""
Group watchlist request/response schemas.
"""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.movies import MovieSummary


class AddWatchlistEntryRequest(BaseModel):
    """Put a cached movie on the group watchlist."""

    movie_id: UUID
    note: str | None = Field(default=None, max_length=500)


class WatchlistEntryResponse(BaseModel):
    id: UUID
    movie: MovieSummary
    added_by: UUID
    added_by_username: str
    note: str | None = None
    upvote_count: int = 0
    viewer_has_upvoted: bool = False
    added_at: datetime


class UpvoteResponse(BaseModel):
    entry_id: UUID
    upvote_count: int
    viewer_has_upvoted: bool


class CountResponse(BaseModel):
    count: int
