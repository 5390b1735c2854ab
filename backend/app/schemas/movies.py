"""
Movie request/response schemas.
"""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UpsertMovieRequest(BaseModel):
    """Cache a TMDB movie locally. Existing tmdb_id rows are returned as-is."""

    tmdb_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=500)
    poster: str = Field(default="", max_length=500)
    backdrop: str | None = Field(default=None, max_length=500)
    overview: str = ""
    genres: list[str] = Field(default_factory=list)
    runtime_minutes: int | None = Field(default=None, ge=0)
    release_year: int = Field(..., ge=1800, le=2200)
    imdb_rating: float | None = Field(default=None, ge=0, le=10)
    imdb_votes: int | None = Field(default=None, ge=0)


class MovieResponse(BaseModel):
    id: UUID
    tmdb_id: int
    title: str
    poster: str = ""
    backdrop: str | None = None
    overview: str = ""
    genres: list[str] = Field(default_factory=list)
    runtime_minutes: int | None = None
    release_year: int
    imdb_rating: float | None = None
    imdb_votes: int | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MovieSummary(BaseModel):
    """Compact movie card used inside watchlist / night payloads."""

    id: UUID
    title: str
    poster: str = ""
    release_year: int | None = None
    imdb_rating: float | None = None

    model_config = ConfigDict(from_attributes=True)


class TMDBMovieResult(BaseModel):
    """A TMDB lookup result, not yet cached locally."""

    tmdb_id: int
    title: str
    poster: str = ""
    backdrop: str | None = None
    overview: str = ""
    genres: list[str] = Field(default_factory=list)
    runtime_minutes: int | None = None
    release_year: int | None = None
    director: str | None = None
    cast: list[str] = Field(default_factory=list)


class TMDBSearchResponse(BaseModel):
    results: list[TMDBMovieResult]
