"""
Movies API — /movies
─────────────────────
Endpoints:
  GET  /movies/tmdb/search?query=    — Search TMDB (not cached)
  GET  /movies/tmdb/details/{tmdb_id} — TMDB details with credits (not cached)
  GET  /movies/tmdb/{tmdb_id}        — Cached movie by TMDB id
  POST /movies                       — Cache a movie (201 new, 200 existing)
  GET  /movies/{movie_id}            — Cached movie by id
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api.errors import api_error
from app.db.models import Movie, User
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.schemas.movies import (
    MovieResponse,
    TMDBMovieResult,
    TMDBSearchResponse,
    UpsertMovieRequest,
)
from app.services.movie_service import (
    MovieNotFoundError,
    get_movie,
    get_movie_by_tmdb_id,
    upsert_movie,
)
from app.services.tmdb_sync import TMDBConfigError, TMDBService, TMDBUpstreamError

router = APIRouter()


def get_tmdb_service() -> TMDBService:
    try:
        return TMDBService()
    except TMDBConfigError as exc:
        raise api_error(status.HTTP_503_SERVICE_UNAVAILABLE, "TMDB_DISABLED", exc) from exc


# ── TMDB lookups ──────────────────────────────────────────────────────────────

@router.get("/tmdb/search", response_model=TMDBSearchResponse)
async def search_tmdb(
    query: str = Query("", max_length=200),
    page: int = Query(1, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    tmdb: TMDBService = Depends(get_tmdb_service),
) -> dict:
    try:
        results = await tmdb.search_movies(query, page=page)
    except TMDBUpstreamError as exc:
        raise api_error(status.HTTP_502_BAD_GATEWAY, "TMDB_UPSTREAM_ERROR", exc) from exc
    return {"results": results}


@router.get("/tmdb/details/{tmdb_id}", response_model=TMDBMovieResult)
async def tmdb_details(
    tmdb_id: int,
    current_user: User = Depends(get_current_user),
    tmdb: TMDBService = Depends(get_tmdb_service),
) -> dict:
    try:
        details = await tmdb.get_movie_details(tmdb_id)
    except TMDBUpstreamError as exc:
        raise api_error(status.HTTP_502_BAD_GATEWAY, "TMDB_UPSTREAM_ERROR", exc) from exc
    if details is None:
        raise api_error(status.HTTP_404_NOT_FOUND, "TMDB_MOVIE_NOT_FOUND", f"TMDB movie {tmdb_id} not found")
    return details


# ── Local cache ───────────────────────────────────────────────────────────────

@router.get("/tmdb/{tmdb_id}", response_model=MovieResponse)
def get_cached_by_tmdb_id(
    tmdb_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Movie:
    movie = get_movie_by_tmdb_id(db, tmdb_id)
    if movie is None:
        raise api_error(status.HTTP_404_NOT_FOUND, "MOVIE_NOT_FOUND", f"No cached movie for TMDB id {tmdb_id}")
    return movie


@router.post("", response_model=MovieResponse, status_code=status.HTTP_201_CREATED)
def cache_movie(
    payload: UpsertMovieRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Movie:
    movie, created = upsert_movie(db, payload)
    if not created:
        response.status_code = status.HTTP_200_OK
    return movie


@router.get("/{movie_id}", response_model=MovieResponse)
def get_cached_movie(
    movie_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Movie:
    try:
        return get_movie(db, movie_id)
    except MovieNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "MOVIE_NOT_FOUND", exc) from exc
