"""
Watched API — /watched
───────────────────────
Endpoints:
  GET  /watched                        — Everything watched, newest first
  GET  /watched/recent?limit=5         — The latest few entries
  GET  /watched/count                  — Number of watched entries
  POST /watched                        — Log a movie as watched
  GET  /watched/{entry_id}             — One entry with all ratings
  PUT  /watched/{entry_id}/ratings     — Set (or replace) the caller's rating
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.errors import api_error
from app.db.models import User
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.schemas.watched import CreateWatchedEntryRequest, RatingRequest, WatchedEntryResponse
from app.schemas.watchlist import CountResponse
from app.services.movie_service import MovieNotFoundError
from app.services.night_rules import InvalidRatingError, NightNotFoundError
from app.services.watched_service import (
    DuplicateWatchedEntryError,
    NightStillOpenError,
    WatchedEntryNotFoundError,
    count_watched,
    create_watched_entry,
    get_watched_entry,
    list_watched,
    rate_entry,
)

router = APIRouter()


@router.get("", response_model=list[WatchedEntryResponse])
def get_watched(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[dict]:
    return list_watched(db)


@router.get("/recent", response_model=list[WatchedEntryResponse])
def get_recent_watched(
    limit: int = Query(5, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[dict]:
    return list_watched(db, limit=limit)


@router.get("/count", response_model=CountResponse)
def get_watched_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return {"count": count_watched(db)}


@router.post("", response_model=WatchedEntryResponse, status_code=status.HTTP_201_CREATED)
def log_watched(
    payload: CreateWatchedEntryRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        entry = create_watched_entry(
            db,
            movie_id=payload.movie_id,
            watched_at=payload.watched_at,
            night_id=payload.night_id,
            picked_by=payload.picked_by,
        )
    except MovieNotFoundError as exc:
        raise api_error(status.HTTP_400_BAD_REQUEST, "MOVIE_NOT_FOUND", exc) from exc
    except DuplicateWatchedEntryError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "ALREADY_WATCHED", exc) from exc
    except NightNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "NIGHT_NOT_FOUND", exc) from exc
    except NightStillOpenError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "NIGHT_NOT_DONE", exc) from exc
    return get_watched_entry(db, entry.id)


@router.get("/{entry_id}", response_model=WatchedEntryResponse)
def get_entry(
    entry_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return get_watched_entry(db, entry_id)
    except WatchedEntryNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "WATCHED_ENTRY_NOT_FOUND", exc) from exc


@router.put("/{entry_id}/ratings", response_model=WatchedEntryResponse)
def rate_watched(
    entry_id: UUID,
    payload: RatingRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return rate_entry(db, entry_id, current_user.id, payload.score, payload.note)
    except WatchedEntryNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "WATCHED_ENTRY_NOT_FOUND", exc) from exc
    except InvalidRatingError as exc:
        raise api_error(status.HTTP_400_BAD_REQUEST, "INVALID_RATING", exc) from exc
