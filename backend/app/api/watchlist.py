"""
Watchlist API — /watchlist
───────────────────────────
The group's shared list of movies to watch, ranked by upvotes.

Endpoints:
  GET    /watchlist                    — List entries, most upvoted first
  GET    /watchlist/count              — Number of entries
  POST   /watchlist                    — Add a movie (201 new, 200 already listed)
  POST   /watchlist/{entry_id}/upvote  — Toggle the caller's upvote
  DELETE /watchlist/{entry_id}         — Remove an entry
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.errors import api_error
from app.db.models import User
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.schemas.watchlist import (
    AddWatchlistEntryRequest,
    CountResponse,
    UpvoteResponse,
    WatchlistEntryResponse,
)
from app.services.movie_service import MovieNotFoundError
from app.services.watchlist_service import (
    WatchlistEntryNotFoundError,
    add_to_watchlist,
    count_watchlist,
    list_watchlist,
    remove_from_watchlist,
    toggle_upvote,
)

router = APIRouter()


@router.get("", response_model=list[WatchlistEntryResponse])
def get_watchlist(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[dict]:
    return list_watchlist(db, current_user.id)


@router.get("/count", response_model=CountResponse)
def get_watchlist_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return {"count": count_watchlist(db)}


@router.post("", response_model=WatchlistEntryResponse, status_code=status.HTTP_201_CREATED)
def add_entry(
    payload: AddWatchlistEntryRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        entry, created = add_to_watchlist(db, current_user.id, payload.movie_id, payload.note)
    except MovieNotFoundError as exc:
        raise api_error(status.HTTP_400_BAD_REQUEST, "MOVIE_NOT_FOUND", exc) from exc
    if not created:
        response.status_code = status.HTTP_200_OK
    return entry


@router.post("/{entry_id}/upvote", response_model=UpvoteResponse)
def upvote_entry(
    entry_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return toggle_upvote(db, entry_id, current_user.id)
    except WatchlistEntryNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "WATCHLIST_ENTRY_NOT_FOUND", exc) from exc


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> None:
    try:
        remove_from_watchlist(db, entry_id)
    except WatchlistEntryNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "WATCHLIST_ENTRY_NOT_FOUND", exc) from exc
