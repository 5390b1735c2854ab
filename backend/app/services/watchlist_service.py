"""
Group watchlist business logic.
"""
from uuid import UUID

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.models import Movie, User, WatchlistEntry, WatchlistUpvote
from app.services.movie_service import MovieNotFoundError, movie_summary

logger = structlog.get_logger(__name__)


class WatchlistEntryNotFoundError(Exception):
    pass


def _build_entry_dict(
    entry: WatchlistEntry,
    movie: Movie,
    adder: User | None,
    viewer_has_upvoted: bool,
) -> dict:
    return {
        "id": entry.id,
        "movie": movie_summary(movie),
        "added_by": entry.added_by,
        "added_by_username": adder.username if adder else "unknown",
        "note": entry.note,
        "upvote_count": entry.upvote_count,
        "viewer_has_upvoted": viewer_has_upvoted,
        "added_at": entry.added_at,
    }


def _get_entry_or_raise(db: Session, entry_id: UUID) -> WatchlistEntry:
    entry = db.query(WatchlistEntry).filter(WatchlistEntry.id == entry_id).first()
    if not entry:
        raise WatchlistEntryNotFoundError(f"Watchlist entry {entry_id} not found")
    return entry


def list_watchlist(db: Session, viewer_id: UUID) -> list[dict]:
    """Every entry, most upvoted first (ties: newest first)."""
    rows = (
        db.query(WatchlistEntry, Movie, User)
        .join(Movie, WatchlistEntry.movie_id == Movie.id)
        .outerjoin(User, WatchlistEntry.added_by == User.id)
        .order_by(WatchlistEntry.upvote_count.desc(), WatchlistEntry.added_at.desc())
        .all()
    )

    viewer_upvotes = {
        v.entry_id
        for v in db.query(WatchlistUpvote.entry_id)
        .filter(WatchlistUpvote.user_id == viewer_id)
        .all()
    }

    return [
        _build_entry_dict(entry, movie, adder, entry.id in viewer_upvotes)
        for entry, movie, adder in rows
    ]


def count_watchlist(db: Session) -> int:
    return db.query(func.count(WatchlistEntry.id)).scalar() or 0


def add_to_watchlist(
    db: Session,
    user_id: UUID,
    movie_id: UUID,
    note: str | None = None,
) -> tuple[dict, bool]:
    """
    Add a movie to the watchlist.

    Returns (entry, created). A movie that is already listed returns its
    existing entry; the new note is ignored.
    """
    movie = db.query(Movie).filter(Movie.id == movie_id).first()
    if not movie:
        raise MovieNotFoundError(f"Movie {movie_id} not found")

    existing = db.query(WatchlistEntry).filter(WatchlistEntry.movie_id == movie_id).first()
    if existing:
        adder = db.query(User).filter(User.id == existing.added_by).first()
        has_upvoted = (
            db.query(WatchlistUpvote)
            .filter(WatchlistUpvote.entry_id == existing.id, WatchlistUpvote.user_id == user_id)
            .first()
            is not None
        )
        return _build_entry_dict(existing, movie, adder, has_upvoted), False

    entry = WatchlistEntry(
        movie_id=movie_id,
        added_by=user_id,
        note=note.strip() if note and note.strip() else None,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)

    adder = db.query(User).filter(User.id == user_id).first()
    logger.info("watchlist_entry_added", entry_id=str(entry.id), movie_id=str(movie_id))
    return _build_entry_dict(entry, movie, adder, False), True


def toggle_upvote(db: Session, entry_id: UUID, user_id: UUID) -> dict:
    """Upvote, or take back an existing upvote."""
    entry = _get_entry_or_raise(db, entry_id)

    existing = (
        db.query(WatchlistUpvote)
        .filter(WatchlistUpvote.entry_id == entry_id, WatchlistUpvote.user_id == user_id)
        .first()
    )

    if existing:
        db.delete(existing)
        entry.upvote_count = max(0, entry.upvote_count - 1)
        has_upvoted = False
    else:
        db.add(WatchlistUpvote(entry_id=entry_id, user_id=user_id))
        entry.upvote_count += 1
        has_upvoted = True

    db.add(entry)
    db.commit()
    db.refresh(entry)

    return {
        "entry_id": entry_id,
        "upvote_count": entry.upvote_count,
        "viewer_has_upvoted": has_upvoted,
    }


def remove_from_watchlist(db: Session, entry_id: UUID) -> bool:
    entry = _get_entry_or_raise(db, entry_id)
    db.delete(entry)
    db.commit()
    logger.info("watchlist_entry_removed", entry_id=str(entry_id))
    return True
