"""
Watched log and ratings.

Ratings live in watched_ratings keyed by (watched_entry_id, user_id), so
"one score per member per viewing" is a primary key, not a check.
"""
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import Movie, MovieNight, NightStatusEnum, User, WatchedEntry, WatchedRating
from app.services.movie_service import MovieNotFoundError, movie_summary
from app.services.night_rules import NightNotFoundError, validate_score

logger = structlog.get_logger(__name__)


class WatchedEntryNotFoundError(Exception):
    """Raised when a watched entry does not exist."""


class DuplicateWatchedEntryError(Exception):
    """Raised when a night already has its watched entry."""


class NightStillOpenError(Exception):
    """Raised when a viewing is logged by hand against a night that is not done."""


def average_score(scores: Iterable[int]) -> float | None:
    """Mean of *scores* rounded to 2 places; None when there are none."""
    values = list(scores)
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def _build_entry_dict(db: Session, entry: WatchedEntry, movie: Movie) -> dict:
    rows = (
        db.query(WatchedRating, User)
        .join(User, WatchedRating.user_id == User.id)
        .filter(WatchedRating.watched_entry_id == entry.id)
        .order_by(WatchedRating.updated_at.asc())
        .all()
    )
    ratings = [
        {
            "user_id": user.id,
            "username": user.username,
            "score": rating.score,
            "note": rating.note,
            "updated_at": rating.updated_at,
        }
        for rating, user in rows
    ]
    return {
        "id": entry.id,
        "movie": movie_summary(movie),
        "night_id": entry.night_id,
        "picked_by": entry.picked_by,
        "watched_at": entry.watched_at,
        "ratings": ratings,
        "avg_rating": average_score(r["score"] for r in ratings),
    }


def list_watched(db: Session, limit: int | None = None) -> list[dict]:
    """Watched entries, most recently watched first."""
    query = (
        db.query(WatchedEntry, Movie)
        .join(Movie, WatchedEntry.movie_id == Movie.id)
        .order_by(WatchedEntry.watched_at.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    return [_build_entry_dict(db, entry, movie) for entry, movie in query.all()]


def count_watched(db: Session) -> int:
    return db.query(func.count(WatchedEntry.id)).scalar() or 0


def _flush_entry(db: Session) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        # uq_watched_night: another request logged the night first
        db.rollback()
        raise DuplicateWatchedEntryError("This night has already been logged as watched") from exc


def create_watched_entry(
    db: Session,
    movie_id: UUID,
    watched_at: datetime,
    night_id: UUID | None = None,
    picked_by: UUID | None = None,
) -> WatchedEntry:
    """
    Log a viewing by hand.

    A night can only be referenced once it is done. Open nights get their
    entry from night completion, which keeps one entry per night.
    """
    if db.query(Movie.id).filter(Movie.id == movie_id).first() is None:
        raise MovieNotFoundError(f"Movie {movie_id} not found")

    if night_id is not None:
        night = db.query(MovieNight).filter(MovieNight.id == night_id).first()
        if night is None:
            raise NightNotFoundError(f"Night {night_id} not found")
        if night.status != NightStatusEnum.DONE:
            raise NightStillOpenError("Finish the night to log it as watched")
        if find_night_entry(db, night_id) is not None:
            raise DuplicateWatchedEntryError("This night has already been logged as watched")

    entry = WatchedEntry(
        movie_id=movie_id,
        night_id=night_id,
        picked_by=picked_by,
        watched_at=watched_at,
    )
    db.add(entry)
    _flush_entry(db)
    db.commit()
    db.refresh(entry)
    logger.info("watched_entry_logged", entry_id=str(entry.id), movie_id=str(movie_id))
    return entry


def find_night_entry(db: Session, night_id: UUID) -> WatchedEntry | None:
    return db.query(WatchedEntry).filter(WatchedEntry.night_id == night_id).first()


def log_night_viewing(db: Session, night: MovieNight, watched_at: datetime) -> WatchedEntry:
    """
    The watched entry for a night being completed. An entry already logged
    for the night is reused. Flushes only; the caller commits.
    """
    entry = find_night_entry(db, night.id)
    if entry is not None:
        return entry

    entry = WatchedEntry(
        movie_id=night.picked_movie_id,
        night_id=night.id,
        picked_by=night.picked_by,
        watched_at=watched_at,
    )
    db.add(entry)
    _flush_entry(db)
    logger.info("watched_entry_logged", entry_id=str(entry.id), night_id=str(night.id))
    return entry


def set_rating(
    db: Session,
    entry_id: UUID,
    user_id: UUID,
    score: int,
    note: str | None = None,
) -> WatchedRating:
    """Insert or replace the member's rating. Caller commits."""
    validate_score(score, settings.RATING_MIN, settings.RATING_MAX)
    cleaned_note = note.strip() if note and note.strip() else None

    rating = db.get(WatchedRating, (entry_id, user_id))
    if rating is None:
        rating = WatchedRating(
            watched_entry_id=entry_id,
            user_id=user_id,
            score=score,
            note=cleaned_note,
        )
    else:
        rating.score = score
        rating.note = cleaned_note
    db.add(rating)
    logger.info("rating_recorded", entry_id=str(entry_id), user_id=str(user_id), score=score)
    return rating


def rate_entry(
    db: Session,
    entry_id: UUID,
    user_id: UUID,
    score: int,
    note: str | None = None,
) -> dict:
    """Record the caller's rating and return the refreshed entry."""
    entry = db.query(WatchedEntry).filter(WatchedEntry.id == entry_id).first()
    if entry is None:
        raise WatchedEntryNotFoundError(f"Watched entry {entry_id} not found")

    set_rating(db, entry_id, user_id, score, note)
    db.commit()

    movie = db.query(Movie).filter(Movie.id == entry.movie_id).first()
    return _build_entry_dict(db, entry, movie)


def get_watched_entry(db: Session, entry_id: UUID) -> dict:
    row = (
        db.query(WatchedEntry, Movie)
        .join(Movie, WatchedEntry.movie_id == Movie.id)
        .filter(WatchedEntry.id == entry_id)
        .first()
    )
    if row is None:
        raise WatchedEntryNotFoundError(f"Watched entry {entry_id} not found")
    entry, movie = row
    return _build_entry_dict(db, entry, movie)


def night_average_ratings(db: Session, night_ids: list[UUID]) -> dict[UUID, float]:
    """Average group score per night, for nights that have any ratings."""
    if not night_ids:
        return {}
    rows = (
        db.query(WatchedEntry.night_id, func.avg(WatchedRating.score))
        .join(WatchedRating, WatchedRating.watched_entry_id == WatchedEntry.id)
        .filter(WatchedEntry.night_id.in_(night_ids))
        .group_by(WatchedEntry.night_id)
        .all()
    )
    return {night_id: round(float(avg), 2) for night_id, avg in rows if avg is not None}
