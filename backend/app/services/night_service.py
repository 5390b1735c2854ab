"""
Movie night business logic: scheduling, candidates, roulette and completion.

Spin flow:
  1. spin()    — draws a winner from the ordered candidates and parks it on
                 the night as a pending pick. The wheel counts as spinning
                 until the pick is settled, cancelled or times out.
  2. settle()  — called by the spinner once the reveal animation ends;
                 commits the pending winner as the night's pick.
  3. cancel()  — discards an unsettled draw. A committed pick is untouched.

The roulette draw itself happens in app.services.roulette; this module only
decides whether a draw may run and persists what it returns.
"""
from datetime import datetime, timedelta, timezone
from uuid import UUID

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import (
    Movie,
    MovieNight,
    NightAttendee,
    NightCandidate,
    NightStatusEnum,
    User,
)
from app.services.movie_service import MovieNotFoundError, movie_summary
from app.services.night_rules import (
    NightFinishedError,
    NightNotFoundError,
    check_transition,
    ensure_spin_allowed,
    is_spin_in_progress,
)
from app.services.roulette import Candidate, RouletteSelector
from app.services.watched_service import log_night_viewing, night_average_ratings, set_rating

logger = structlog.get_logger(__name__)


class CandidateAlreadyExistsError(Exception):
    pass


class NoPendingSpinError(Exception):
    """Raised when settling or cancelling with no live spin on the night."""


class NotSpinnerError(Exception):
    """Raised when someone other than the spinner tries to settle a spin."""


class NoPickError(Exception):
    """Raised when completing a night that has no picked movie."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _get_night_or_raise(db: Session, night_id: UUID, lock: bool = False) -> MovieNight:
    query = db.query(MovieNight).filter(MovieNight.id == night_id)
    if lock:
        # Serialises concurrent spin/settle requests on the same night
        query = query.with_for_update()
    night = query.first()
    if not night:
        raise NightNotFoundError(f"Night {night_id} not found")
    return night


def _spin_active(night: MovieNight, now: datetime) -> bool:
    return is_spin_in_progress(night.spin_started_at, now, settings.ROULETTE_SPIN_TIMEOUT_SECONDS)


def _clear_spin(night: MovieNight) -> None:
    night.spin_started_at = None
    night.spin_started_by = None
    night.pending_movie_id = None
    night.pending_rotation = None


def _build_night_dict(night: MovieNight, now: datetime | None = None) -> dict:
    now = now or _utcnow()
    spinning = _spin_active(night, now)
    return {
        "id": night.id,
        "title": night.title,
        "date": night.date,
        "host_id": night.host_id,
        "host_username": night.host.username if night.host else "unknown",
        "status": night.status,
        "attendee_count": len(night.attendees),
        "candidate_count": len(night.candidates),
        "picked_movie": movie_summary(night.picked_movie),
        "picked_by": night.picked_by,
        "picked_at": night.picked_at,
        "is_spinning": spinning,
        # Lets a client that reloads mid-spin finish the reveal
        "spin_started_by": night.spin_started_by if spinning else None,
        "pending_movie": movie_summary(night.pending_movie) if spinning else None,
        "pending_rotation": night.pending_rotation if spinning else None,
        "created_at": night.created_at,
    }


# ── Queries ───────────────────────────────────────────────────────────────────

def list_nights(db: Session) -> list[dict]:
    """All nights, latest date first."""
    nights = db.query(MovieNight).order_by(MovieNight.date.desc()).all()
    now = _utcnow()
    return [_build_night_dict(night, now) for night in nights]


def list_upcoming_nights(db: Session) -> list[dict]:
    """Nights still in 'upcoming', soonest first."""
    nights = (
        db.query(MovieNight)
        .filter(MovieNight.status == NightStatusEnum.UPCOMING)
        .order_by(MovieNight.date.asc())
        .all()
    )
    now = _utcnow()
    return [_build_night_dict(night, now) for night in nights]


def get_night_detail(db: Session, night_id: UUID) -> dict:
    night = _get_night_or_raise(db, night_id)

    attendee_rows = (
        db.query(NightAttendee, User)
        .join(User, NightAttendee.user_id == User.id)
        .filter(NightAttendee.night_id == night_id)
        .order_by(NightAttendee.joined_at.asc())
        .all()
    )
    attendees = [
        {
            "user_id": user.id,
            "username": user.username,
            "display_name": user.display_name,
            "avatar_url": user.avatar_url,
            "joined_at": attendee.joined_at,
        }
        for attendee, user in attendee_rows
    ]

    candidates = [
        {
            "position": candidate.position,
            "movie": movie_summary(candidate.movie),
            "added_at": candidate.added_at,
        }
        for candidate in night.candidates
    ]

    detail = _build_night_dict(night)
    detail["attendees"] = attendees
    detail["candidates"] = candidates
    return detail


def list_calendar(db: Session) -> list[dict]:
    """Every night with its picked movie and, once watched, the group's average score."""
    nights = db.query(MovieNight).order_by(MovieNight.date.desc()).all()
    averages = night_average_ratings(db, [night.id for night in nights if night.picked_movie_id])
    return [
        {
            "id": night.id,
            "title": night.title,
            "date": night.date,
            "status": night.status,
            "picked_movie": movie_summary(night.picked_movie),
            "avg_rating": averages.get(night.id),
        }
        for night in nights
    ]


# ── Scheduling ────────────────────────────────────────────────────────────────

def create_night(db: Session, user_id: UUID, title: str, date: datetime) -> dict:
    """Schedule a night; the creator hosts it and is its first attendee."""
    night = MovieNight(
        title=title.strip(),
        date=date,
        host_id=user_id,
        status=NightStatusEnum.UPCOMING,
    )
    db.add(night)
    db.flush()

    db.add(NightAttendee(night_id=night.id, user_id=user_id))
    db.commit()
    db.refresh(night)

    logger.info("night_created", night_id=str(night.id), host_id=str(user_id))
    return _build_night_dict(night)


def join_night(db: Session, night_id: UUID, user_id: UUID) -> dict:
    """Add the caller as an attendee. Joining twice is a no-op."""
    night = _get_night_or_raise(db, night_id)

    existing = (
        db.query(NightAttendee)
        .filter(NightAttendee.night_id == night_id, NightAttendee.user_id == user_id)
        .first()
    )
    if existing is None:
        db.add(NightAttendee(night_id=night_id, user_id=user_id))
        db.commit()
        db.refresh(night)

    return _build_night_dict(night)


def add_candidate(db: Session, night_id: UUID, user_id: UUID, movie_id: UUID) -> dict:
    """
    Append a movie to the wheel. Position is insertion order and decides
    which sector the movie gets.
    """
    night = _get_night_or_raise(db, night_id, lock=True)
    if night.status == NightStatusEnum.DONE:
        raise NightFinishedError()

    movie = db.query(Movie).filter(Movie.id == movie_id).first()
    if not movie:
        raise MovieNotFoundError(f"Movie {movie_id} not found")

    existing = (
        db.query(NightCandidate)
        .filter(NightCandidate.night_id == night_id, NightCandidate.movie_id == movie_id)
        .first()
    )
    if existing:
        raise CandidateAlreadyExistsError("Movie is already a candidate for this night")

    last_position = (
        db.query(func.max(NightCandidate.position))
        .filter(NightCandidate.night_id == night_id)
        .scalar()
    )
    candidate = NightCandidate(
        night_id=night_id,
        movie_id=movie_id,
        position=0 if last_position is None else last_position + 1,
        added_by=user_id,
    )
    db.add(candidate)
    db.commit()
    db.refresh(candidate)

    logger.info(
        "night_candidate_added",
        night_id=str(night_id),
        movie_id=str(movie_id),
        position=candidate.position,
    )
    return {
        "position": candidate.position,
        "movie": movie_summary(movie),
        "added_at": candidate.added_at,
    }


def update_status(
    db: Session,
    night_id: UUID,
    user_id: UUID,
    target: NightStatusEnum,
) -> dict:
    """
    Move a night forward. Reaching 'done' goes through complete_night so the
    viewing is always logged.
    """
    if target == NightStatusEnum.DONE:
        return complete_night(db, night_id, user_id)["night"]

    night = _get_night_or_raise(db, night_id)
    check_transition(night.status, target)
    night.status = target
    db.add(night)
    db.commit()
    db.refresh(night)

    logger.info("night_status_changed", night_id=str(night_id), status=target.value)
    return _build_night_dict(night)


# ── Roulette ──────────────────────────────────────────────────────────────────

def spin(
    db: Session,
    night_id: UUID,
    user_id: UUID,
    selector: RouletteSelector,
    allow_repick: bool | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Draw a winner and park it as the night's pending pick.

    Raises a SpinDeclinedError subclass (nothing drawn, nothing changed) when
    the night is done, the pick is locked, a spin is already live, or there
    are fewer than two candidates.
    """
    now = now or _utcnow()
    if allow_repick is None:
        allow_repick = settings.ROULETTE_ALLOW_REPICK

    night = _get_night_or_raise(db, night_id, lock=True)
    ensure_spin_allowed(night.status, night.picked_movie_id is not None, allow_repick)

    wheel = [
        Candidate(id=str(candidate.movie_id), title=candidate.movie.title)
        for candidate in night.candidates
    ]
    outcome = selector.draw(wheel, in_progress=_spin_active(night, now))
    winner = night.candidates[outcome.winner_index]

    night.spin_started_at = now
    night.spin_started_by = user_id
    night.pending_movie_id = winner.movie_id
    night.pending_rotation = outcome.rotation_degrees
    db.add(night)
    db.commit()

    logger.info(
        "night_spin_started",
        night_id=str(night_id),
        user_id=str(user_id),
        candidates=len(wheel),
        winner_index=outcome.winner_index,
        winner_id=outcome.winner_id,
    )
    return {
        "night_id": night_id,
        "winner_index": outcome.winner_index,
        "winner_id": winner.movie_id,
        "winner": movie_summary(winner.movie),
        "rotation_degrees": outcome.rotation_degrees,
        "sector_degrees": outcome.sector_degrees,
        "spin_started_at": now,
        "spin_expires_at": now + timedelta(seconds=settings.ROULETTE_SPIN_TIMEOUT_SECONDS),
    }


def settle_spin(
    db: Session,
    night_id: UUID,
    user_id: UUID,
    now: datetime | None = None,
) -> dict:
    """Commit the pending winner as the night's pick (reveal finished)."""
    now = now or _utcnow()
    night = _get_night_or_raise(db, night_id, lock=True)

    if night.pending_movie_id is None or not _spin_active(night, now):
        raise NoPendingSpinError("There is no spin waiting to be settled")
    if night.spin_started_by != user_id:
        raise NotSpinnerError("Only the member who spun the wheel can settle it")
    if night.status == NightStatusEnum.DONE:
        raise NightFinishedError()

    night.picked_movie_id = night.pending_movie_id
    night.picked_by = user_id
    night.picked_at = now
    _clear_spin(night)
    db.add(night)
    db.commit()
    db.refresh(night)

    logger.info(
        "night_pick_committed",
        night_id=str(night_id),
        movie_id=str(night.picked_movie_id),
        user_id=str(user_id),
    )
    return _build_night_dict(night, now)


def cancel_spin(
    db: Session,
    night_id: UUID,
    user_id: UUID,
    now: datetime | None = None,
) -> dict:
    """Discard an unsettled draw. Only the spinner or the host may cancel."""
    now = now or _utcnow()
    night = _get_night_or_raise(db, night_id, lock=True)

    if night.pending_movie_id is None:
        raise NoPendingSpinError("There is no spin to cancel")
    if user_id not in (night.spin_started_by, night.host_id):
        raise NotSpinnerError("Only the spinner or the host can cancel this spin")

    _clear_spin(night)
    db.add(night)
    db.commit()
    db.refresh(night)

    logger.info("night_spin_cancelled", night_id=str(night_id), user_id=str(user_id))
    return _build_night_dict(night, now)


# ── Completion ────────────────────────────────────────────────────────────────

def complete_night(
    db: Session,
    night_id: UUID,
    user_id: UUID,
    score: int | None = None,
    note: str | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Finish the night: status → done, log the picked movie as watched (or
    reuse the night's existing entry) and, if given, record the caller's
    rating. One transaction.
    """
    now = now or _utcnow()
    night = _get_night_or_raise(db, night_id, lock=True)

    check_transition(night.status, NightStatusEnum.DONE)
    if night.picked_movie_id is None:
        raise NoPickError("Pick a movie before finishing the night")

    night.status = NightStatusEnum.DONE
    _clear_spin(night)
    db.add(night)

    entry = log_night_viewing(db, night, now)
    if score is not None:
        set_rating(db, entry.id, user_id, score, note)

    db.commit()
    db.refresh(night)

    logger.info(
        "night_completed",
        night_id=str(night_id),
        watched_entry_id=str(entry.id),
        rated=score is not None,
    )
    return {"night": _build_night_dict(night, now), "watched_entry_id": entry.id}
