"""
Member directory and per-member stats.
"""
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.models import User, WatchedEntry, WatchedRating


class UserNotFoundError(Exception):
    """Raised when a member id does not resolve to an active user."""


def list_members(db: Session) -> list[User]:
    """All active members, oldest account first."""
    return (
        db.query(User)
        .filter(User.is_active.is_(True))
        .order_by(User.created_at.asc())
        .all()
    )


def get_member(db: Session, user_id: UUID) -> User:
    user = (
        db.query(User)
        .filter(User.id == user_id, User.is_active.is_(True))
        .first()
    )
    if user is None:
        raise UserNotFoundError(f"User {user_id} not found")
    return user


def get_member_stats(db: Session, user_id: UUID) -> dict:
    """
    movies_watched counts the whole group log (everyone watches together);
    ratings_given / avg_rating are this member's own.
    """
    get_member(db, user_id)

    movies_watched = db.query(func.count(WatchedEntry.id)).scalar() or 0
    ratings_given, avg_score = (
        db.query(func.count(WatchedRating.score), func.avg(WatchedRating.score))
        .filter(WatchedRating.user_id == user_id)
        .one()
    )

    return {
        "user_id": user_id,
        "movies_watched": movies_watched,
        "ratings_given": ratings_given or 0,
        "avg_rating": round(float(avg_score), 2) if avg_score is not None else 0.0,
    }
