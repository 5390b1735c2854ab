"""
SQLAlchemy ORM models.

Column names, constraint names and Postgres-specific types (JSONB, UUID)
match alembic/versions exactly; keep the two in step.

Relationships are declared here so services can navigate the graph
without writing raw joins everywhere.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, relationship


# ── Base ──────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


# ── Enums ─────────────────────────────────────────────────────────────────────

class NightStatusEnum(str, PyEnum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    DONE = "done"


# ── Timestamp helper ──────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Models ────────────────────────────────────────────────────────────────────

class User(Base):
    """
    A member of the movie-night group.

    username / email are stored lowercased by auth_service.
    """
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(32), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(60), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    password_hash = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    hosted_nights = relationship(
        "MovieNight",
        back_populates="host",
        foreign_keys="MovieNight.host_id",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


class Movie(Base):
    """
    A film cached from TMDB.

    tmdb_id is the natural key: upserts return the existing row rather than
    refreshing it.
    """
    __tablename__ = "movies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tmdb_id = Column(Integer, unique=True, nullable=False, index=True)
    title = Column(String(500), nullable=False, index=True)
    poster = Column(String(500), nullable=False, default="")
    backdrop = Column(String(500), nullable=True)
    overview = Column(Text, nullable=False, default="")
    genres = Column(JSONB, nullable=False, default=list)
    runtime_minutes = Column(Integer, nullable=True)
    release_year = Column(Integer, nullable=False)
    imdb_rating = Column(Numeric(3, 1), nullable=True)
    imdb_votes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "release_year BETWEEN 1800 AND 2200",
            name="chk_movie_release_year",
        ),
    )

    def __repr__(self) -> str:
        return f"<Movie id={self.id} title={self.title!r} year={self.release_year}>"


# ── Watchlist ─────────────────────────────────────────────────────────────────

class WatchlistEntry(Base):
    """A movie on the group watchlist. Each movie appears at most once."""
    __tablename__ = "watchlist_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    movie_id = Column(
        UUID(as_uuid=True),
        ForeignKey("movies.id", ondelete="CASCADE"),
        nullable=False,
    )
    added_by = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    note = Column(Text, nullable=True)
    upvote_count = Column(Integer, default=0, nullable=False)
    added_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("movie_id", name="uq_watchlist_movie"),
    )

    movie = relationship("Movie")
    added_by_user = relationship("User")
    upvotes = relationship(
        "WatchlistUpvote",
        back_populates="entry",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<WatchlistEntry id={self.id} movie={self.movie_id}>"


class WatchlistUpvote(Base):
    """One upvote per user per watchlist entry."""
    __tablename__ = "watchlist_upvotes"

    entry_id = Column(
        UUID(as_uuid=True),
        ForeignKey("watchlist_entries.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    entry = relationship("WatchlistEntry", back_populates="upvotes")


# ── Movie nights ──────────────────────────────────────────────────────────────

class MovieNight(Base):
    """
    One planned or finished group viewing.

    status only ever moves forward: upcoming → active → done.

    Spin state:
      spin_started_at   — set while a roulette draw is waiting to be settled;
                          NULL when the wheel is idle.
      pending_movie_id  — the drawn winner, committed to picked_movie_id on
                          settle and discarded on cancel.
    """
    __tablename__ = "movie_nights"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(120), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    host_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(
        SAEnum(
            NightStatusEnum,
            name="night_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=NightStatusEnum.UPCOMING,
        index=True,
    )
    picked_movie_id = Column(
        UUID(as_uuid=True),
        ForeignKey("movies.id", ondelete="SET NULL"),
        nullable=True,
    )
    picked_by = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    picked_at = Column(DateTime(timezone=True), nullable=True)
    spin_started_at = Column(DateTime(timezone=True), nullable=True)
    spin_started_by = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    pending_movie_id = Column(
        UUID(as_uuid=True),
        ForeignKey("movies.id", ondelete="SET NULL"),
        nullable=True,
    )
    pending_rotation = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "length(btrim(title)) >= 1 AND length(btrim(title)) <= 120",
            name="chk_movie_night_title",
        ),
    )

    host = relationship("User", foreign_keys=[host_id], back_populates="hosted_nights")
    picked_movie = relationship("Movie", foreign_keys=[picked_movie_id])
    pending_movie = relationship("Movie", foreign_keys=[pending_movie_id])
    attendees = relationship(
        "NightAttendee",
        back_populates="night",
        cascade="all, delete-orphan",
        order_by="NightAttendee.joined_at",
    )
    # Insertion order decides sector layout on the wheel
    candidates = relationship(
        "NightCandidate",
        back_populates="night",
        cascade="all, delete-orphan",
        order_by="NightCandidate.position",
    )

    def __repr__(self) -> str:
        return f"<MovieNight id={self.id} title={self.title!r} status={self.status}>"


class NightAttendee(Base):
    """Join table: users attending a movie night."""
    __tablename__ = "night_attendees"

    night_id = Column(
        UUID(as_uuid=True),
        ForeignKey("movie_nights.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    joined_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    night = relationship("MovieNight", back_populates="attendees")
    user = relationship("User")


class NightCandidate(Base):
    """A movie on a night's roulette wheel, at a fixed position."""
    __tablename__ = "night_candidates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    night_id = Column(
        UUID(as_uuid=True),
        ForeignKey("movie_nights.id", ondelete="CASCADE"),
        nullable=False,
    )
    movie_id = Column(
        UUID(as_uuid=True),
        ForeignKey("movies.id", ondelete="CASCADE"),
        nullable=False,
    )
    position = Column(Integer, nullable=False)
    added_by = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    added_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("night_id", "movie_id", name="uq_night_candidate_movie"),
        UniqueConstraint("night_id", "position", name="uq_night_candidate_position"),
        CheckConstraint("position >= 0", name="chk_night_candidate_position"),
    )

    night = relationship("MovieNight", back_populates="candidates")
    movie = relationship("Movie")


# ── Watched log ───────────────────────────────────────────────────────────────

class WatchedEntry(Base):
    """A film the group has watched, optionally tied to the night it was picked for."""
    __tablename__ = "watched_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    movie_id = Column(
        UUID(as_uuid=True),
        ForeignKey("movies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    night_id = Column(
        UUID(as_uuid=True),
        ForeignKey("movie_nights.id", ondelete="SET NULL"),
        nullable=True,
    )
    picked_by = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    watched_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("night_id", name="uq_watched_night"),
        Index("idx_watched_entries_watched_at", "watched_at"),
    )

    movie = relationship("Movie")
    night = relationship("MovieNight")
    ratings = relationship(
        "WatchedRating",
        back_populates="entry",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<WatchedEntry id={self.id} movie={self.movie_id}>"


class WatchedRating(Base):
    """
    One user's score for one watched entry.

    Keyed by (watched_entry_id, user_id): a second submission from the same
    user updates this row instead of adding another.
    """
    __tablename__ = "watched_ratings"

    watched_entry_id = Column(
        UUID(as_uuid=True),
        ForeignKey("watched_entries.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    score = Column(Integer, nullable=False)
    note = Column(Text, nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("score BETWEEN 1 AND 10", name="chk_watched_rating_score"),
    )

    entry = relationship("WatchedEntry", back_populates="ratings")
    user = relationship("User")
