"""Initial schema: users, movies, watchlist, movie nights, watched log.

Revision ID: 0001
Revises:
Create Date: 2026-10-17 10:00:00
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

night_status = ENUM("upcoming", "active", "done", name="night_status", create_type=False)


def upgrade() -> None:
    night_status.create(op.get_bind(), checkfirst=True)

    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("username", sa.String(32), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(60), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── movies ────────────────────────────────────────────────────────────
    op.create_table(
        "movies",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("tmdb_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("poster", sa.String(500), nullable=False, server_default=""),
        sa.Column("backdrop", sa.String(500), nullable=True),
        sa.Column("overview", sa.Text(), nullable=False, server_default=""),
        sa.Column("genres", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("runtime_minutes", sa.Integer(), nullable=True),
        sa.Column("release_year", sa.Integer(), nullable=False),
        sa.Column("imdb_rating", sa.Numeric(3, 1), nullable=True),
        sa.Column("imdb_votes", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("release_year BETWEEN 1800 AND 2200", name="chk_movie_release_year"),
    )
    op.create_index("ix_movies_tmdb_id", "movies", ["tmdb_id"], unique=True)
    op.create_index("ix_movies_title", "movies", ["title"])

    # ── watchlist ─────────────────────────────────────────────────────────
    op.create_table(
        "watchlist_entries",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("movie_id", UUID(as_uuid=True), sa.ForeignKey("movies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("added_by", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("upvote_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("movie_id", name="uq_watchlist_movie"),
    )
    op.create_index(
        "idx_watchlist_upvotes",
        "watchlist_entries",
        [sa.text("upvote_count DESC"), sa.text("added_at DESC")],
    )

    op.create_table(
        "watchlist_upvotes",
        sa.Column("entry_id", UUID(as_uuid=True), sa.ForeignKey("watchlist_entries.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # ── movie_nights ──────────────────────────────────────────────────────
    op.create_table(
        "movie_nights",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("title", sa.String(120), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("host_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", night_status, nullable=False, server_default="upcoming"),
        sa.Column("picked_movie_id", UUID(as_uuid=True), sa.ForeignKey("movies.id", ondelete="SET NULL"), nullable=True),
        sa.Column("picked_by", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("picked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("spin_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("spin_started_by", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("pending_movie_id", UUID(as_uuid=True), sa.ForeignKey("movies.id", ondelete="SET NULL"), nullable=True),
        sa.Column("pending_rotation", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "length(btrim(title)) >= 1 AND length(btrim(title)) <= 120",
            name="chk_movie_night_title",
        ),
    )
    op.create_index("ix_movie_nights_date", "movie_nights", ["date"])
    op.create_index("ix_movie_nights_status", "movie_nights", ["status"])
    op.create_index("ix_movie_nights_host_id", "movie_nights", ["host_id"])

    op.create_table(
        "night_attendees",
        sa.Column("night_id", UUID(as_uuid=True), sa.ForeignKey("movie_nights.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "night_candidates",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("night_id", UUID(as_uuid=True), sa.ForeignKey("movie_nights.id", ondelete="CASCADE"), nullable=False),
        sa.Column("movie_id", UUID(as_uuid=True), sa.ForeignKey("movies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("added_by", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("night_id", "movie_id", name="uq_night_candidate_movie"),
        sa.UniqueConstraint("night_id", "position", name="uq_night_candidate_position"),
        sa.CheckConstraint("position >= 0", name="chk_night_candidate_position"),
    )

    # ── watched log ───────────────────────────────────────────────────────
    op.create_table(
        "watched_entries",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("movie_id", UUID(as_uuid=True), sa.ForeignKey("movies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("night_id", UUID(as_uuid=True), sa.ForeignKey("movie_nights.id", ondelete="SET NULL"), nullable=True),
        sa.Column("picked_by", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("watched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("night_id", name="uq_watched_night"),
    )
    op.create_index("ix_watched_entries_movie_id", "watched_entries", ["movie_id"])
    op.create_index("idx_watched_entries_watched_at", "watched_entries", ["watched_at"])

    op.create_table(
        "watched_ratings",
        sa.Column("watched_entry_id", UUID(as_uuid=True), sa.ForeignKey("watched_entries.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("score BETWEEN 1 AND 10", name="chk_watched_rating_score"),
    )


def downgrade() -> None:
    op.drop_table("watched_ratings")
    op.drop_index("idx_watched_entries_watched_at", table_name="watched_entries")
    op.drop_index("ix_watched_entries_movie_id", table_name="watched_entries")
    op.drop_table("watched_entries")
    op.drop_table("night_candidates")
    op.drop_table("night_attendees")
    op.drop_index("ix_movie_nights_host_id", table_name="movie_nights")
    op.drop_index("ix_movie_nights_status", table_name="movie_nights")
    op.drop_index("ix_movie_nights_date", table_name="movie_nights")
    op.drop_table("movie_nights")
    op.drop_table("watchlist_upvotes")
    op.drop_index("idx_watchlist_upvotes", table_name="watchlist_entries")
    op.drop_table("watchlist_entries")
    op.drop_index("ix_movies_title", table_name="movies")
    op.drop_index("ix_movies_tmdb_id", table_name="movies")
    op.drop_table("movies")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
    night_status.drop(op.get_bind(), checkfirst=True)
