"""
Movie cache — upsert from TMDB payloads and lookups.
"""
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models import Movie
from app.schemas.movies import UpsertMovieRequest

logger = structlog.get_logger(__name__)


class MovieNotFoundError(Exception):
    """Raised when a movie cannot be found."""


def normalize_genres(genres: list[str]) -> list[str]:
    """Trim, title-case and dedupe genre names, keeping first-seen order."""
    cleaned: list[str] = []
    for genre in genres:
        if not isinstance(genre, str):
            continue
        name = " ".join(genre.split()).title()
        if name and name not in cleaned:
            cleaned.append(name)
    return cleaned


def movie_summary(movie: Movie | None) -> dict | None:
    """Compact card dict shared by watchlist, night and watched payloads."""
    if movie is None:
        return None
    return {
        "id": movie.id,
        "title": movie.title,
        "poster": movie.poster or "",
        "release_year": movie.release_year,
        "imdb_rating": float(movie.imdb_rating) if movie.imdb_rating is not None else None,
    }


def get_movie(db: Session, movie_id: UUID) -> Movie:
    movie = db.query(Movie).filter(Movie.id == movie_id).first()
    if movie is None:
        raise MovieNotFoundError(f"Movie {movie_id} not found")
    return movie


def get_movie_by_tmdb_id(db: Session, tmdb_id: int) -> Movie | None:
    return db.query(Movie).filter(Movie.tmdb_id == tmdb_id).first()


def upsert_movie(db: Session, payload: UpsertMovieRequest) -> tuple[Movie, bool]:
    """
    Insert a movie keyed by tmdb_id.

    Returns (movie, created). An existing row is returned untouched so that
    candidates and watchlist entries keep pointing at stable data.
    """
    existing = get_movie_by_tmdb_id(db, payload.tmdb_id)
    if existing is not None:
        return existing, False

    movie = Movie(
        tmdb_id=payload.tmdb_id,
        title=" ".join(payload.title.split()),
        poster=payload.poster,
        backdrop=payload.backdrop,
        overview=payload.overview,
        genres=normalize_genres(payload.genres),
        runtime_minutes=payload.runtime_minutes,
        release_year=payload.release_year,
        imdb_rating=payload.imdb_rating,
        imdb_votes=payload.imdb_votes,
    )
    db.add(movie)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent upsert of the same tmdb_id
        db.rollback()
        existing = get_movie_by_tmdb_id(db, payload.tmdb_id)
        if existing is None:
            raise
        return existing, False

    db.refresh(movie)
    logger.info("movie_cached", movie_id=str(movie.id), tmdb_id=movie.tmdb_id)
    return movie, True
