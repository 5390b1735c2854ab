"""
TMDB Sync Service
─────────────────
Wraps the TMDB v3 REST API as a black-box lookup: title query or TMDB id in,
normalized movie dicts out.

Flow:
  1. A member searches TMDB from the watchlist / candidate picker.
  2. They choose a result; the client fetches its details.
  3. The client POSTs the details to /movies, which upserts by tmdb_id.
"""
import httpx
import structlog

from app.core.config import settings

logger = structlog.get_logger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
TMDB_POSTER_BASE = "https://image.tmdb.org/t/p/w500"
TMDB_BACKDROP_BASE = "https://image.tmdb.org/t/p/w1280"
TMDB_TIMEOUT_SECONDS = 10.0

TMDB_GENRE_MAP: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}


class TMDBConfigError(Exception):
    """Raised when TMDB client is used without an API key."""


class TMDBUpstreamError(Exception):
    """Raised for non-recoverable TMDB request/response errors."""


def _release_year(release_date: str | None) -> int | None:
    if isinstance(release_date, str) and len(release_date) >= 4 and release_date[:4].isdigit():
        return int(release_date[:4])
    return None


def _image_url(base: str, path: str | None) -> str | None:
    if not path:
        return None
    return f"{base}{path}"


def map_search_item(raw: dict) -> dict | None:
    """Normalize a TMDB /search/movie result row. None for unusable rows."""
    tmdb_id = raw.get("id")
    title = raw.get("title")
    if not tmdb_id or not title:
        return None

    genres = [
        TMDB_GENRE_MAP[gid]
        for gid in raw.get("genre_ids", [])
        if gid in TMDB_GENRE_MAP
    ]

    return {
        "tmdb_id": int(tmdb_id),
        "title": title,
        "poster": _image_url(TMDB_POSTER_BASE, raw.get("poster_path")) or "",
        "backdrop": _image_url(TMDB_BACKDROP_BASE, raw.get("backdrop_path")),
        "overview": raw.get("overview") or "",
        "genres": genres,
        "runtime_minutes": None,
        "release_year": _release_year(raw.get("release_date")),
    }


def map_details(raw: dict) -> dict:
    """Normalize a TMDB /movie/{id} details payload (credits appended)."""
    genres = [g.get("name") for g in raw.get("genres", []) if g.get("name")]

    crew = raw.get("credits", {}).get("crew", [])
    director = next((p.get("name") for p in crew if p.get("job") == "Director"), None)

    cast = raw.get("credits", {}).get("cast", [])
    cast_names = [p.get("name") for p in cast[:8] if p.get("name")]

    return {
        "tmdb_id": int(raw["id"]),
        "title": raw.get("title"),
        "poster": _image_url(TMDB_POSTER_BASE, raw.get("poster_path")) or "",
        "backdrop": _image_url(TMDB_BACKDROP_BASE, raw.get("backdrop_path")),
        "overview": raw.get("overview") or "",
        "genres": genres,
        "runtime_minutes": raw.get("runtime") or None,
        "release_year": _release_year(raw.get("release_date")),
        "director": director,
        "cast": cast_names,
    }


class TMDBService:
    """
    Thin async wrapper around TMDB v3 API.
    Uses httpx for HTTP — non-blocking in async FastAPI context.
    """

    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = api_key or settings.TMDB_API_KEY
        if not self.api_key:
            raise TMDBConfigError(
                "TMDB_API_KEY is not set. "
                "Add it to your .env file or pass it explicitly."
            )

    async def _get(self, path: str, params: dict, what: str) -> httpx.Response | None:
        """GET a TMDB path; None on 404, TMDBUpstreamError on other failures."""
        query = {"api_key": self.api_key, "language": "en-US", **params}
        try:
            async with httpx.AsyncClient(timeout=TMDB_TIMEOUT_SECONDS) as client:
                response = await client.get(f"{TMDB_BASE_URL}{path}", params=query)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "tmdb_request_failed",
                what=what,
                status_code=exc.response.status_code,
            )
            raise TMDBUpstreamError(
                f"TMDB {what} failed with status {exc.response.status_code}"
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("tmdb_request_failed", what=what, error=str(exc))
            raise TMDBUpstreamError(f"TMDB {what} request failed") from exc
        return response

    async def search_movies(self, query: str, page: int = 1) -> list[dict]:
        """Search TMDB for movies matching *query*; blank queries return []."""
        cleaned_query = query.strip()
        if not cleaned_query:
            return []

        response = await self._get(
            "/search/movie",
            {"query": cleaned_query, "page": page, "include_adult": "false"},
            "search",
        )
        if response is None:
            return []

        results = response.json().get("results", [])
        mapped: list[dict] = []
        for raw in results:
            movie = map_search_item(raw)
            if movie is not None:
                mapped.append(movie)
        return mapped

    async def get_movie_details(self, tmdb_id: int) -> dict | None:
        """Full details for one movie, or None if TMDB does not know it."""
        response = await self._get(
            f"/movie/{tmdb_id}",
            {"append_to_response": "credits"},
            "details",
        )
        if response is None:
            return None
        return map_details(response.json())
