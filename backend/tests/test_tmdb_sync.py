import asyncio
import unittest
from unittest.mock import patch

import httpx

from app.services.tmdb_sync import (
    TMDBConfigError,
    TMDBService,
    TMDBUpstreamError,
    map_details,
    map_search_item,
)

_REAL_ASYNC_CLIENT = httpx.AsyncClient


def _client_with(handler):
    def factory(**kwargs):
        return _REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler), **kwargs)

    return factory


class TestTMDBMapping(unittest.TestCase):
    def test_map_search_item(self) -> None:
        movie = map_search_item(
            {
                "id": 603,
                "title": "The Matrix",
                "poster_path": "/matrix.jpg",
                "backdrop_path": None,
                "overview": "Wake up, Neo.",
                "genre_ids": [28, 878, 123456],
                "release_date": "1999-03-30",
            }
        )

        self.assertEqual(movie["tmdb_id"], 603)
        self.assertEqual(movie["poster"], "https://image.tmdb.org/t/p/w500/matrix.jpg")
        self.assertIsNone(movie["backdrop"])
        self.assertEqual(movie["genres"], ["Action", "Science Fiction"])
        self.assertEqual(movie["release_year"], 1999)

    def test_map_search_item_skips_unusable_rows(self) -> None:
        self.assertIsNone(map_search_item({"id": 1}))
        self.assertIsNone(map_search_item({"title": "No id"}))

    def test_map_search_item_without_release_date(self) -> None:
        movie = map_search_item({"id": 5, "title": "Untitled", "release_date": ""})
        self.assertIsNone(movie["release_year"])
        self.assertEqual(movie["poster"], "")

    def test_map_details_with_credits(self) -> None:
        movie = map_details(
            {
                "id": 603,
                "title": "The Matrix",
                "runtime": 136,
                "release_date": "1999-03-30",
                "genres": [{"id": 28, "name": "Action"}],
                "credits": {
                    "crew": [
                        {"job": "Producer", "name": "Joel Silver"},
                        {"job": "Director", "name": "Lana Wachowski"},
                    ],
                    "cast": [{"name": f"Actor {i}"} for i in range(12)],
                },
            }
        )

        self.assertEqual(movie["director"], "Lana Wachowski")
        self.assertEqual(len(movie["cast"]), 8)
        self.assertEqual(movie["runtime_minutes"], 136)
        self.assertEqual(movie["genres"], ["Action"])


class TestTMDBService(unittest.TestCase):
    def test_requires_api_key(self) -> None:
        with patch("app.services.tmdb_sync.settings.TMDB_API_KEY", ""):
            with self.assertRaises(TMDBConfigError):
                TMDBService()

    def test_blank_query_skips_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with patch("app.services.tmdb_sync.httpx.AsyncClient", side_effect=_client_with(handler)):
            results = asyncio.run(TMDBService(api_key="key").search_movies("   "))

        self.assertEqual(results, [])

    def test_search_maps_results(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.url.path, "/3/search/movie")
            self.assertEqual(request.url.params["query"], "matrix")
            return httpx.Response(
                200,
                json={"results": [{"id": 603, "title": "The Matrix"}, {"id": 0, "title": ""}]},
            )

        with patch("app.services.tmdb_sync.httpx.AsyncClient", side_effect=_client_with(handler)):
            results = asyncio.run(TMDBService(api_key="key").search_movies(" matrix "))

        self.assertEqual([r["tmdb_id"] for r in results], [603])

    def test_details_not_found_returns_none(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"status_message": "not found"})

        with patch("app.services.tmdb_sync.httpx.AsyncClient", side_effect=_client_with(handler)):
            details = asyncio.run(TMDBService(api_key="key").get_movie_details(42))

        self.assertIsNone(details)

    def test_upstream_error_raised(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        with patch("app.services.tmdb_sync.httpx.AsyncClient", side_effect=_client_with(handler)):
            with self.assertRaises(TMDBUpstreamError):
                asyncio.run(TMDBService(api_key="key").get_movie_details(42))
