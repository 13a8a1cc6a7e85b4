"""Tests for the TMDB catalog client.

Requests are served by httpx.MockTransport, so no network is used.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable

import httpx
import pytest

from mediamatch.catalog.tmdb import TmdbCatalog, candidate_from_payload
from mediamatch.config import CatalogEnvSettings
from mediamatch.exceptions import CatalogError, ConfigurationError
from mediamatch.models import CatalogCandidate, MediaKind
from mediamatch.protocols import CatalogSearch

MATRIX = {
    "id": 603,
    "title": "The Matrix",
    "original_title": "The Matrix",
    "release_date": "1999-03-30",
    "poster_path": "/f89U3ADr1oiB1s9GkdPOEpXUk5H.jpg",
    "overview": "Set in the 22nd century...",
    "original_language": "en",
}

BREAKING_BAD = {
    "id": 1396,
    "name": "Breaking Bad",
    "original_name": "Breaking Bad",
    "first_air_date": "2008-01-20",
    "poster_path": "/ggFHVNu6YYI5L9pCfOacjizRGt.jpg",
    "overview": "",
    "original_language": "en",
}


def _catalog(
    handler: Callable[[httpx.Request], httpx.Response],
    media_kind: MediaKind = MediaKind.MOVIE,
) -> TmdbCatalog:
    return TmdbCatalog(
        api_key="test-key",
        media_kind=media_kind,
        base_url="https://api.themoviedb.org/3",
        transport=httpx.MockTransport(handler),
    )


async def _search(catalog: TmdbCatalog, query: str, year: int | None = None):
    async with catalog:
        return await catalog.search(query, year)


class TestCandidateFromPayload:
    """Tests for payload mapping."""

    def test_movie(self) -> None:
        candidate = candidate_from_payload(MATRIX, MediaKind.MOVIE)
        assert candidate == CatalogCandidate(
            external_id=603,
            title="The Matrix",
            original_title=None,
            year=1999,
            poster_ref="/f89U3ADr1oiB1s9GkdPOEpXUk5H.jpg",
            overview="Set in the 22nd century...",
            original_language="en",
        )

    def test_series(self) -> None:
        candidate = candidate_from_payload(BREAKING_BAD, MediaKind.SERIES)
        assert candidate is not None
        assert candidate.title == "Breaking Bad"
        assert candidate.year == 2008
        assert candidate.overview is None

    def test_original_title_kept_when_different(self) -> None:
        payload = {"id": 129, "title": "Spirited Away", "original_title": "千と千尋の神隠し"}
        candidate = candidate_from_payload(payload, MediaKind.MOVIE)
        assert candidate is not None
        assert candidate.original_title == "千と千尋の神隠し"

    def test_missing_date(self) -> None:
        candidate = candidate_from_payload({"id": 1, "title": "Untitled", "release_date": ""}, MediaKind.MOVIE)
        assert candidate is not None
        assert candidate.year is None

    @pytest.mark.parametrize("payload", [{"title": "No Id"}, {"id": "abc", "title": "Bad Id"}])
    def test_invalid_id(self, payload: dict) -> None:
        assert candidate_from_payload(payload, MediaKind.MOVIE) is None


class TestTmdbCatalogInit:
    """Tests for client construction."""

    def test_requires_api_key(self) -> None:
        with pytest.raises(ConfigurationError, match="TMDB_API_KEY") as exc_info:
            TmdbCatalog(api_key="")
        assert exc_info.value.field == "TMDB_API_KEY"

    def test_from_settings(self) -> None:
        settings = CatalogEnvSettings(
            api_key="k", base_url="http://tmdb.local/3", timeout_seconds=5, language="de-DE"
        )
        catalog = TmdbCatalog.from_settings(settings, MediaKind.SERIES)
        assert catalog.api_key == "k"
        assert catalog.base_url == "http://tmdb.local/3"
        assert catalog.timeout == 5
        assert catalog.language == "de-DE"
        assert catalog.media_kind is MediaKind.SERIES

    def test_satisfies_protocol(self) -> None:
        assert isinstance(TmdbCatalog(api_key="k"), CatalogSearch)


class TestTmdbCatalogSearch:
    """Tests for TmdbCatalog.search()."""

    def test_movie_search(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            other = dict(MATRIX, id=604, title="The Matrix Reloaded", release_date="2003-05-15")
            return httpx.Response(200, json={"results": [MATRIX, other]})

        results = asyncio.run(_search(_catalog(handler), "The Matrix", 1999))

        assert [c.external_id for c in results] == [603, 604]
        assert results[0].year == 1999
        [request] = requests
        assert request.url.path == "/3/search/movie"
        assert request.url.params["query"] == "The Matrix"
        assert request.url.params["year"] == "1999"
        assert request.url.params["api_key"] == "test-key"
        assert request.url.params["language"] == "en-US"

    def test_movie_search_without_year(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"results": []})

        assert asyncio.run(_search(_catalog(handler), "Heat")) == []
        assert "year" not in requests[0].url.params

    def test_series_search(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"results": [BREAKING_BAD]})

        results = asyncio.run(
            _search(_catalog(handler, MediaKind.SERIES), "Breaking Bad", 2008)
        )

        assert results[0].external_id == 1396
        assert results[0].title == "Breaking Bad"
        assert requests[0].url.path == "/3/search/tv"
        assert requests[0].url.params["first_air_date_year"] == "2008"

    def test_numeric_query_is_id_lookup(self) -> None:
        """A bare number looks up the id and ignores the year."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=MATRIX)

        results = asyncio.run(_search(_catalog(handler), "603", 2020))

        assert [c.external_id for c in results] == [603]
        assert requests[0].url.path == "/3/movie/603"
        assert "year" not in requests[0].url.params

    def test_series_id_lookup(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/3/tv/1396"
            return httpx.Response(200, json=BREAKING_BAD)

        results = asyncio.run(_search(_catalog(handler, MediaKind.SERIES), "1396"))
        assert results[0].title == "Breaking Bad"

    def test_unknown_id_returns_empty(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"status_code": 34})

        assert asyncio.run(_search(_catalog(handler), "999999999")) == []

    def test_empty_query_makes_no_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        assert asyncio.run(_search(_catalog(handler), "   ")) == []

    def test_malformed_results_skipped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"results": [MATRIX, {"title": "no id"}, "junk"]})

        results = asyncio.run(_search(_catalog(handler), "The Matrix"))
        assert [c.external_id for c in results] == [603]

    @pytest.mark.parametrize("status", [401, 500])
    def test_http_error(self, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"status_message": "nope"})

        with pytest.raises(CatalogError) as exc_info:
            asyncio.run(_search(_catalog(handler), "The Matrix"))

        assert exc_info.value.status_code == status
        assert exc_info.value.query == "The Matrix"
        assert "test-key" not in (exc_info.value.url or "")

    def test_invalid_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>", headers={"content-type": "text/html"})

        with pytest.raises(CatalogError, match="invalid JSON"):
            asyncio.run(_search(_catalog(handler), "The Matrix"))

    def test_retries_transient_status(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """503 responses are retried before succeeding."""
        monkeypatch.setattr(TmdbCatalog._get.retry, "sleep", _no_sleep)
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            if calls["n"] == 1:
                return httpx.Response(503)
            return httpx.Response(200, content=json.dumps({"results": [MATRIX]}).encode())

        results = asyncio.run(_search(_catalog(handler), "The Matrix"))
        assert calls["n"] == 2
        assert results[0].external_id == 603


async def _no_sleep(seconds: float) -> None:
    return None
