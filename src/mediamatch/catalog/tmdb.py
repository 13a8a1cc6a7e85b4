"""
Async client for a TMDB-style metadata catalog.

Endpoints used (API v3):
- GET /search/movie?query=...&year=...      - movie title search
- GET /search/tv?query=...&first_air_date_year=...  - series title search
- GET /movie/{id}, GET /tv/{id}             - identifier lookup

search() implements the CatalogSearch protocol: a bare numeric query is
treated as an identifier and the year filter is ignored.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from mediamatch.exceptions import CatalogError, ConfigurationError
from mediamatch.matching.scorer import candidate_year
from mediamatch.models import CatalogCandidate, MediaKind
from mediamatch.utils.retry import retry_with_backoff

if TYPE_CHECKING:
    from mediamatch.config import CatalogEnvSettings

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.themoviedb.org/3"

# Field names differ between movie and tv payloads
_FIELDS: dict[MediaKind, dict[str, str]] = {
    MediaKind.MOVIE: {
        "title": "title",
        "original_title": "original_title",
        "date": "release_date",
        "search": "/search/movie",
        "lookup": "/movie",
        "year_param": "year",
    },
    MediaKind.SERIES: {
        "title": "name",
        "original_title": "original_name",
        "date": "first_air_date",
        "search": "/search/tv",
        "lookup": "/tv",
        "year_param": "first_air_date_year",
    },
}


def candidate_from_payload(data: dict[str, Any], media_kind: MediaKind) -> CatalogCandidate | None:
    """Map one catalog result to a CatalogCandidate (None if it has no id)."""
    raw_id = data.get("id")
    if raw_id is None:
        return None
    try:
        external_id = int(raw_id)
    except (TypeError, ValueError):
        return None

    fields = _FIELDS[media_kind]
    title = data.get(fields["title"]) or data.get("title") or data.get("name") or ""
    original = data.get(fields["original_title"]) or None
    return CatalogCandidate(
        external_id=external_id,
        title=title,
        original_title=original if original != title else None,
        year=candidate_year(data.get(fields["date"])),
        poster_ref=data.get("poster_path"),
        overview=data.get("overview") or None,
        original_language=data.get("original_language"),
    )


class TmdbCatalog:
    """Catalog search over HTTP.

    Example:
        >>> async with TmdbCatalog(api_key="...", media_kind=MediaKind.MOVIE) as catalog:
        ...     candidates = await catalog.search("The Matrix", 1999)
    """

    def __init__(
        self,
        api_key: str,
        *,
        media_kind: MediaKind = MediaKind.MOVIE,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        language: str = "en-US",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Raises:
            ConfigurationError: If no API key is configured
        """
        if not api_key:
            raise ConfigurationError(
                "TMDB API key not set; configure TMDB_API_KEY to enable matching",
                field="TMDB_API_KEY",
            )
        self.api_key = api_key
        self.media_kind = media_kind
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.language = language
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls,
        settings: CatalogEnvSettings,
        media_kind: MediaKind = MediaKind.MOVIE,
    ) -> TmdbCatalog:
        """Create a client from catalog settings."""
        return cls(
            api_key=settings.api_key,
            media_kind=media_kind,
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            language=settings.language,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                params={"api_key": self.api_key, "language": self.language},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
                http2=self._transport is None,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> TmdbCatalog:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    @retry_with_backoff(max_retries=2, base_delay=1.0, max_delay=10.0)
    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET with retries on transport errors and 429/5xx gateway responses."""
        response = await self._get_client().get(path, params=params)
        if response.status_code != 404:
            response.raise_for_status()
        return response

    async def _get_json(self, path: str, params: dict[str, Any] | None, query: str) -> Any:
        try:
            response = await self._get(path, params)
        except httpx.HTTPStatusError as e:
            raise CatalogError(
                f"Catalog returned {e.response.status_code} for {query!r}",
                query=query,
                url=str(e.request.url.copy_remove_param("api_key")),
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise CatalogError(f"Catalog request failed for {query!r}: {e}", query=query) from e

        if response.status_code == 404:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise CatalogError(f"Catalog returned invalid JSON for {query!r}", query=query) from e

    async def lookup(self, external_id: int) -> CatalogCandidate | None:
        """Fetch one item by catalog id (None if it does not exist)."""
        path = f"{_FIELDS[self.media_kind]['lookup']}/{external_id}"
        data = await self._get_json(path, None, str(external_id))
        if not isinstance(data, dict):
            return None
        return candidate_from_payload(data, self.media_kind)

    async def search(self, query: str, year: int | None = None) -> list[CatalogCandidate]:
        """
        Search the catalog by title, or look up a bare numeric id.

        Args:
            query: Title to search, or a catalog id
            year: Optional release year filter (ignored for id lookups)

        Returns:
            Candidates in catalog rank order

        Raises:
            CatalogError: On HTTP or transport failure
        """
        query = query.strip()
        if not query:
            return []

        if query.isdigit():
            logger.debug("Catalog id lookup: %s (%s)", query, self.media_kind.value)
            candidate = await self.lookup(int(query))
            return [candidate] if candidate else []

        fields = _FIELDS[self.media_kind]
        params: dict[str, Any] = {"query": query, "include_adult": "false"}
        if year:
            params[fields["year_param"]] = year

        logger.debug("Catalog search: %r year=%s (%s)", query, year, self.media_kind.value)
        data = await self._get_json(fields["search"], params, query)
        raw_results = data.get("results", []) if isinstance(data, dict) else []

        candidates = []
        for item in raw_results:
            if not isinstance(item, dict):
                continue
            candidate = candidate_from_payload(item, self.media_kind)
            if candidate is not None:
                candidates.append(candidate)
        return candidates
