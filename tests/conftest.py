"""Shared pytest fixtures and helpers for mediamatch tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from mediamatch.exceptions import CatalogError, LibraryAddError
from mediamatch.models import (
    CatalogCandidate,
    LibraryAddRequest,
    MatchResult,
    MatchStatus,
    ParsedMetadata,
    ScannedEntry,
)


def make_candidate(
    external_id: int,
    title: str,
    year: int | None = None,
    original_title: str | None = None,
) -> CatalogCandidate:
    """Create a CatalogCandidate with only the fields scoring looks at."""
    return CatalogCandidate(
        external_id=external_id,
        title=title,
        year=year,
        original_title=original_title,
    )


def make_entry(path: str, display_name: str | None = None, size_bytes: int = 0) -> ScannedEntry:
    """Create a ScannedEntry; the display name defaults to the last path part."""
    name = display_name if display_name is not None else path.rstrip("/").rsplit("/", 1)[-1]
    return ScannedEntry(path=path, display_name=name, size_bytes=size_bytes)


def make_matched(
    external_id: int,
    title: str = "Title",
    *,
    path: str | None = None,
    confidence: int = 100,
    selected: bool = True,
    year: int | None = 2000,
) -> MatchResult:
    """Create a MatchResult already in the matched state."""
    entry = make_entry(path or f"/media/movies/{title} ({year})/{title}.mkv")
    result = MatchResult(entry=entry, parsed=ParsedMetadata(clean_title=title, year=year))
    result.apply_match(make_candidate(external_id, title, year), confidence, [])
    result.status = MatchStatus.MATCHED
    result.selected = selected
    return result


class FakeCatalog:
    """In-memory CatalogSearch that records calls and tracks parallelism.

    Args:
        results: Candidates returned per query
        failing: Queries that raise CatalogError
    """

    def __init__(
        self,
        results: dict[str, list[CatalogCandidate]] | None = None,
        failing: Iterable[str] = (),
    ) -> None:
        self.results = results or {}
        self.failing = set(failing)
        self.calls: list[tuple[str, int | None]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def search(self, query: str, year: int | None = None) -> list[CatalogCandidate]:
        self.calls.append((query, year))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if query in self.failing:
                raise CatalogError(f"search failed for {query}", query=query)
            return list(self.results.get(query, []))
        finally:
            self.in_flight -= 1

    async def __aenter__(self) -> FakeCatalog:
        return self

    async def __aexit__(self, *args: object) -> None:
        return None


class FakeLibrary:
    """In-memory LibraryAdd that rejects the given catalog ids."""

    def __init__(self, rejected: Iterable[int] = ()) -> None:
        self.rejected = set(rejected)
        self.requests: list[LibraryAddRequest] = []

    async def add(self, request: LibraryAddRequest) -> dict[str, int]:
        self.requests.append(request)
        if request.external_id in self.rejected:
            raise LibraryAddError(
                "Library rejected item",
                external_id=request.external_id,
                folder_path=request.folder_path,
            )
        return {"id": request.external_id}
