"""
Collaborator interfaces.

The reconciler never talks to a filesystem, catalog or library directly;
it is handed objects (or plain callables) matching these protocols.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from mediamatch.models import (
    CatalogCandidate,
    LibraryAddRequest,
    MediaKind,
    Progress,
    ScannedEntry,
)


@runtime_checkable
class Scanner(Protocol):
    """Lists candidate files (movies) or folders (series) under a path."""

    def scan(self, path: str, media_kind: MediaKind) -> list[ScannedEntry]: ...


@runtime_checkable
class LibraryPathLister(Protocol):
    """Lists the folder paths the library already tracks."""

    def list_paths(self, media_kind: MediaKind) -> list[str]: ...


@runtime_checkable
class CatalogSearch(Protocol):
    """Searches the metadata catalog.

    A bare numeric query is an identifier lookup; ``year`` is ignored then.
    """

    async def search(self, query: str, year: int | None = None) -> list[CatalogCandidate]: ...


@runtime_checkable
class LibraryAdd(Protocol):
    """Adds a matched item to the library.

    Implementations raise LibraryAddError when the library rejects the item.
    """

    async def add(self, request: LibraryAddRequest) -> Any: ...


SearchFn = Callable[[str, "int | None"], Awaitable[list[CatalogCandidate]]]
AddFn = Callable[[LibraryAddRequest], Awaitable[Any]]
ProgressFn = Callable[[Progress], None]
DestinationFn = Callable[[ScannedEntry, bool], str]
