"""In-memory index of what the library already owns.

Built once per run from the library path lister, so duplicate checks never
touch the network. Library units are folders: a movie's folder is the parent
of its file, a series' folder is the scanned path itself.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from mediamatch.models import ScannedEntry

logger = logging.getLogger(__name__)

_TRAILING_SLASHES = re.compile(r"/+$")


def normalize_path(path: str) -> str:
    """Lower-case a path and strip trailing slashes.

    Examples:
        >>> normalize_path("/Media/Movies/The Matrix (1999)/")
        '/media/movies/the matrix (1999)'
    """
    if not path:
        return ""
    stripped = _TRAILING_SLASHES.sub("", path)
    # Root stays "/" rather than becoming empty
    return (stripped or "/").lower()


def library_unit_path(path: str, is_series: bool) -> str:
    """The folder that represents an entry in the library (not normalized)."""
    if is_series:
        return path
    trimmed = _TRAILING_SLASHES.sub("", path)
    return posixpath.dirname(trimmed)


@dataclass
class DuplicateIndex:
    """Normalized library folder paths and owned catalog ids.

    Example:
        index = DuplicateIndex.build(lister.list_paths("movie"), owned_ids)
        if index.is_already_imported(entry, is_series=False):
            ...
    """

    paths: set[str] = field(default_factory=set)
    external_ids: set[int] = field(default_factory=set)

    @classmethod
    def build(
        cls,
        library_paths: Iterable[str],
        library_ids: Iterable[int] = (),
    ) -> DuplicateIndex:
        """Create an index from library folder paths and owned ids."""
        index = cls(
            paths={normalize_path(p) for p in library_paths if p},
            external_ids={int(i) for i in library_ids if i is not None},
        )
        logger.debug(
            "Built duplicate index: %d paths, %d ids",
            len(index.paths),
            len(index.external_ids),
        )
        return index

    def contains_path(self, path: str) -> bool:
        """Check a raw folder path against the index."""
        return normalize_path(path) in self.paths

    def is_already_imported(self, entry: ScannedEntry, is_series: bool) -> bool:
        """True if the entry's library folder is already in the library."""
        unit = library_unit_path(entry.path, is_series)
        return bool(unit) and self.contains_path(unit)

    def has_id(self, external_id: int | None) -> bool:
        """True if the catalog id is already owned."""
        return external_id is not None and external_id in self.external_ids

    def add(self, path: str | None = None, external_id: int | None = None) -> None:
        """Record a newly committed item."""
        if path:
            self.paths.add(normalize_path(path))
        if external_id is not None:
            self.external_ids.add(external_id)

    def __len__(self) -> int:
        return len(self.paths)
