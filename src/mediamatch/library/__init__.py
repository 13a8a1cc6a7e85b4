"""Local library index used for duplicate suppression."""

from mediamatch.library.index import (
    DuplicateIndex,
    library_unit_path,
    normalize_path,
)

__all__ = ["DuplicateIndex", "library_unit_path", "normalize_path"]
