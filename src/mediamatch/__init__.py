"""mediamatch - Reconcile scanned media files against a metadata catalog."""

from mediamatch.exceptions import (
    CatalogError,
    ConfigurationError,
    LibraryAddError,
    LibraryError,
    MediaMatchError,
    NetworkError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Base exception
    "MediaMatchError",
    # Configuration
    "ConfigurationError",
    # Validation
    "ValidationError",
    # Network
    "NetworkError",
    "CatalogError",
    # Library
    "LibraryError",
    "LibraryAddError",
]
