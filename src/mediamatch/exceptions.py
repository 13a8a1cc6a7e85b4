"""
mediamatch exception hierarchy.

Provides typed exceptions for the reconciliation pipeline so callers can
tell run-level faults apart from per-entry faults.

Exception Hierarchy:
    MediaMatchError (base)
    ├── ConfigurationError - Missing credentials, invalid config file
    ├── ValidationError - Run-level precondition failures
    ├── NetworkError - External service communication failures
    │   └── CatalogError - Metadata catalog search failures
    └── LibraryError - Library collaborator failures
        └── LibraryAddError - Library-add rejected an item

Per-entry faults (lookup and commit failures) are caught at the entry
boundary and recorded on the MatchResult. Only ConfigurationError and
ValidationError are expected to escape a run.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class MediaMatchError(Exception):
    """Base exception for all mediamatch errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """
        Initialize mediamatch exception.

        Args:
            message: Human-readable error message
            details: Optional structured error details for logging/debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(MediaMatchError):
    """Configuration file or settings error."""

    def __init__(
        self,
        message: str,
        *,
        config_file: Path | str | None = None,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if config_file:
            details["config_file"] = str(config_file)
        if field:
            details["field"] = field
        super().__init__(message, details=details)
        self.config_file = config_file
        self.field = field


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(MediaMatchError):
    """Run-level precondition failure (no profile, no destination, bad selection)."""

    def __init__(
        self,
        message: str,
        *,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if errors:
            details["errors"] = errors
        super().__init__(message, details=details)
        self.errors = errors or []


# =============================================================================
# Network Errors
# =============================================================================


class NetworkError(MediaMatchError):
    """External service communication failure."""

    def __init__(
        self,
        message: str,
        *,
        service: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if service:
            details["service"] = service
        if url:
            details["url"] = url
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details=details)
        self.service = service
        self.url = url
        self.status_code = status_code


class CatalogError(NetworkError):
    """Metadata catalog search failure."""

    def __init__(self, message: str, *, query: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("service", "catalog")
        details = kwargs.get("details") or {}
        if query:
            details["query"] = query
        kwargs["details"] = details
        super().__init__(message, **kwargs)
        self.query = query


# =============================================================================
# Library Errors
# =============================================================================


class LibraryError(MediaMatchError):
    """Library collaborator failure."""


class LibraryAddError(LibraryError):
    """The library-add collaborator rejected an item."""

    def __init__(
        self,
        message: str,
        *,
        external_id: int | str | None = None,
        folder_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if external_id is not None:
            details["external_id"] = external_id
        if folder_path:
            details["folder_path"] = folder_path
        super().__init__(message, details=details)
        self.external_id = external_id
        self.folder_path = folder_path
