"""
Data model for reconciliation runs.

ScannedEntry, ParsedMetadata and CatalogCandidate are immutable values.
MatchResult is the one mutable record per entry: the reconciler and the
commit step move it through its status lifecycle, and the presentation
layer may toggle ``selected``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mediamatch.exceptions import ValidationError


class MediaKind(str, Enum):
    """Kind of media a run reconciles."""

    MOVIE = "movie"
    SERIES = "series"


class MatchStatus(str, Enum):
    """Lifecycle of a MatchResult."""

    PENDING = "pending"
    IN_LIBRARY = "in_library"
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    IMPORTING = "importing"
    IMPORTED = "imported"
    ERROR = "error"


# Forward transitions. Manual re-match (matched/unmatched -> matched) is
# handled by selection.rematch() and bypasses this table.
_ALLOWED_TRANSITIONS: dict[MatchStatus, frozenset[MatchStatus]] = {
    MatchStatus.PENDING: frozenset(
        {MatchStatus.IN_LIBRARY, MatchStatus.MATCHED, MatchStatus.UNMATCHED}
    ),
    MatchStatus.MATCHED: frozenset({MatchStatus.IMPORTING, MatchStatus.IN_LIBRARY}),
    MatchStatus.UNMATCHED: frozenset(),
    MatchStatus.IN_LIBRARY: frozenset(),
    MatchStatus.IMPORTING: frozenset({MatchStatus.IMPORTED, MatchStatus.ERROR}),
    MatchStatus.IMPORTED: frozenset(),
    MatchStatus.ERROR: frozenset(),
}


@dataclass(frozen=True)
class ScannedEntry:
    """A file (movie) or folder (series) reported by the scanner."""

    path: str
    display_name: str
    size_bytes: int = 0

    @classmethod
    def from_scanner(cls, data: dict[str, Any]) -> ScannedEntry:
        """Create from a scanner record ``{path, filename, size}``."""
        return cls(
            path=data["path"],
            display_name=data.get("filename") or data.get("display_name") or "",
            size_bytes=int(data.get("size") or data.get("size_bytes") or 0),
        )


@dataclass(frozen=True)
class ParsedMetadata:
    """Fields recovered from a file or folder name."""

    clean_title: str
    year: int | None = None
    quality_tag: str | None = None
    external_id: int | None = None


@dataclass(frozen=True)
class CatalogCandidate:
    """One search result from the metadata catalog."""

    external_id: int
    title: str
    original_title: str | None = None
    year: int | None = None
    poster_ref: str | None = None
    overview: str | None = None
    original_language: str | None = None

    @property
    def title_variants(self) -> list[str]:
        """Primary title followed by the original-language title, if distinct."""
        variants = [self.title] if self.title else []
        if self.original_title and self.original_title not in variants:
            variants.append(self.original_title)
        return variants


@dataclass
class MatchResult:
    """Reconciliation outcome for one ScannedEntry."""

    entry: ScannedEntry
    parsed: ParsedMetadata
    chosen: CatalogCandidate | None = None
    confidence: int | None = None
    alternates: list[CatalogCandidate] = field(default_factory=list)
    status: MatchStatus = MatchStatus.PENDING
    selected: bool = False
    display_title: str | None = None
    error: str | None = None

    @property
    def is_selectable(self) -> bool:
        """Only matched entries with a chosen candidate may be selected."""
        return self.status is MatchStatus.MATCHED and self.chosen is not None

    def set_selected(self, selected: bool) -> None:
        """Toggle selection, enforcing the matched-only rule.

        Raises:
            ValidationError: If selecting an entry that is not matched
        """
        if selected and not self.is_selectable:
            raise ValidationError(
                f"Cannot select {self.entry.display_name!r} with status {self.status.value}",
                details={"path": self.entry.path, "status": self.status.value},
            )
        self.selected = selected

    def transition(self, status: MatchStatus) -> None:
        """Move forward in the status lifecycle.

        Raises:
            ValidationError: On a backward or skipping transition
        """
        if status is self.status:
            return
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise ValidationError(
                f"Invalid status transition {self.status.value} -> {status.value}",
                details={"path": self.entry.path},
            )
        self.status = status
        if status is not MatchStatus.MATCHED:
            self.selected = False

    def apply_match(
        self,
        chosen: CatalogCandidate,
        confidence: int,
        alternates: list[CatalogCandidate],
        display_title: str | None = None,
    ) -> None:
        """Attach a scored candidate (confidence is clamped to 0..100)."""
        self.chosen = chosen
        self.confidence = max(0, min(100, int(confidence)))
        self.alternates = list(alternates)
        self.display_title = display_title or chosen.title


@dataclass(frozen=True)
class Progress:
    """Wave progress: ``current`` of ``total`` lookups finished."""

    current: int
    total: int


@dataclass(frozen=True)
class RunSummary:
    """Counts reported when a reconciliation run finishes."""

    matched_count: int
    already_in_library_count: int
    unmatched_count: int = 0
    pending_count: int = 0
    cancelled: bool = False


@dataclass(frozen=True)
class LibraryAddRequest:
    """Payload handed to the library-add collaborator."""

    external_id: int
    title: str
    year: int | None
    poster_ref: str | None
    folder_path: str
    profile_id: str
    media_kind: MediaKind
    monitored: bool = True
    search_on_add: bool = False


@dataclass
class CommitResult:
    """Tally of a commit pass."""

    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    results: list[MatchResult] = field(default_factory=list)

    def add(self, result: MatchResult) -> None:
        """Record a processed entry and update counts."""
        self.results.append(result)
        if result.status is MatchStatus.IMPORTED:
            self.succeeded += 1
        elif result.status is MatchStatus.ERROR:
            self.failed += 1
        else:
            self.skipped += 1
