"""Tests for data model types."""

from __future__ import annotations

import pytest

from mediamatch.exceptions import ValidationError
from mediamatch.models import (
    CatalogCandidate,
    CommitResult,
    MatchResult,
    MatchStatus,
    MediaKind,
    ParsedMetadata,
    ScannedEntry,
)
from tests.conftest import make_candidate, make_entry, make_matched


def _pending(name: str = "Heat.1995.mkv") -> MatchResult:
    return MatchResult(
        entry=make_entry(f"/media/movies/{name}"),
        parsed=ParsedMetadata(clean_title="Heat", year=1995),
    )


class TestEnums:
    """Tests for str enums."""

    def test_values(self) -> None:
        assert MediaKind.MOVIE.value == "movie"
        assert MediaKind("series") is MediaKind.SERIES
        assert MatchStatus.IN_LIBRARY == "in_library"

    def test_all_statuses(self) -> None:
        assert {s.value for s in MatchStatus} == {
            "pending",
            "in_library",
            "matched",
            "unmatched",
            "importing",
            "imported",
            "error",
        }


class TestScannedEntry:
    """Tests for ScannedEntry."""

    def test_from_scanner(self) -> None:
        entry = ScannedEntry.from_scanner(
            {"path": "/m/Heat (1995)/Heat.mkv", "filename": "Heat.mkv", "size": 1024}
        )
        assert entry == ScannedEntry("/m/Heat (1995)/Heat.mkv", "Heat.mkv", 1024)

    def test_from_scanner_missing_size(self) -> None:
        entry = ScannedEntry.from_scanner({"path": "/tv/Show", "filename": "Show"})
        assert entry.size_bytes == 0

    def test_frozen(self) -> None:
        entry = make_entry("/m/Heat.mkv")
        with pytest.raises(AttributeError):
            entry.path = "/other"  # type: ignore[misc]


class TestCatalogCandidate:
    """Tests for CatalogCandidate."""

    def test_title_variants(self) -> None:
        candidate = CatalogCandidate(129, "Spirited Away", original_title="Sen to Chihiro")
        assert candidate.title_variants == ["Spirited Away", "Sen to Chihiro"]

    def test_title_variants_same_title(self) -> None:
        candidate = CatalogCandidate(949, "Heat", original_title="Heat")
        assert candidate.title_variants == ["Heat"]


class TestMatchResultTransitions:
    """Tests for the status lifecycle."""

    @pytest.mark.parametrize(
        "status", [MatchStatus.IN_LIBRARY, MatchStatus.MATCHED, MatchStatus.UNMATCHED]
    )
    def test_pending_forward(self, status: MatchStatus) -> None:
        result = _pending()
        result.transition(status)
        assert result.status is status

    def test_import_path(self) -> None:
        result = make_matched(949, "Heat")
        result.transition(MatchStatus.IMPORTING)
        result.transition(MatchStatus.IMPORTED)
        assert result.status is MatchStatus.IMPORTED

    def test_import_failure_path(self) -> None:
        result = make_matched(949, "Heat")
        result.transition(MatchStatus.IMPORTING)
        result.transition(MatchStatus.ERROR)
        assert result.status is MatchStatus.ERROR

    @pytest.mark.parametrize(
        ("start", "target"),
        [
            (MatchStatus.PENDING, MatchStatus.IMPORTED),
            (MatchStatus.MATCHED, MatchStatus.PENDING),
            (MatchStatus.IMPORTED, MatchStatus.MATCHED),
            (MatchStatus.IN_LIBRARY, MatchStatus.MATCHED),
            (MatchStatus.ERROR, MatchStatus.IMPORTING),
        ],
    )
    def test_invalid_transition(self, start: MatchStatus, target: MatchStatus) -> None:
        result = _pending()
        result.status = start
        with pytest.raises(ValidationError, match="Invalid status transition"):
            result.transition(target)

    def test_same_status_is_noop(self) -> None:
        result = make_matched(949, "Heat")
        result.transition(MatchStatus.MATCHED)
        assert result.selected is True

    def test_leaving_matched_clears_selection(self) -> None:
        result = make_matched(949, "Heat", selected=True)
        result.transition(MatchStatus.IMPORTING)
        assert result.selected is False


class TestMatchResultSelection:
    """Tests for selection rules on a single result."""

    def test_select_matched(self) -> None:
        result = make_matched(949, "Heat", selected=False)
        result.set_selected(True)
        assert result.selected is True

    def test_cannot_select_unmatched(self) -> None:
        result = _pending()
        result.transition(MatchStatus.UNMATCHED)
        with pytest.raises(ValidationError, match="Cannot select"):
            result.set_selected(True)

    def test_deselect_always_allowed(self) -> None:
        result = _pending()
        result.set_selected(False)
        assert result.selected is False


class TestApplyMatch:
    """Tests for MatchResult.apply_match()."""

    def test_clamps_confidence(self) -> None:
        result = _pending()
        result.apply_match(make_candidate(949, "Heat", 1995), 140, [])
        assert result.confidence == 100
        result.apply_match(make_candidate(949, "Heat", 1995), -5, [])
        assert result.confidence == 0

    def test_display_title_defaults_to_candidate(self) -> None:
        result = _pending()
        result.apply_match(make_candidate(949, "Heat", 1995), 85, [make_candidate(1, "Heat 2")])
        assert result.display_title == "Heat"
        assert [a.external_id for a in result.alternates] == [1]


class TestCommitResult:
    """Tests for CommitResult tallies."""

    def test_counts(self) -> None:
        batch = CommitResult()
        imported = make_matched(1)
        imported.status = MatchStatus.IMPORTED
        failed = make_matched(2)
        failed.status = MatchStatus.ERROR
        skipped = make_matched(3)
        skipped.status = MatchStatus.IN_LIBRARY

        for result in (imported, failed, skipped):
            batch.add(result)

        assert (batch.succeeded, batch.failed, batch.skipped) == (1, 1, 1)
        assert batch.results == [imported, failed, skipped]
