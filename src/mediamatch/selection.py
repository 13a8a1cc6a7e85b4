"""
Selection rules and committing selected matches to the library.

commit() walks the selected entries one at a time. Each entry is isolated:
a rejected add marks that entry ``error`` with a reason and the walk moves
on to the next one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from mediamatch.exceptions import ValidationError
from mediamatch.library.index import DuplicateIndex, library_unit_path
from mediamatch.models import (
    CatalogCandidate,
    CommitResult,
    LibraryAddRequest,
    MatchResult,
    MatchStatus,
    MediaKind,
    ScannedEntry,
)
from mediamatch.protocols import AddFn, DestinationFn

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE_THRESHOLD = 100
MANUAL_MATCH_CONFIDENCE = 100


# =============================================================================
# Selection
# =============================================================================


def select_all(results: Iterable[MatchResult], selected: bool = True) -> int:
    """Set ``selected`` on every matched entry; others are left alone.

    Returns:
        Number of entries changed
    """
    changed = 0
    for result in results:
        if result.is_selectable and result.selected != selected:
            result.selected = selected
            changed += 1
    return changed


def select_high_confidence(
    results: Iterable[MatchResult],
    threshold: int = HIGH_CONFIDENCE_THRESHOLD,
) -> int:
    """Select exactly the matched entries at or above ``threshold``.

    Returns:
        Number of entries selected afterwards
    """
    count = 0
    for result in results:
        result.selected = (
            result.is_selectable
            and result.confidence is not None
            and result.confidence >= threshold
        )
        count += result.selected
    return count


def rematch(result: MatchResult, candidate: CatalogCandidate, index: DuplicateIndex) -> None:
    """
    Apply a manually chosen candidate.

    Manual matches are trusted at full confidence. If the chosen item is
    already owned the entry becomes ``in_library``; otherwise it is matched
    and selected.

    Raises:
        ValidationError: If the entry is not matched or unmatched
    """
    if result.status not in (MatchStatus.MATCHED, MatchStatus.UNMATCHED):
        raise ValidationError(
            f"Cannot re-match {result.entry.display_name!r} with status {result.status.value}",
            details={"path": result.entry.path},
        )

    result.apply_match(candidate, MANUAL_MATCH_CONFIDENCE, [], candidate.title)
    result.error = None
    if index.has_id(candidate.external_id):
        result.status = MatchStatus.IN_LIBRARY
        result.selected = False
    else:
        result.status = MatchStatus.MATCHED
        result.selected = True
    logger.info(
        "Manually matched %s -> %s (%s)",
        result.entry.display_name,
        candidate.title,
        candidate.external_id,
    )


@dataclass(frozen=True)
class SelectionStats:
    """Counts shown alongside the result list."""

    total: int
    matched: int
    unmatched: int
    pending: int
    in_library: int
    imported: int
    selected: int
    high_confidence: int


def selection_stats(
    results: Sequence[MatchResult],
    threshold: int = HIGH_CONFIDENCE_THRESHOLD,
) -> SelectionStats:
    """Count results by status plus selected and high-confidence matches."""

    def count(status: MatchStatus) -> int:
        return sum(1 for r in results if r.status is status)

    return SelectionStats(
        total=len(results),
        matched=count(MatchStatus.MATCHED),
        unmatched=count(MatchStatus.UNMATCHED),
        pending=count(MatchStatus.PENDING),
        in_library=count(MatchStatus.IN_LIBRARY),
        imported=count(MatchStatus.IMPORTED),
        selected=sum(1 for r in results if r.selected and r.status is MatchStatus.MATCHED),
        high_confidence=sum(
            1
            for r in results
            if r.status is MatchStatus.MATCHED
            and r.confidence is not None
            and r.confidence >= threshold
        ),
    )


# =============================================================================
# Commit
# =============================================================================


def default_destination(entry: ScannedEntry, is_series: bool) -> str:
    """Library folder for an entry: the file's folder (movies) or the folder itself."""
    return library_unit_path(entry.path, is_series)


def _is_committable(result: MatchResult) -> bool:
    # selected implies matched; the status check keeps a hand-edited flag
    # on another status from reaching the library
    return (
        result.selected
        and result.chosen is not None
        and result.status is MatchStatus.MATCHED
    )


def _build_request(
    result: MatchResult,
    chosen: CatalogCandidate,
    *,
    profile_id: str,
    folder_path: str,
    is_series: bool,
    search_on_add: bool,
) -> LibraryAddRequest:
    return LibraryAddRequest(
        external_id=chosen.external_id,
        title=result.display_title or chosen.title,
        year=chosen.year,
        poster_ref=chosen.poster_ref,
        folder_path=folder_path,
        profile_id=profile_id,
        media_kind=MediaKind.SERIES if is_series else MediaKind.MOVIE,
        search_on_add=search_on_add,
    )


async def commit(
    results: Sequence[MatchResult],
    *,
    profile_id: str,
    add: AddFn,
    index: DuplicateIndex,
    is_series: bool = False,
    destination: DestinationFn = default_destination,
    search_on_add: bool = False,
) -> CommitResult:
    """
    Add every selected match to the library, one entry at a time.

    Args:
        results: Results from a reconciliation run
        profile_id: Profile assigned to added items
        add: Async library-add collaborator
        index: Duplicate index, updated after each successful add
        is_series: True for series runs
        destination: Computes the library folder for an entry
        search_on_add: Ask the library to search for missing media after adding

    Returns:
        CommitResult with succeeded/failed/skipped counts and processed entries

    Raises:
        ValidationError: If no profile is given or ``destination`` is unusable
    """
    if not profile_id:
        raise ValidationError("A profile must be selected before committing")
    if not callable(destination):
        raise ValidationError("A destination path function is required")

    batch = CommitResult()
    to_commit = [r for r in results if _is_committable(r)]
    logger.info("Committing %d selected entries", len(to_commit))

    for result in to_commit:
        chosen = result.chosen
        if chosen is None:
            continue

        # An earlier entry in this batch may have added the same item
        if index.has_id(chosen.external_id):
            logger.info(
                "Skipping %s: %s is already in the library",
                result.entry.display_name,
                chosen.external_id,
            )
            result.transition(MatchStatus.IN_LIBRARY)
            batch.add(result)
            continue

        result.transition(MatchStatus.IMPORTING)
        try:
            folder_path = destination(result.entry, is_series)
            if not folder_path:
                raise ValidationError(f"No destination path for {result.entry.path}")
            request = _build_request(
                result,
                chosen,
                profile_id=profile_id,
                folder_path=folder_path,
                is_series=is_series,
                search_on_add=search_on_add,
            )
            await add(request)
        except Exception as e:
            result.error = str(e) or "Import failed"
            result.transition(MatchStatus.ERROR)
            logger.warning("Import failed for %s: %s", result.entry.display_name, result.error)
        else:
            result.transition(MatchStatus.IMPORTED)
            result.error = None
            index.add(folder_path, chosen.external_id)
            logger.info("Imported %s as %s", result.entry.display_name, request.title)
        batch.add(result)

    logger.info(
        "Imported %d items%s",
        batch.succeeded,
        f", {batch.failed} failed" if batch.failed else "",
    )
    return batch
