"""
Batch reconciliation of scanned entries against the metadata catalog.

A run goes through three steps:

1. Every entry is parsed and checked against the DuplicateIndex. Entries
   already in the library become ``in_library`` with no lookup.
2. The rest are looked up in waves of ``clamp(concurrency, 1, 20)``. Each
   wave's searches run in parallel and are gathered before anything is
   written back, so only this coroutine ever mutates the result list.
3. Each lookup is scored; high-confidence matches are pre-selected.

A failed lookup only degrades its own entry to ``unmatched``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from mediamatch.config import Settings, clamp_concurrency, load_settings
from mediamatch.exceptions import ConfigurationError, ValidationError
from mediamatch.library.index import DuplicateIndex
from mediamatch.matching.parser import parse_filename
from mediamatch.matching.scorer import DEFAULT_POLICY, MatchPolicy, ScoreResult, score_candidates
from mediamatch.models import (
    CommitResult,
    MatchResult,
    MatchStatus,
    MediaKind,
    Progress,
    RunSummary,
    ScannedEntry,
)
from mediamatch.protocols import AddFn, DestinationFn, ProgressFn, SearchFn
from mediamatch.selection import commit, default_destination

logger = logging.getLogger(__name__)

# Pause between waves to stay under catalog rate limits
WAVE_DELAY_SECONDS = 0.1

AUTO_SELECT_THRESHOLD = 100

NO_RESULTS_REASON = "No catalog results"
NO_TITLE_REASON = "No title could be parsed from the name"


@dataclass
class ReconciliationState:
    """Everything one run owns. Discarded when the run is closed or superseded."""

    results: list[MatchResult] = field(default_factory=list)
    index: DuplicateIndex = field(default_factory=DuplicateIndex)
    media_kind: MediaKind = MediaKind.MOVIE

    @property
    def is_series(self) -> bool:
        return self.media_kind is MediaKind.SERIES


@dataclass(frozen=True)
class _LookupOutcome:
    """Value returned by one lookup task; applied by the orchestrator."""

    position: int
    score: ScoreResult | None = None
    reason: str | None = None


def prepare_results(
    entries: Sequence[ScannedEntry],
    index: DuplicateIndex,
    *,
    is_series: bool,
) -> list[MatchResult]:
    """Parse every entry and mark library duplicates, without any lookup."""
    results: list[MatchResult] = []
    for entry in entries:
        result = MatchResult(entry=entry, parsed=parse_filename(entry.display_name, is_series))
        if index.is_already_imported(entry, is_series):
            result.transition(MatchStatus.IN_LIBRARY)
        results.append(result)
    return results


def plan_waves(positions: Sequence[int], concurrency: int) -> list[list[int]]:
    """Split result positions into waves of ``clamp(concurrency, 1, 20)``."""
    size = clamp_concurrency(concurrency)
    return [list(positions[i : i + size]) for i in range(0, len(positions), size)]


async def _lookup(
    position: int,
    result: MatchResult,
    *,
    is_series: bool,
    search: SearchFn,
    policy: MatchPolicy,
) -> _LookupOutcome:
    parsed = result.parsed
    if not parsed.clean_title:
        return _LookupOutcome(position, reason=NO_TITLE_REASON)

    # Series searches are by name only; folder years are often the first-air
    # year of a later season
    year = None if is_series else parsed.year
    try:
        candidates = await search(parsed.clean_title, year)
    except Exception as e:
        logger.warning(
            "Search failed for %r (%s): %s", parsed.clean_title, result.entry.path, e
        )
        return _LookupOutcome(position, reason=f"Lookup failed: {e}")

    score = score_candidates(parsed.clean_title, candidates or [], parsed.year, policy)
    if score is None:
        return _LookupOutcome(position, reason=NO_RESULTS_REASON)
    return _LookupOutcome(position, score=score)


def _apply_outcome(
    result: MatchResult,
    outcome: _LookupOutcome,
    index: DuplicateIndex,
    auto_select_threshold: int,
) -> None:
    score = outcome.score
    if score is None:
        result.error = outcome.reason
        result.transition(MatchStatus.UNMATCHED)
        return

    result.apply_match(score.chosen, score.confidence, score.alternates, score.display_title)
    if index.has_id(score.chosen.external_id):
        result.transition(MatchStatus.IN_LIBRARY)
        return

    result.transition(MatchStatus.MATCHED)
    result.selected = score.confidence >= auto_select_threshold


async def reconcile(
    entries: Sequence[ScannedEntry],
    *,
    is_series: bool,
    concurrency: int,
    index: DuplicateIndex,
    search: SearchFn,
    on_progress: ProgressFn | None = None,
    policy: MatchPolicy = DEFAULT_POLICY,
    wave_delay: float = WAVE_DELAY_SECONDS,
    auto_select_threshold: int = AUTO_SELECT_THRESHOLD,
    cancel_event: asyncio.Event | None = None,
    results: list[MatchResult] | None = None,
) -> list[MatchResult]:
    """
    Reconcile scanned entries against the catalog.

    Args:
        entries: Scanned files (movies) or folders (series), in scanner order
        is_series: True for series folders
        concurrency: Requested lookups per wave (clamped to 1..20)
        index: Library index used for duplicate suppression
        search: Async ``search(query, year)`` returning catalog candidates
        on_progress: Called once per finished wave with Progress(current, total)
        policy: Scoring constants
        wave_delay: Seconds to wait between waves (not after the last)
        auto_select_threshold: Confidence at which matches are pre-selected
        cancel_event: When set, no further waves start and an in-flight
            wave's results are discarded
        results: Pre-built results from prepare_results() (must align with entries)

    Returns:
        One MatchResult per entry, in entry order
    """
    if results is None:
        results = prepare_results(entries, index, is_series=is_series)
    elif len(results) != len(entries):
        raise ValidationError("results must contain one MatchResult per entry")

    pending = [i for i, r in enumerate(results) if r.status is MatchStatus.PENDING]
    total = len(pending)
    waves = plan_waves(pending, concurrency)
    logger.info(
        "Reconciling %d entries (%d already in library) in %d waves",
        len(results),
        len(results) - total,
        len(waves),
    )

    done = 0
    for wave_number, wave in enumerate(waves, start=1):
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Run cancelled before wave %d/%d", wave_number, len(waves))
            break

        outcomes = await asyncio.gather(
            *(
                _lookup(
                    position,
                    results[position],
                    is_series=is_series,
                    search=search,
                    policy=policy,
                )
                for position in wave
            )
        )

        if cancel_event is not None and cancel_event.is_set():
            logger.info("Run cancelled during wave %d/%d, discarding results", wave_number, len(waves))
            break

        for outcome in outcomes:
            _apply_outcome(results[outcome.position], outcome, index, auto_select_threshold)

        done = min(done + len(wave), total)
        logger.debug("Wave %d/%d complete (%d/%d)", wave_number, len(waves), done, total)
        if on_progress is not None:
            on_progress(Progress(current=done, total=total))

        if wave_number < len(waves) and wave_delay > 0:
            await asyncio.sleep(wave_delay)

    return results


def summarize_run(results: Sequence[MatchResult], *, cancelled: bool = False) -> RunSummary:
    """Counts for the end-of-run report."""
    counts = {status: 0 for status in MatchStatus}
    for result in results:
        counts[result.status] += 1
    return RunSummary(
        matched_count=counts[MatchStatus.MATCHED],
        already_in_library_count=counts[MatchStatus.IN_LIBRARY],
        unmatched_count=counts[MatchStatus.UNMATCHED],
        pending_count=counts[MatchStatus.PENDING],
        cancelled=cancelled,
    )


class ReconciliationRun:
    """One reconciliation run with its state, settings and cancel switch.

    Example:
        run = ReconciliationRun(catalog.search, media_kind=MediaKind.MOVIE)
        run.start(entries, lister.list_paths(MediaKind.MOVIE), owned_ids)
        results = await run.run(on_progress=show_progress)
        print(run.summary())
    """

    def __init__(
        self,
        search: SearchFn,
        *,
        media_kind: MediaKind = MediaKind.MOVIE,
        settings: Settings | None = None,
        check_credentials: bool = True,
    ) -> None:
        self._search = search
        self.media_kind = media_kind
        self.settings = settings or load_settings()
        self.check_credentials = check_credentials
        self.state: ReconciliationState | None = None
        self._entries: list[ScannedEntry] = []
        self._cancel_event = asyncio.Event()

    @property
    def is_series(self) -> bool:
        return self.media_kind is MediaKind.SERIES

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def start(
        self,
        entries: Sequence[ScannedEntry],
        library_paths: Sequence[str],
        library_ids: Sequence[int] = (),
    ) -> ReconciliationState:
        """
        Validate preconditions and build fresh state, superseding any previous run.

        Raises:
            ConfigurationError: If catalog credentials are missing
        """
        if self.check_credentials:
            errors = self.settings.validate_required_for_catalog()
            if errors:
                raise ConfigurationError(
                    "Catalog is not configured: " + "; ".join(errors),
                    details={"errors": errors},
                )

        # A run still in flight for the previous state stops at its next wave
        self._cancel_event.set()
        self._cancel_event = asyncio.Event()

        index = DuplicateIndex.build(library_paths, library_ids)
        self._entries = list(entries)
        self.state = ReconciliationState(
            results=prepare_results(self._entries, index, is_series=self.is_series),
            index=index,
            media_kind=self.media_kind,
        )
        in_library = sum(1 for r in self.state.results if r.status is MatchStatus.IN_LIBRARY)
        if in_library:
            logger.info("Found %d already imported items", in_library)
        return self.state

    async def run(self, on_progress: ProgressFn | None = None) -> list[MatchResult]:
        """Look up every pending entry.

        Raises:
            ValidationError: If start() has not been called
        """
        if self.state is None:
            raise ValidationError("Reconciliation run has not been started")

        run_settings = self.settings.match
        state = self.state
        cancel_event = self._cancel_event
        results = await reconcile(
            self._entries,
            is_series=self.is_series,
            concurrency=run_settings.concurrency,
            index=state.index,
            search=self._search,
            on_progress=on_progress,
            policy=self.settings.policy,
            wave_delay=run_settings.wave_delay,
            auto_select_threshold=run_settings.auto_select_threshold,
            cancel_event=cancel_event,
            results=state.results,
        )
        summary = summarize_run(results, cancelled=cancel_event.is_set())
        logger.info(
            "Scan complete: %d matched, %d already in library, %d unmatched",
            summary.matched_count,
            summary.already_in_library_count,
            summary.unmatched_count,
        )
        return results

    def cancel(self) -> None:
        """Stop after the current wave; its results are discarded."""
        self._cancel_event.set()

    def summary(self) -> RunSummary:
        """Counts for the current state."""
        if self.state is None:
            return RunSummary(matched_count=0, already_in_library_count=0)
        return summarize_run(self.state.results, cancelled=self.cancelled)

    async def commit(
        self,
        add: AddFn,
        *,
        profile_id: str | None = None,
        search_on_add: bool | None = None,
        destination: DestinationFn = default_destination,
    ) -> CommitResult:
        """
        Commit the selected matches of the current state.

        profile_id and search_on_add default to the configured
        ``default_profile`` and ``auto_search``.

        Raises:
            ValidationError: If start() has not been called or no profile is set
        """
        if self.state is None:
            raise ValidationError("Reconciliation run has not been started")

        run_settings = self.settings.match
        return await commit(
            self.state.results,
            profile_id=run_settings.default_profile if profile_id is None else profile_id,
            add=add,
            index=self.state.index,
            is_series=self.is_series,
            destination=destination,
            search_on_add=run_settings.auto_search if search_on_add is None else search_on_add,
        )
