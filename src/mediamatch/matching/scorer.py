"""
Candidate scoring for catalog search results.

Given a parsed title/year and the catalog's result list (in catalog rank
order), pick the best candidate and a 0-100 confidence:

- 100: exact normalized title and matching year (scan stops here)
- 90: year matches but the title is not exact
- 85: exact normalized title, year missing or different
- 75-99: one title contains the other, or most words overlap
- 70: catalog returned the item but nothing else lines up

Ties keep the earlier catalog result, and the scan stops at the first 100,
so catalog rank decides between equally good candidates.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from rapidfuzz import fuzz

from mediamatch.matching.normalize import normalize_title, significant_words
from mediamatch.models import CatalogCandidate

logger = logging.getLogger(__name__)

PERFECT_SCORE = 100

_YEAR_PREFIX = re.compile(r"^\s*(\d{4})")


@dataclass(frozen=True)
class MatchPolicy:
    """Scoring constants.

    Attributes:
        base_score: Score of any returned candidate (also the starting confidence)
        exact_title_score: Floor for an exact normalized title match
        year_match_floor: Floor when only the year matches
        containment_floor: Floor when one title contains the other
        word_overlap_threshold: Fraction of shared words needed for a partial match
        max_alternates: Alternates kept besides the chosen candidate
    """

    base_score: int = 70
    exact_title_score: int = 85
    year_match_floor: int = 90
    containment_floor: int = 75
    word_overlap_threshold: float = 0.70
    max_alternates: int = 4


DEFAULT_POLICY = MatchPolicy()


@dataclass(frozen=True)
class TitleSimilarity:
    """Result of comparing two titles."""

    exact: bool
    partial: bool
    score: int


@dataclass(frozen=True)
class ScoreResult:
    """Best candidate for one entry."""

    chosen: CatalogCandidate
    confidence: int
    alternates: list[CatalogCandidate] = field(default_factory=list)
    display_title: str = ""


def candidate_year(date_str: str | None) -> int | None:
    """Best-effort year from a catalog date ("1999-03-31", "1999", "")."""
    if not date_str:
        return None
    match = _YEAR_PREFIX.match(str(date_str))
    if not match:
        return None
    year = int(match.group(1))
    return year if year > 0 else None


def title_similarity(
    title1: str,
    title2: str,
    policy: MatchPolicy = DEFAULT_POLICY,
) -> TitleSimilarity:
    """
    Compare two titles after normalization.

    Args:
        title1: First title (usually the parsed one)
        title2: Second title (usually a candidate variant)
        policy: Scoring constants

    Returns:
        TitleSimilarity with exact/partial flags and a 0-100 score

    Examples:
        >>> title_similarity("The Matrix", "the matrix").exact
        True
        >>> title_similarity("Alien", "Aliens").score
        83
    """
    norm1 = normalize_title(title1)
    norm2 = normalize_title(title2)
    if not norm1 or not norm2:
        return TitleSimilarity(exact=False, partial=False, score=0)

    if norm1 == norm2:
        return TitleSimilarity(exact=True, partial=True, score=PERFECT_SCORE)

    if norm1 in norm2 or norm2 in norm1:
        shorter, longer = sorted((norm1, norm2), key=len)
        ratio = round(len(shorter) / len(longer) * 100)
        return TitleSimilarity(
            exact=False, partial=True, score=max(ratio, policy.containment_floor)
        )

    words1 = significant_words(norm1)
    words2 = significant_words(norm2)
    if len(words1) < len(words2):
        shorter_words, longer_words = words1, words2
    else:
        shorter_words, longer_words = words2, words1

    if not shorter_words:
        return TitleSimilarity(exact=False, partial=False, score=0)

    longer_set = set(longer_words)
    matched = sum(1 for w in shorter_words if w in longer_set)
    fraction = matched / len(shorter_words)
    return TitleSimilarity(
        exact=False,
        partial=fraction >= policy.word_overlap_threshold,
        score=round(fraction * 100),
    )


def _score_candidate(
    parsed_title: str,
    parsed_year: int | None,
    candidate: CatalogCandidate,
    policy: MatchPolicy,
) -> int:
    year_matches = parsed_year is not None and candidate.year == parsed_year
    score = policy.base_score

    for variant in candidate.title_variants:
        similarity = title_similarity(parsed_title, variant, policy)
        if similarity.exact:
            score = max(score, policy.exact_title_score)
            if year_matches:
                return PERFECT_SCORE
        elif similarity.partial:
            score = max(score, similarity.score)

    if year_matches and score < policy.year_match_floor:
        score = policy.year_match_floor
    return score


def choose_display_title(parsed_title: str, candidate: CatalogCandidate) -> str:
    """
    Pick which of a candidate's titles to show.

    The original-language title wins when the parsed name is closer to it
    than to the translated title (e.g. a folder named after the original
    Japanese romanization).
    """
    original = candidate.original_title
    if not original or original == candidate.title:
        return candidate.title

    parsed_norm = normalize_title(parsed_title)
    if not parsed_norm:
        return candidate.title

    to_original = fuzz.ratio(parsed_norm, normalize_title(original))
    to_translated = fuzz.ratio(parsed_norm, normalize_title(candidate.title))
    return original if to_original > to_translated else candidate.title


def select_alternates(
    candidates: Sequence[CatalogCandidate],
    chosen: CatalogCandidate,
    limit: int = 4,
) -> list[CatalogCandidate]:
    """Up to ``limit`` distinct candidates from the top ``limit + 1``, minus the chosen one."""
    alternates: list[CatalogCandidate] = []
    seen = {chosen.external_id}
    for candidate in candidates[: limit + 1]:
        if candidate.external_id in seen:
            continue
        seen.add(candidate.external_id)
        alternates.append(candidate)
        if len(alternates) >= limit:
            break
    return alternates


def score_candidates(
    parsed_title: str,
    candidates: Sequence[CatalogCandidate],
    parsed_year: int | None = None,
    policy: MatchPolicy = DEFAULT_POLICY,
) -> ScoreResult | None:
    """
    Choose the best catalog candidate for a parsed title.

    Args:
        parsed_title: Clean title from the filename parser
        candidates: Catalog results in catalog rank order
        parsed_year: Year from the filename parser, if any
        policy: Scoring constants

    Returns:
        ScoreResult, or None when ``candidates`` is empty
    """
    if not candidates:
        return None

    best = candidates[0]
    confidence = policy.base_score

    for candidate in candidates:
        score = _score_candidate(parsed_title, parsed_year, candidate, policy)
        if score > confidence:
            best = candidate
            confidence = score
        if confidence >= PERFECT_SCORE:
            break

    logger.debug(
        "Scored %d candidates for %r (year=%s): chose %s (%s) at %d",
        len(candidates),
        parsed_title,
        parsed_year,
        best.external_id,
        best.title,
        confidence,
    )
    return ScoreResult(
        chosen=best,
        confidence=confidence,
        alternates=select_alternates(candidates, best, policy.max_alternates),
        display_title=choose_display_title(parsed_title, best),
    )
