"""Title normalization, filename parsing and candidate scoring."""

from mediamatch.matching.normalize import normalize_title
from mediamatch.matching.parser import VIDEO_EXTENSIONS, parse_filename
from mediamatch.matching.scorer import (
    DEFAULT_POLICY,
    MatchPolicy,
    ScoreResult,
    TitleSimilarity,
    candidate_year,
    choose_display_title,
    score_candidates,
    title_similarity,
)

__all__ = [
    "DEFAULT_POLICY",
    "MatchPolicy",
    "ScoreResult",
    "TitleSimilarity",
    "VIDEO_EXTENSIONS",
    "candidate_year",
    "choose_display_title",
    "normalize_title",
    "parse_filename",
    "score_candidates",
    "title_similarity",
]
