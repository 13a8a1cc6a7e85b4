"""
Filename parsing for scanned media.

Recovers a searchable title, release year, resolution tag and an optional
catalog identifier from scene-style and library-style names:

- Scene: The.Matrix.1999.1080p.BluRay.x264-GROUP.mkv
- Library: The Matrix (1999) [1080p].mkv
- Series folders: Show Name (2008) {tvdb-81189}

parse_filename() never raises; anything it cannot recognize is left as None.
"""

from __future__ import annotations

import logging
import re

from mediamatch.models import ParsedMetadata

logger = logging.getLogger(__name__)

# =============================================================================
# Patterns
# =============================================================================

VIDEO_EXTENSIONS = (".mkv", ".mp4", ".avi", ".m4v", ".wmv", ".mov", ".ts", ".m2ts")

_EXTENSION_PATTERN = re.compile(
    r"\.(?:" + "|".join(ext.lstrip(".") for ext in VIDEO_EXTENSIONS) + r")$",
    re.IGNORECASE,
)

# Identifier cascade (most specific -> least specific). The bare braced
# number is last and needs 5+ digits so "{1999}" is never taken as an id.
_ID_PREFIX = r"(?:tvdb|tmdb)(?:-?id)?[-:=]?\s*"
ID_PATTERNS = [
    # {tvdb-12345}, {tvdbid-12345}, {tvdb:12345}, {tmdb-603}
    re.compile(r"\{" + _ID_PREFIX + r"(\d+)\}", re.IGNORECASE),
    # [tvdb-12345]
    re.compile(r"\[" + _ID_PREFIX + r"(\d+)\]", re.IGNORECASE),
    # tvdbid-12345 with no brackets
    re.compile(r"(?<![A-Za-z0-9])" + _ID_PREFIX + r"(\d+)", re.IGNORECASE),
    # {12345}
    re.compile(r"\{(\d{5,})\}"),
]

# Year cascade: (1999) / [1999], then .1999. / " 1999 ", then trailing .1999
YEAR_PATTERNS = [
    re.compile(r"[(\[]((?:19|20)\d{2})[)\]]"),
    re.compile(r"[.\s_]((?:19|20)\d{2})[.\s_]"),
    re.compile(r"[.\s_]((?:19|20)\d{2})$"),
]

QUALITY_PATTERN = re.compile(
    r"(?<![A-Za-z0-9])(2160p|4K|UHD|1080p|720p|480p)(?![A-Za-z0-9])",
    re.IGNORECASE,
)

# Aliases collapse onto the canonical resolution token
QUALITY_ALIASES = {
    "4k": "2160p",
    "uhd": "2160p",
}

# Release sources that are safe to match case-insensitively
_SOURCE_PATTERN = re.compile(
    r"\b(?:BluRay|Blu-Ray|BRRip|BDRip|DVDRip|WEB-DL|WEBDL|WEBRip|HDTV|PDTV|HDRip|REMUX)\b",
    re.IGNORECASE,
)

# Streaming service tags are short and collide with real words ("Ma",
# "Nf"), so they only match upper-case and delimited
_SERVICE_PATTERN = re.compile(r"(?:^|(?<=[.\s_-]))(?:AMZN|DSNP|HMAX|ATVP|PCOK|MA|NF)(?=[.\s_-]|$)")

_VIDEO_TOKEN_PATTERN = re.compile(
    r"\b(?:2160p|4K|UHD|1080p|720p|480p|x264|x265|HEVC|AVC|H[.\s]?264|H[.\s]?265|10bit|HDR10|HDR|DV)\b",
    re.IGNORECASE,
)

_AUDIO_TOKEN_PATTERN = re.compile(
    r"\b(?:DTS-HD|DTS|AC3|AAC|FLAC|TrueHD|Atmos|EAC3|DDP?\s?[257]\s1|DDP|[57]\s1)\b",
    re.IGNORECASE,
)

_BRACKETED_GROUP = re.compile(r"\[[^\]]*\]|\([^)]*\)|\{[^}]*\}")

# "-GROUP" at the very end of a scene name
_GROUP_SUFFIX = re.compile(r"(?<=[A-Za-z0-9])-[A-Za-z0-9]+$")

SERIES_PATTERNS = [
    re.compile(r"\bS\d{1,2}(?:E\d{1,3})+\b", re.IGNORECASE),
    re.compile(r"\bS\d{1,2}\b", re.IGNORECASE),
    re.compile(r"\bSeason\s*\d+\b", re.IGNORECASE),
    re.compile(r"\bComplete\s*Series\b", re.IGNORECASE),
]

_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# Field extraction
# =============================================================================


def strip_extension(name: str) -> str:
    """Remove a known video extension suffix."""
    return _EXTENSION_PATTERN.sub("", name)


def extract_external_id(name: str) -> tuple[int | None, str]:
    """
    Find a catalog identifier and remove it from the name.

    Args:
        name: File or folder name (extension already stripped)

    Returns:
        Tuple of (identifier or None, name with the matched span removed)

    Examples:
        >>> extract_external_id("Show Name {tvdb-81189}")
        (81189, 'Show Name')
        >>> extract_external_id("Movie (1999)")
        (None, 'Movie (1999)')
    """
    for pattern in ID_PATTERNS:
        match = pattern.search(name)
        if match:
            remaining = (name[: match.start()] + name[match.end() :]).strip()
            return int(match.group(1)), remaining
    return None, name


def extract_year(name: str) -> tuple[int | None, int | None]:
    """
    Find the release year.

    The first pattern in the cascade that matches decides the year. The cut
    position is the earliest year marker any pattern finds, so a second year
    later in the name never leaks into the title.

    Returns:
        Tuple of (year or None, index where the title should be cut or None)
    """
    year: int | None = None
    cut: int | None = None
    for pattern in YEAR_PATTERNS:
        match = pattern.search(name)
        if not match:
            continue
        if year is None:
            year = int(match.group(1))
        if cut is None or match.start() < cut:
            cut = match.start()
    return year, cut


def extract_quality(name: str) -> str | None:
    """Return the canonical resolution tag (e.g. "1080p", "2160p")."""
    match = QUALITY_PATTERN.search(name)
    if not match:
        return None
    token = match.group(1).lower()
    return QUALITY_ALIASES.get(token, token)


def _has_release_markers(name: str) -> bool:
    return bool(
        QUALITY_PATTERN.search(name)
        or _SOURCE_PATTERN.search(name)
        or _VIDEO_TOKEN_PATTERN.search(name)
        or any(p.search(name) for p in YEAR_PATTERNS)
    )


def strip_group_suffix(name: str) -> str:
    """
    Remove a trailing "-GROUP" release tag.

    A hyphenated source token at the end of the name ("WEB-DL", "Blu-Ray")
    is not a group tag and is left for clean_title() to remove whole.

    Examples:
        >>> strip_group_suffix("Movie.1080p.WEB-DL-GROUP")
        'Movie.1080p.WEB-DL'
        >>> strip_group_suffix("Movie.1080p.WEB-DL")
        'Movie.1080p.WEB-DL'
    """
    match = _GROUP_SUFFIX.search(name)
    if not match:
        return name
    for source in _SOURCE_PATTERN.finditer(name):
        if source.start() < match.start() < source.end():
            return name
    return name[: match.start()]


def clean_title(name: str, year_cut: int | None, *, is_series: bool = False) -> str:
    """
    Reduce a name to a searchable title.

    Args:
        name: Name with extension and identifier already removed
        year_cut: Index of the year marker (everything from it is dropped)
        is_series: Also drop season/episode markers

    Returns:
        Title with release noise removed, whitespace collapsed
    """
    title = name[:year_cut] if year_cut is not None else name

    title = _SOURCE_PATTERN.sub(" ", title)
    title = _SERVICE_PATTERN.sub(" ", title)
    title = title.replace(".", " ").replace("_", " ")
    title = _BRACKETED_GROUP.sub(" ", title)
    title = _VIDEO_TOKEN_PATTERN.sub(" ", title)
    title = _AUDIO_TOKEN_PATTERN.sub(" ", title)

    if is_series:
        for pattern in SERIES_PATTERNS:
            title = pattern.sub(" ", title)

    title = _WHITESPACE.sub(" ", title).strip()
    # Separators left dangling by removed tokens ("Title -", "- Title")
    return title.strip(" -")


def parse_filename(raw_name: str, is_series: bool = False) -> ParsedMetadata:
    """
    Parse a file name (movies) or folder name (series).

    Args:
        raw_name: Name as reported by the scanner
        is_series: True when the name is a series folder

    Returns:
        ParsedMetadata; fields that could not be recognized are None

    Examples:
        >>> p = parse_filename("The.Matrix.1999.1080p.BluRay.x264-GROUP.mkv")
        >>> (p.clean_title, p.year, p.quality_tag)
        ('The Matrix', 1999, '1080p')
    """
    if not isinstance(raw_name, str) or not raw_name.strip():
        return ParsedMetadata(clean_title="")

    name = strip_extension(raw_name.strip())
    external_id, name = extract_external_id(name)

    if _has_release_markers(name):
        name = strip_group_suffix(name)

    year, year_cut = extract_year(name)
    quality = extract_quality(name)
    title = clean_title(name, year_cut, is_series=is_series)

    logger.debug(
        "Parsed %r -> title=%r year=%s quality=%s id=%s",
        raw_name,
        title,
        year,
        quality,
        external_id,
    )
    return ParsedMetadata(
        clean_title=title,
        year=year,
        quality_tag=quality,
        external_id=external_id,
    )
