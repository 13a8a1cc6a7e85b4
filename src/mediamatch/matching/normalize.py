"""Title normalization for comparison.

normalize_title() canonicalizes free-text titles so "Good/Bad",
"good bad" and "GOOD - BAD" compare equal. It is only used for matching;
display titles are never normalized.
"""

from __future__ import annotations

import re

_APOSTROPHES = re.compile(r"[‘’ʼ`´]")
_AMPERSAND = re.compile(r"\s*&\s*")
# \w would keep underscores; letters/digits only plus apostrophes
_DISALLOWED = re.compile(r"[^\w\s']|_")
_WHITESPACE = re.compile(r"\s+")


def normalize_title(title: str) -> str:
    """
    Canonicalize a title for comparison.

    Lower-cases, unifies apostrophes, turns "/" into a space, unifies "&"
    and "and", drops everything but letters, digits, spaces and apostrophes,
    and collapses whitespace. Idempotent.

    Examples:
        >>> normalize_title("Good/Bad")
        'good bad'
        >>> normalize_title("Tom & Jerry")
        'tom and jerry'
        >>> normalize_title("Schindler’s List")
        "schindler's list"
    """
    if not title:
        return ""
    result = title.lower()
    result = _APOSTROPHES.sub("'", result)
    result = result.replace("/", " ")
    result = _AMPERSAND.sub(" and ", result)
    result = _DISALLOWED.sub(" ", result)
    result = _WHITESPACE.sub(" ", result)
    return result.strip()


def significant_words(normalized: str) -> list[str]:
    """Split a normalized title into words longer than one character."""
    return [w for w in normalized.split(" ") if len(w) > 1]
