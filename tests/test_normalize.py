"""Tests for title normalization."""

from __future__ import annotations

import pytest

from mediamatch.matching.normalize import normalize_title, significant_words


class TestNormalizeTitle:
    """Tests for normalize_title()."""

    def test_slash_becomes_space(self) -> None:
        """'Good/Bad' normalizes to 'good bad'."""
        assert normalize_title("Good/Bad") == "good bad"

    def test_equivalent_spellings_compare_equal(self) -> None:
        """Slash, dash and case variants collapse to one form."""
        variants = ["Good/Bad", "good bad", "GOOD - BAD", "  Good   Bad  "]
        assert {normalize_title(v) for v in variants} == {"good bad"}

    def test_ampersand_becomes_and(self) -> None:
        assert normalize_title("Tom & Jerry") == "tom and jerry"
        assert normalize_title("Tom&Jerry") == "tom and jerry"
        assert normalize_title("Tom & Jerry") == normalize_title("Tom and Jerry")

    def test_typographic_apostrophes_unified(self) -> None:
        """Curly and backtick apostrophes become a straight apostrophe."""
        assert normalize_title("Schindler’s List") == "schindler's list"
        assert normalize_title("Schindler`s List") == "schindler's list"

    def test_punctuation_removed(self) -> None:
        assert normalize_title("Mission: Impossible - Fallout!") == "mission impossible fallout"

    def test_underscore_removed(self) -> None:
        assert normalize_title("the_matrix") == "the matrix"

    def test_unicode_letters_kept(self) -> None:
        assert normalize_title("Amélie") == "amélie"

    def test_empty(self) -> None:
        assert normalize_title("") == ""
        assert normalize_title("   ") == ""
        assert normalize_title("!!!") == ""

    @pytest.mark.parametrize(
        "title",
        [
            "Good/Bad",
            "Tom & Jerry",
            "Schindler’s List",
            "Mission: Impossible - Fallout",
            "WALL·E",
            "Léon: The Professional",
            "  & ",
        ],
    )
    def test_idempotent(self, title: str) -> None:
        """Normalizing twice gives the same result as normalizing once."""
        once = normalize_title(title)
        assert normalize_title(once) == once


class TestSignificantWords:
    """Tests for significant_words()."""

    def test_drops_single_characters(self) -> None:
        assert significant_words("a man called ove") == ["man", "called", "ove"]

    def test_empty(self) -> None:
        assert significant_words("") == []
