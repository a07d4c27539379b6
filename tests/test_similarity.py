"""
Tests for edit-distance similarity.
"""

import pytest

from wing_memory.dedup.similarity import levenshtein_distance, similarity


class TestLevenshteinDistance:
    """Tests for the raw edit distance."""

    def test_classic_example(self):
        """kitten -> sitting needs three edits."""
        assert levenshtein_distance("kitten", "sitting") == 3

    def test_empty_strings(self):
        assert levenshtein_distance("", "") == 0
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("abc", "") == 3

    def test_single_insertion(self):
        assert levenshtein_distance("去公园散步", "去公园里散步") == 1

    def test_no_normalization(self):
        """The raw distance is case sensitive."""
        assert levenshtein_distance("Alice", "alice") == 1


class TestSimilarity:
    """Tests for normalized similarity."""

    @pytest.mark.parametrize("text", ["", "a", "Alice", "去公园散步", "Late night writing"])
    def test_identity(self, text):
        assert similarity(text, text) == 1.0

    @pytest.mark.parametrize(
        "a, b",
        [
            ("kitten", "sitting"),
            ("去公园散步", "去公园里散步"),
            ("morning run", "evening walk"),
            ("", "x"),
        ],
    )
    def test_symmetry(self, a, b):
        assert similarity(a, b) == similarity(b, a)

    def test_both_empty(self):
        assert similarity("", "") == 1.0

    def test_one_empty(self):
        assert similarity("", "x") == 0.0
        assert similarity("x", "") == 0.0

    def test_whitespace_only_counts_as_empty(self):
        assert similarity("   ", "") == 1.0

    def test_case_and_whitespace_insensitive(self):
        assert similarity("  Late Night Writing ", "late night writing") == 1.0

    def test_normalized_by_longer_string(self):
        assert similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_chinese_near_duplicate(self):
        """One inserted character in a six-character event."""
        assert similarity("去公园散步", "去公园里散步") == pytest.approx(1 - 1 / 6)

    def test_completely_different(self):
        assert similarity("abc", "xyz") == 0.0

    @pytest.mark.parametrize(
        "a, b",
        [("a", "b"), ("hello", "help"), ("写日记", "写周记"), ("x" * 40, "y" * 3)],
    )
    def test_range(self, a, b):
        assert 0.0 <= similarity(a, b) <= 1.0
