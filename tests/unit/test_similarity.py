"""
Unit tests for free-text similarity grading.
"""

import pytest

from quiz_engine.config import Settings
from quiz_engine.grading import (
    SimilarityBand,
    SimilarityGrader,
    classify,
    is_plausible_partial,
    levenshtein,
    normalize_text,
    round_half_up,
    similarity,
    within_edit_tolerance,
)


SAMPLE_STRINGS = ["", "a", "object", "Network Layer", "  spaced   out  ", "ÜBER straße", "x" * 40]


class TestNormalizeText:
    """Tests for whitespace and case normalization."""

    def test_collapses_and_trims(self):
        assert normalize_text("  Hello   \n World\t") == "hello world"

    def test_none_is_empty(self):
        assert normalize_text(None) == ""


class TestLevenshtein:
    """Tests for the edit-distance table."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("", "", 0),
            ("abc", "", 3),
            ("", "abc", 3),
            ("kitten", "sitting", 3),
            ("object", "objetc", 2),
            ("flaw", "lawn", 2),
        ],
    )
    def test_known_distances(self, a, b, expected):
        assert levenshtein(a, b) == expected


class TestSimilarity:
    """Tests for the 0-100 similarity score."""

    @pytest.mark.parametrize("value", SAMPLE_STRINGS)
    def test_identity_is_100(self, value):
        assert similarity(value, value) == 100

    @pytest.mark.parametrize("value", SAMPLE_STRINGS)
    def test_against_empty(self, value):
        expected = 100 if normalize_text(value) == "" else 0
        assert similarity(value, "") == expected
        assert similarity("", value) == expected

    @pytest.mark.parametrize(
        "a,b",
        [("object", "objetc"), ("network", "netwrk"), ("abc", "xyz12"), ("Hello", "help me")],
    )
    def test_symmetric(self, a, b):
        assert similarity(a, b) == similarity(b, a)

    def test_normalization_makes_equal(self):
        assert similarity("  The   Answer ", "the answer") == 100

    def test_transposition_score(self):
        """A transposition is two edits: round((1 - 2/6) * 100) == 67."""
        assert similarity("object", "objetc") == 67

    def test_half_rounds_up(self):
        """1 edit in 8 characters is 87.5, which rounds to 88."""
        assert similarity("abcdefgh", "abcdefgX") == 88
        assert round_half_up(66.5) == 67
        assert round_half_up(0.49) == 0

    def test_range(self):
        assert 0 <= similarity("completely", "different!!") <= 100


class TestClassify:
    """Tests for the feedback bands."""

    def test_bands(self):
        assert classify(100) == SimilarityBand.CORRECT
        assert classify(81) == SimilarityBand.CLOSE
        assert classify(80) == SimilarityBand.INCORRECT
        assert classify(0) == SimilarityBand.INCORRECT

    def test_custom_threshold(self):
        assert classify(75, close_threshold=70) == SimilarityBand.CLOSE


class TestEditGate:
    """Tests for the edit-distance pass/fail gate."""

    def test_typo_passes(self):
        assert within_edit_tolerance("object", "objetc") is True

    def test_case_and_spacing_ignored(self):
        assert within_edit_tolerance("Object", "  OBJECT ") is True

    def test_too_many_edits_fails(self):
        assert within_edit_tolerance("object", "subject matter") is False

    def test_empty_answer_fails(self):
        assert within_edit_tolerance("object", "") is False

    def test_custom_limit(self):
        assert within_edit_tolerance("object", "objetc", max_edits=1) is False


class TestPlausiblePartial:
    """Tests for live blank validation."""

    def test_prefix_is_plausible(self):
        assert is_plausible_partial("polymorphism", "poly") is True

    def test_empty_is_plausible(self):
        assert is_plausible_partial("polymorphism", "") is True

    def test_unrelated_is_not(self):
        assert is_plausible_partial("polymorphism", "encapsulation") is False


class TestSimilarityGrader:
    """Tests for the configured grader."""

    def test_defaults(self):
        grader = SimilarityGrader()
        assert grader.score("object", "object") == 100
        assert grader.band(90) == SimilarityBand.CLOSE
        assert grader.passes_edit_gate("object", "objetc") is True
        assert grader.is_plausible_partial("object", "obj") is True

    def test_from_settings(self, tmp_path):
        settings = Settings(
            storage_dir=tmp_path,
            close_threshold=60,
            blanks_max_edits=1,
            openended_pass_threshold=50,
            _env_file=None,
        )
        grader = SimilarityGrader.from_settings(settings)

        assert grader.close_threshold == 60
        assert grader.max_edits == 1
        assert grader.pass_threshold == 50
        assert grader.passes_edit_gate("object", "objetc") is False
