"""Tests for utility functions."""
import pytest

from kiro_notes.utils import collapse_whitespace, escape_like_pattern, sanitize_for_filename


class TestSanitizeForFilename:
    """Tests for sanitize_for_filename."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Meeting notes: Q3/Q4", "Meeting-notes-Q3Q4"),
            ("  draft  ", "draft"),
            ("???", ""),
            ("", ""),
            ("keep_under-score", "keep_under-score"),
            ("Café déjà", "Café-déjà"),
            ("../../etc/passwd", "etcpasswd"),
        ],
    )
    def test_sanitize(self, title, expected):
        assert sanitize_for_filename(title) == expected

    def test_truncates_before_trimming(self):
        assert sanitize_for_filename("a" * 49 + " b", max_length=50) == "a" * 49

    def test_custom_max_length(self):
        assert sanitize_for_filename("abcdef", max_length=3) == "abc"


class TestEscapeLikePattern:
    """Tests for escape_like_pattern."""

    def test_escapes_wildcards(self):
        assert escape_like_pattern("100% complete") == "100\\% complete"
        assert escape_like_pattern("file_name") == "file\\_name"

    def test_escapes_backslash_first(self):
        assert escape_like_pattern("a\\%") == "a\\\\\\%"

    def test_plain_text_unchanged(self):
        assert escape_like_pattern("hello") == "hello"


def test_collapse_whitespace():
    assert collapse_whitespace("  a\n\tb   c ") == "a b c"
