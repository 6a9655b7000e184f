"""Tests for neofd.glob."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from neofd.glob import glob_match

# Path-like text over a small alphabet so wildcards collide often.
segment = st.text(alphabet="abc.", min_size=0, max_size=4)
path_text = st.lists(segment, min_size=1, max_size=4).map("/".join)
literal_pattern = st.text(alphabet="abc./", min_size=0, max_size=8)


class TestGlobMatchBasic:
    @pytest.mark.parametrize(
        ("pattern", "text", "expected"),
        [
            ("foo", "foo", True),
            ("foo", "bar", False),
            ("foo", "foobar", False),
            ("", "", True),
            ("", "a", False),
        ],
    )
    def test_literal(self, pattern: str, text: str, expected: bool) -> None:
        assert glob_match(pattern, text) is expected

    @pytest.mark.parametrize(
        ("pattern", "text", "expected"),
        [
            ("*.txt", "file.txt", True),
            ("*.txt", "dir/file.txt", False),
            ("foo*", "foobar", True),
            ("*bar", "foobar", True),
            ("*", "anything", True),
            ("*", "", True),
            ("a*b*c", "aXbYc", True),
            ("a*b*c", "aXbY", False),
            ("*.tar.gz", "x.tar.gz", True),
            ("*a", "aaaa", True),
        ],
    )
    def test_star(self, pattern: str, text: str, expected: bool) -> None:
        assert glob_match(pattern, text) is expected

    @pytest.mark.parametrize(
        ("pattern", "text", "expected"),
        [
            ("**/*.txt", "file.txt", True),
            ("**/*.txt", "dir/file.txt", True),
            ("**/*.txt", "a/b/c/file.txt", True),
            ("src/**", "src/main.py", True),
            ("src/**", "src/foo/bar.py", True),
            ("**", "a/b/c", True),
            ("a/**/b", "a/b", True),
            ("a/**/b", "a/x/y/b", True),
            ("a/**/b", "a/xb", False),
            ("**/b.txt", "ab.txt", False),
            ("**/cache", "x/y/cache", True),
        ],
    )
    def test_globstar(self, pattern: str, text: str, expected: bool) -> None:
        assert glob_match(pattern, text) is expected

    @pytest.mark.parametrize(
        ("pattern", "text", "expected"),
        [
            ("?.txt", "a.txt", True),
            ("?.txt", "ab.txt", False),
            ("?oo", "foo", True),
            ("a?b", "a/b", False),
        ],
    )
    def test_question_mark(self, pattern: str, text: str, expected: bool) -> None:
        assert glob_match(pattern, text) is expected

    @pytest.mark.parametrize(
        ("pattern", "text", "expected"),
        [
            ("[abc]", "a", True),
            ("[abc]", "b", True),
            ("[abc]", "d", False),
            ("[a-z]", "m", True),
            ("[a-z]", "A", False),
            ("[!a-z]", "A", True),
            ("[^a-z]", "A", True),
            ("[!a-z]", "q", False),
            ("file[0-9].log", "file7.log", True),
            ("file[0-9].log", "filex.log", False),
            ("a[!b]c", "a/c", True),
            ("a[bc]c", "a/c", False),
        ],
    )
    def test_char_class(self, pattern: str, text: str, expected: bool) -> None:
        assert glob_match(pattern, text) is expected

    @pytest.mark.parametrize(
        ("pattern", "text", "expected"),
        [
            ("[abc", "[abc", True),
            ("[abc", "a", False),
            ("x[", "x[", True),
        ],
    )
    def test_unterminated_class_is_literal(
        self, pattern: str, text: str, expected: bool
    ) -> None:
        assert glob_match(pattern, text) is expected


class TestGlobMatchProperties:
    @given(pattern=literal_pattern, text=path_text)
    def test_literal_pattern_is_equality(self, pattern: str, text: str) -> None:
        assert glob_match(pattern, text) is (pattern == text)

    @given(text=path_text)
    def test_star_matches_iff_no_separator(self, text: str) -> None:
        assert glob_match("*", text) is ("/" not in text)

    @given(suffix=st.sampled_from(["*.c", "a*", "?", "b", "*", "a/*"]), text=path_text)
    def test_globstar_prefix_matches_some_segment_suffix(
        self, suffix: str, text: str
    ) -> None:
        parts = text.split("/")
        candidates = ["/".join(parts[i:]) for i in range(len(parts))]
        expected = any(glob_match(suffix, candidate) for candidate in candidates)
        assert glob_match("**/" + suffix, text) is expected

    @given(char=st.characters(min_codepoint=32, max_codepoint=126))
    def test_negated_class_is_complement(self, char: str) -> None:
        assert glob_match("[!a-z]", char) is not glob_match("[a-z]", char)

    @given(text=path_text)
    def test_trailing_globstar_matches_everything(self, text: str) -> None:
        assert glob_match("**", text)
