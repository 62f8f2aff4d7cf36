"""Tests for autogazelle.globs: Go path.Match semantics."""

from __future__ import annotations

import pytest

from autogazelle.globs import BadPatternError, match_rel_path, path_match


class TestPathMatch:
    @pytest.mark.parametrize(
        ("pattern", "name", "expected"),
        [
            ("abc", "abc", True),
            ("*", "abc", True),
            ("*c", "abc", True),
            ("a*", "a", True),
            ("a*/b", "abc/b", True),
            ("a*", "ab/c", False),
            ("a*b*c*d*e*/f", "axbxcxdxe/f", True),
            ("ab[c]", "abc", True),
            ("ab[b-d]", "abc", True),
            ("ab[e-g]", "abc", False),
            ("ab[^c]", "abc", False),
            ("ab[^e-g]", "abc", True),
            ("a\\*b", "a*b", True),
            ("a\\*b", "ab", False),
            ("a?b", "a☺b", True),
            ("a?b", "a/b", False),
            ("github.com/*", "github.com/pkg", True),
            ("github.com/*", "github.com/pkg/errors", False),
            ("", "", True),
            ("", "github.com/pkg/errors", False),
        ],
    )
    def test_matches_go_semantics(self, pattern: str, name: str, expected: bool) -> None:
        assert path_match(pattern, name) is expected

    @pytest.mark.parametrize("pattern", ["[", "a[", "[^", "[]a]", "a\\", "[a-", "[-]", "[x-]"])
    def test_malformed_pattern_raises(self, pattern: str) -> None:
        """Malformed patterns are reported even when they could never match."""
        with pytest.raises(BadPatternError):
            path_match(pattern, "a")

    def test_bad_pattern_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            path_match("[", "x")

    def test_regex_metacharacters_are_literal(self) -> None:
        assert path_match("a.b+c", "a.b+c") is True
        assert path_match("a.b", "axb") is False


class TestMatchRelPath:
    def test_single_segment(self) -> None:
        assert match_rel_path("vendor", "vendor") is True
        assert match_rel_path("vendor", "vendor/x") is False

    def test_double_star_matches_any_depth(self) -> None:
        assert match_rel_path("**/testdata", "testdata") is True
        assert match_rel_path("**/testdata", "a/b/testdata") is True
        assert match_rel_path("a/**", "a/b/c") is True
        assert match_rel_path("a/**/c.go", "a/c.go") is True
        assert match_rel_path("a/**/c.go", "b/c.go") is False

    def test_segment_globs(self) -> None:
        assert match_rel_path("pkg/*.pb.go", "pkg/foo.pb.go") is True
        assert match_rel_path("pkg/*.pb.go", "pkg/sub/foo.pb.go") is False
