"""版本向量解析与比较"""

from __future__ import annotations

import pytest

from modpkg.core.exceptions import ParseError
from modpkg.core.version import (
    compare_versions,
    format_version,
    parse_version,
)


class TestParseVersion:
    @pytest.mark.parametrize("text", ["0", "1.2", "1.10.3", "2024.6.0.1"])
    def test_round_trip(self, text: str) -> None:
        assert format_version(parse_version(text)) == text

    def test_components(self) -> None:
        assert parse_version("1.10.3") == (1, 10, 3)

    @pytest.mark.parametrize("text", ["", "1.", ".1", "1.a", "-1", "1..2", "v1"])
    def test_invalid_raises(self, text: str) -> None:
        with pytest.raises(ParseError, match="无效的版本号"):
            parse_version(text)


class TestCompareVersions:
    @pytest.mark.parametrize(("a", "b"), [
        ("1.2", "1.2.1"),
        ("1.9", "1.10"),
        ("1.9.9", "2"),
        ("0.1", "0.2"),
    ])
    def test_less_than(self, a: str, b: str) -> None:
        va, vb = parse_version(a), parse_version(b)
        assert compare_versions(va, vb) == -1
        assert compare_versions(vb, va) == 1

    def test_equal(self) -> None:
        assert compare_versions((1, 2), (1, 2)) == 0

    def test_absent_versions(self) -> None:
        assert compare_versions(None, None) == 0
        assert compare_versions(None, (0,)) == -1
        assert compare_versions((0,), None) == 1

    def test_sort_matches_compare(self) -> None:
        texts = ["2", "1.10", "1.2.1", "1.9", "1.2", "0.9.9"]
        ordered = sorted((parse_version(t) for t in texts))
        assert [format_version(v) for v in ordered] == [
            "0.9.9", "1.2", "1.2.1", "1.9", "1.10", "2",
        ]
        for lo, hi in zip(ordered, ordered[1:]):
            assert compare_versions(lo, hi) == -1
