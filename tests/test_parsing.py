"""Tests for free-text reply parsing."""

import pytest

from ideapile.errors import ParseError
from ideapile.parsing import parse_connection_indices, parse_tags


class TestConnectionIndices:
    @pytest.mark.parametrize("reply,expected", [
        ("1, 3, 5", [0, 2, 4]),
        ("2", [1]),
        ("Ideas 2 and 4 are related.", [1, 3]),
        ("3, 1, 3", [2, 0]),
        ("1,2,9", [0, 1]),
        ("0, 2", [1]),
        ("-1, 2", [1]),
        ("  4\n", [3]),
    ])
    def test_parses_numbers(self, reply, expected):
        assert parse_connection_indices(reply, 5) == expected

    @pytest.mark.parametrize("reply", [
        "none",
        "None.",
        "No connections",
        "nenhuma",
        "I could not find any meaningful relationship.",
    ])
    def test_reply_without_numbers_is_empty(self, reply):
        assert parse_connection_indices(reply, 5) == []

    def test_all_out_of_range_is_empty(self):
        assert parse_connection_indices("7, 8", 3) == []

    def test_empty_corpus(self):
        assert parse_connection_indices("1, 2", 0) == []

    @pytest.mark.parametrize("reply", ["", "   ", None])
    def test_empty_reply_raises(self, reply):
        with pytest.raises(ParseError):
            parse_connection_indices(reply, 3)

    @pytest.mark.parametrize("reply,expected", [
        ("1-3", [0, 1, 2]),
        ("2 - 3, 5", [1, 2, 4]),
        ("3-1", [0, 1, 2]),
        ("4-9", [3, 4]),
        ("1-2, 2-3", [0, 1, 2]),
    ])
    def test_ranges_expand(self, reply, expected):
        assert parse_connection_indices(reply, 5) == expected


class TestTags:
    @pytest.mark.parametrize("reply,expected", [
        ("travel, japan, planning", ["travel", "japan", "planning"]),
        ("Travel; #Japan; Food Culture", ["travel", "japan", "food-culture"]),
        ("1. travel\n2. japan\n3. planning", ["travel", "japan", "planning"]),
        ("- travel\n- japan", ["travel", "japan"]),
        ("Tags: travel, japan, planning", ["travel", "japan", "planning"]),
        ('"travel", "japan"', ["travel", "japan"]),
        ("travel, travel, japan", ["travel", "japan"]),
    ])
    def test_parses_tags(self, reply, expected):
        assert parse_tags(reply) == expected

    def test_limit(self):
        assert parse_tags("a, b, c, d, e", limit=2) == ["a", "b"]

    def test_drops_overlong_items(self):
        assert parse_tags("x" * 40 + ", short") == ["short"]

    @pytest.mark.parametrize("reply", ["", None, " , ; ", "#"])
    def test_nothing_usable_raises(self, reply):
        with pytest.raises(ParseError):
            parse_tags(reply)
