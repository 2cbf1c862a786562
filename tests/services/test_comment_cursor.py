# tests/services/test_comment_cursor.py
"""Tests for comment cursor encoding and keyset conditions."""

import pytest

from noa_api.services.comment_cursor import (
    PopularCursor,
    TimeCursor,
    build_cursor_conditions,
    decode_comment_cursor,
    encode_comment_cursor,
)

CREATED_AT = "2024-05-01T10:00:00+00:00"


class TestEncode:
    def test_time_cursor_percent_encodes_parts(self):
        cursor = TimeCursor(sort="newest", created_at=CREATED_AT, id="abc")
        assert encode_comment_cursor(cursor) == "newest|2024-05-01T10%3A00%3A00%2B00%3A00|abc"

    def test_popular_cursor_with_null_count(self):
        cursor = PopularCursor(reaction_count=None, created_at=CREATED_AT, id="abc")
        assert encode_comment_cursor(cursor).startswith("popular|null|")

    def test_integral_reaction_count_has_no_fraction(self):
        cursor = PopularCursor(reaction_count=3.0, created_at=CREATED_AT, id="abc")
        assert encode_comment_cursor(cursor).split("|")[1] == "3"

    def test_pipe_inside_id_survives_round_trip(self):
        cursor = TimeCursor(sort="oldest", created_at=CREATED_AT, id="a|b")
        encoded = encode_comment_cursor(cursor)
        assert encoded.count("|") == 2
        assert decode_comment_cursor(encoded) == cursor


class TestDecode:
    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_input(self, value):
        assert decode_comment_cursor(value) is None

    @pytest.mark.parametrize(
        "value",
        [
            "newest|only",
            "sideways|2024|abc",
            "popular|1|2024",
            "popular|many|2024|abc",
            "popular|inf|2024|abc",
            "popular|nan|2024|abc",
            "newest|%E0%A4%A|abc",
            "newest|%ZZ|abc",
            "newest|2024|abc%",
        ],
    )
    def test_invalid_cursors_decode_to_none(self, value):
        assert decode_comment_cursor(value) is None

    def test_popular_cursor_parses_count(self):
        decoded = decode_comment_cursor("popular|2.5|2024-05-01|xyz")
        assert decoded == PopularCursor(reaction_count=2.5, created_at="2024-05-01", id="xyz")

    def test_popular_null_count(self):
        decoded = decode_comment_cursor("popular|null|2024-05-01|xyz")
        assert isinstance(decoded, PopularCursor)
        assert decoded.reaction_count is None

    def test_extra_parts_are_ignored(self):
        decoded = decode_comment_cursor("oldest|2024-05-01|xyz|extra")
        assert decoded == TimeCursor(sort="oldest", created_at="2024-05-01", id="xyz")


class TestConditions:
    def test_no_cursor(self):
        assert build_cursor_conditions("newest", None) == []

    def test_cursor_for_other_sort_is_ignored(self):
        cursor = TimeCursor(sort="oldest", created_at="2024-05-01", id="x")
        assert build_cursor_conditions("newest", cursor) == []

    def test_newest(self):
        cursor = TimeCursor(sort="newest", created_at="2024-05-01", id="x")
        assert build_cursor_conditions("newest", cursor) == [
            "created_at.lt.2024-05-01",
            "and(created_at.eq.2024-05-01,id.lt.x)",
        ]

    def test_oldest(self):
        cursor = TimeCursor(sort="oldest", created_at="2024-05-01", id="x")
        assert build_cursor_conditions("oldest", cursor) == [
            "created_at.gt.2024-05-01",
            "and(created_at.eq.2024-05-01,id.gt.x)",
        ]

    def test_popular_with_count_includes_unreacted_rows(self):
        cursor = PopularCursor(reaction_count=4, created_at="2024-05-01", id="x")
        assert build_cursor_conditions("popular", cursor) == [
            "reaction_count.lt.4",
            "reaction_count.is.null",
            "and(reaction_count.eq.4,created_at.lt.2024-05-01)",
            "and(reaction_count.eq.4,created_at.eq.2024-05-01,id.lt.x)",
        ]

    def test_popular_with_null_count(self):
        cursor = PopularCursor(reaction_count=None, created_at="2024-05-01", id="x")
        assert build_cursor_conditions("popular", cursor) == [
            "and(reaction_count.is.null,created_at.lt.2024-05-01)",
            "and(reaction_count.is.null,created_at.eq.2024-05-01,id.lt.x)",
        ]

    def test_values_with_reserved_characters_are_quoted(self):
        cursor = TimeCursor(sort="newest", created_at="2024-05-01", id="a,b")
        conditions = build_cursor_conditions("newest", cursor)
        assert conditions[1] == 'and(created_at.eq.2024-05-01,id.lt."a,b")'
