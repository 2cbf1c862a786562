# tests/services/test_bookmark_stats.py
"""Tests for bookmark stats aggregation and deltas."""

from types import SimpleNamespace

from noa_api.models import BookmarkUserCounter
from noa_api.services.bookmark_stats import (
    build_bookmark_stats,
    combine_stats_deltas,
    compute_stats_delta,
)


def _row(read_state=None, collection_id=None, category=None):
    return SimpleNamespace(read_state=read_state, collection_id=collection_id, category=category)


def test_stats_from_grouped_rows_without_counter():
    stats = build_bookmark_stats(
        status_rows=[("unread", 2), (None, 1), ("read", 3), ("archived", 1)],
        category_rows=[("politics", 4), (None, 3)],
        collection_rows=[("a", "unread", 2), (None, None, 1), ("a", "read", 3)],
    )
    assert stats.total == 7
    assert stats.unread == 3
    assert stats.read_states == {"unread": 3, "read": 3, "unknown": 1}
    assert stats.categories == {"politics": 4}
    assert stats.collections == {"a": 2, "__unassigned__": 1}


def test_counter_row_wins_for_totals_and_collections():
    counter = BookmarkUserCounter(
        user_id="u",
        total_count=10,
        unread_count=4,
        read_count=6,
        collection_unread_counts={"a": 4},
    )
    stats = build_bookmark_stats(
        status_rows=[("unread", 1)],
        collection_rows=[("b", "unread", 1)],
        counter_row=counter,
    )
    assert stats.total == 10
    assert stats.unread == 4
    assert stats.collections == {"a": 4}


def test_counter_without_collection_counts_falls_back_to_rows():
    counter = BookmarkUserCounter(user_id="u", total_count=1, unread_count=1, collection_unread_counts={})
    stats = build_bookmark_stats(collection_rows=[("b", "in_progress", 1)], counter_row=counter)
    assert stats.collections == {"b": 1}


def test_insert_delta():
    delta = compute_stats_delta(next=_row("unread", "a", "sport"))
    assert delta.total == 1
    assert delta.unread == 1
    assert delta.categories == {"sport": 1}
    assert delta.collections == {"a": 1}
    assert delta.read_states["unread"] == 1


def test_update_delta_cancels_unchanged_keys():
    delta = compute_stats_delta(previous=_row("unread", "a", "sport"), next=_row("read", "a", "sport"))
    assert delta.total == 0
    assert delta.unread == -1
    assert delta.categories == {}
    assert delta.collections == {"a": -1}
    assert delta.read_states == {"unread": -1, "in_progress": 0, "read": 1, "unknown": 0}


def test_combine_removal_deltas():
    combined = combine_stats_deltas(
        [compute_stats_delta(previous=_row("unread", "a")), compute_stats_delta(previous=_row("read", "a"))]
    )
    assert combined.total == -2
    assert combined.unread == -1
    assert combined.collections == {"a": -1}
