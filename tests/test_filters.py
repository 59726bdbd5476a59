"""Tests for the filter model."""

from __future__ import annotations

from datetime import datetime

from quake_monitor.filters import (
    FILTERED,
    LIVE,
    FilterCriteria,
    FilterState,
    build_query,
    search_events,
)

START = datetime(2024, 3, 1, 0, 0, 0)
END = datetime(2024, 3, 7, 23, 59, 59)


class TestBuildQuery:
    def test_default_is_live(self):
        query = build_query(FilterState())
        assert query.path == LIVE
        assert query.params() == {}

    def test_none_is_live(self):
        assert build_query(None).path == LIVE

    def test_magnitude_only(self):
        query = build_query(FilterState(magnitude_threshold=3.5))
        assert query.path == FILTERED
        assert query.params() == {"min_mag": "3.5"}

    def test_zero_magnitude_is_omitted(self):
        query = build_query(FilterState(magnitude_threshold=0.0, date_range=(START, END)))
        assert query.path == FILTERED
        assert "min_mag" not in query.params()

    def test_negative_threshold_is_live(self):
        assert build_query(FilterState(magnitude_threshold=-1.0)).path == LIVE

    def test_complete_window(self):
        query = build_query(FilterState(date_range=(START, END)))
        assert query.path == FILTERED
        assert query.params() == {
            "start_date": "2024-03-01 00:00:00",
            "end_date": "2024-03-07 23:59:59",
        }

    def test_single_bound_is_no_window(self):
        assert build_query(FilterState(date_range=(START, None))).path == LIVE
        assert build_query(FilterState(date_range=(None, END))).path == LIVE

    def test_single_bound_with_magnitude(self):
        query = build_query(FilterState(magnitude_threshold=4.0, date_range=(START, None)))
        assert query.params() == {"min_mag": "4"}

    def test_queries_compare_by_value(self):
        a = build_query(FilterState(magnitude_threshold=2.0))
        b = build_query(FilterState(magnitude_threshold=2.0))
        assert a == b
        assert a != build_query(FilterState())


class TestFilterCriteria:
    def test_inactive(self):
        criteria = FilterCriteria(min_mag=0)
        assert not criteria.is_active
        assert criteria.to_params() == {}

    def test_window_requires_both(self):
        assert not FilterCriteria(start=START).has_window
        assert FilterCriteria(start=START, end=END).has_window

    def test_state_is_active(self):
        assert FilterState(magnitude_threshold=1.0).is_active
        assert not FilterState(date_range=(START, None)).is_active


class TestSearch:
    def test_title_search_is_case_insensitive(self, make_event):
        events = [make_event(uid="a", title="MERKEZ-DUZCE"), make_event(uid="b", title="SINDIRGI-BALIKESIR")]
        assert [e.id for e in search_events(events, "duzce")] == ["a"]

    def test_city_search(self, make_event):
        events = [make_event(uid="a", city="Izmir"), make_event(uid="b", city="Manisa")]
        assert [e.id for e in search_events(events, "MAN", "closest_city")] == ["b"]

    def test_blank_search_returns_all(self, make_event):
        events = [make_event(uid="a"), make_event(uid="b")]
        assert len(search_events(events, "  ")) == 2
