"""Tests for the pydeck map layers."""

from __future__ import annotations

import pytest

from quake_monitor.encoding import encode
from quake_monitor.map_layers import (
    MARKER_COLUMNS,
    SELECTED_SCALE,
    TURKEY_CENTER,
    build_deck,
    build_marker_frame,
)


class TestMarkerFrame:
    def test_columns_and_rows(self, make_event):
        df = build_marker_frame([make_event(uid="a"), make_event(uid="b")])
        assert list(df.columns) == MARKER_COLUMNS
        assert len(df) == 2

    def test_empty(self):
        df = build_marker_frame([])
        assert df.empty
        assert list(df.columns) == MARKER_COLUMNS

    def test_selected_event_is_enlarged(self, make_event):
        events = [make_event(uid="a", mag=5.0), make_event(uid="b", mag=5.0)]
        df = build_marker_frame(events, selected_id="b").set_index("id")
        base = encode(events[0]).radius
        assert df.loc["a", "radius"] == base
        assert df.loc["b", "radius"] == pytest.approx(base * SELECTED_SCALE)
        assert bool(df.loc["b", "selected"])

    def test_colour_channels(self, make_event):
        event = make_event(mag=5.0, depth=0.0)
        row = build_marker_frame([event]).iloc[0]
        assert (row["r"], row["g"], row["b"]) == (150, 225, 255)
        assert row["alpha"] == int(encode(event).opacity * 255)


class TestDeck:
    def test_glow_and_marker_layers(self, make_event):
        deck = build_deck([make_event()])
        assert len(deck.layers) == 2

    def test_centres_on_turkey(self, make_event):
        deck = build_deck([make_event()])
        assert deck.initial_view_state.latitude == TURKEY_CENTER[0]
        assert deck.initial_view_state.longitude == TURKEY_CENTER[1]

    def test_centres_on_selection(self, make_event):
        deck = build_deck([make_event(uid="a", lat=38.5, lon=27.1)], selected_id="a")
        assert deck.initial_view_state.latitude == 38.5
        assert deck.initial_view_state.longitude == 27.1
