"""Tests for the click CLI with the network call stubbed out."""

from __future__ import annotations

from datetime import date

import pytest
from click.testing import CliRunner
from rich.console import Console

from quake_monitor import cli as cli_module
from quake_monitor.cli import cli
from quake_monitor.clients import FetchError
from quake_monitor.export import COLUMNS, export_filename
from quake_monitor.models import EnvelopeMetadata, ResponseEnvelope


@pytest.fixture
def feed(monkeypatch):
    """Replace the network fetch; returns the list of filters it was called with."""
    calls = []
    state = {"envelope": ResponseEnvelope(events=(), metadata=EnvelopeMetadata())}

    async def fake_fetch(filters):
        calls.append(filters)
        if isinstance(state["envelope"], Exception):
            raise state["envelope"]
        return state["envelope"]

    monkeypatch.setattr(cli_module, "_fetch_once", fake_fetch)
    # Wide enough that table cells are not wrapped
    monkeypatch.setattr(cli_module, "console", Console(width=200))

    def set_events(*events, total=None):
        state["envelope"] = ResponseEnvelope(
            events=tuple(events),
            metadata=EnvelopeMetadata(total=len(events) if total is None else total),
        )

    def set_error(exc):
        state["envelope"] = exc

    return calls, set_events, set_error


class TestExport:
    def test_writes_dated_file(self, feed, make_event, tmp_path):
        _, set_events, _ = feed
        set_events(make_event(uid="a"), make_event(uid="b"))
        result = CliRunner().invoke(cli, ["export", "--output-dir", str(tmp_path)])
        assert result.exit_code == 0, result.output
        path = tmp_path / export_filename(date.today())
        assert path.exists()
        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == ",".join(COLUMNS)
        assert len(lines) == 3
        assert "Exported 2 event(s)" in result.output

    def test_empty_feed_writes_nothing(self, feed, tmp_path):
        result = CliRunner().invoke(cli, ["export", "--output-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "No data to export" in result.output
        assert list(tmp_path.iterdir()) == []


class TestQueries:
    def test_filters_are_passed_through(self, feed, make_event):
        calls, set_events, _ = feed
        set_events(make_event())
        result = CliRunner().invoke(cli, [
            "recent", "--min-mag", "3.5", "--start", "2024-03-01", "--end", "2024-03-07",
        ])
        assert result.exit_code == 0, result.output
        filters = calls[0]
        assert filters.magnitude_threshold == 3.5
        assert filters.is_active

    def test_recent_search(self, feed, make_event):
        _, set_events, _ = feed
        set_events(make_event(uid="a", title="MERKEZ-DUZCE"), make_event(uid="b", title="AYVALIK-BALIKESIR"))
        result = CliRunner().invoke(cli, ["recent", "--search", "ayvalik"])
        assert result.exit_code == 0, result.output
        assert "AYVALIK-BALIKESIR" in result.output
        assert "MERKEZ-DUZCE" not in result.output

    def test_stats(self, feed, make_event):
        _, set_events, _ = feed
        set_events(make_event(uid="a", mag=2.0), make_event(uid="b", mag=6.1), total=30)
        result = CliRunner().invoke(cli, ["stats"])
        assert result.exit_code == 0, result.output
        assert "Total events: 2" in result.output
        assert "28 more in full dataset" in result.output
        assert "Minor (<3.0): 1 (50%)" in result.output
        assert "Light (3.0-3.9): 0 (0%)" in result.output

    def test_show_unknown_event(self, feed, make_event):
        _, set_events, _ = feed
        set_events(make_event(uid="a"))
        result = CliRunner().invoke(cli, ["show", "nope"])
        assert result.exit_code != 0
        assert "not found" in result.output

    def test_fetch_failure_is_reported(self, feed):
        _, _, set_error = feed
        set_error(FetchError("kandilli: all 1 attempts failed"))
        result = CliRunner().invoke(cli, ["stats"])
        assert result.exit_code == 1
        assert "Failed to load earthquake data" in result.output


class TestOtherFeeds:
    @pytest.fixture
    def calls(self, monkeypatch, make_event):
        calls = []

        async def fake_fetch_with(method, *args):
            calls.append((method, args))
            return ResponseEnvelope(events=(make_event(uid="a"),), metadata=EnvelopeMetadata(total=1))

        monkeypatch.setattr(cli_module, "_fetch_with", fake_fetch_with)
        monkeypatch.setattr(cli_module, "console", Console(width=200))
        return calls

    def test_city(self, calls):
        result = CliRunner().invoke(cli, ["city", "34", "--min-mag", "2.5"])
        assert result.exit_code == 0, result.output
        method, (code, criteria) = calls[0]
        assert (method, code) == ("fetch_by_city", 34)
        assert criteria.min_mag == 2.5

    def test_city_without_filter(self, calls):
        CliRunner().invoke(cli, ["city", "6"])
        assert calls[0] == ("fetch_by_city", (6, None))

    def test_latest(self, calls):
        result = CliRunner().invoke(cli, ["latest", "--limit", "5"])
        assert result.exit_code == 0, result.output
        assert calls[0] == ("fetch_latest", (5,))

    def test_history(self, calls):
        result = CliRunner().invoke(cli, ["history", "2023", "2"])
        assert result.exit_code == 0, result.output
        assert calls[0] == ("fetch_historical", (2023, 2))
        assert "Total events: 1" in result.output

    def test_history_rejects_bad_month(self, calls):
        result = CliRunner().invoke(cli, ["history", "2023", "13"])
        assert result.exit_code == 2
        assert calls == []
