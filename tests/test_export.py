"""Tests for CSV export."""

from __future__ import annotations

import csv
import io
from datetime import date, datetime, timezone

from quake_monitor.export import COLUMNS, export_filename, to_csv


class TestToCSV:
    def test_empty_is_empty_string(self):
        assert to_csv([]) == ""

    def test_header_and_rows(self, make_event):
        events = [make_event(uid=str(i)) for i in range(4)]
        rows = list(csv.reader(io.StringIO(to_csv(events))))
        assert rows[0] == COLUMNS
        assert len(rows) == 5

    def test_field_formatting(self, make_event):
        event = make_event(
            uid="x", mag=4.44, depth=7.06, lat=37.17571, lon=37.04321,
            city="Gaziantep", distance=59271.0,
            time_utc=datetime(2023, 2, 6, 1, 17, 32, tzinfo=timezone.utc),
        )
        header, row = list(csv.reader(io.StringIO(to_csv([event]))))
        assert row == [
            "kq-x", "MERKEZ-DUZCE", "2023-02-06 01:17:32", "4.4", "7.1",
            "37.1757", "37.0432", "Gaziantep", "59.27",
        ]

    def test_delimiters_in_text_are_quoted(self, make_event):
        event = make_event(title='5 km, "north" of Izmir')
        text = to_csv([event])
        assert '"5 km, ""north"" of Izmir"' in text
        row = list(csv.reader(io.StringIO(text)))[1]
        assert row[1] == '5 km, "north" of Izmir'
        assert len(row) == len(COLUMNS)


def test_export_filename():
    assert export_filename(date(2024, 5, 1)) == "turkish_earthquakes_2024-05-01.csv"
