"""CSV export of the currently displayed events."""

from __future__ import annotations

from datetime import date
from typing import Sequence

import pandas as pd

from quake_monitor.models import Event

COLUMNS = [
    "ID", "Title", "Date", "Magnitude", "Depth",
    "Latitude", "Longitude", "Closest City", "Distance (km)",
]


def to_csv(events: Sequence[Event]) -> str:
    """Serialize events to comma-delimited text.

    Returns an empty string for no events; callers must treat that as
    "nothing to export" and skip writing a file.
    """
    if not events:
        return ""

    rows = [
        [
            e.earthquake_id,
            e.title,
            e.time.strftime("%Y-%m-%d %H:%M:%S"),
            f"{e.magnitude:.1f}",
            f"{e.depth_km:.1f}",
            f"{e.latitude:.4f}",
            f"{e.longitude:.4f}",
            e.closest_city_name,
            f"{e.closest_city_km:.2f}",
        ]
        for e in events
    ]
    df = pd.DataFrame(rows, columns=COLUMNS)
    return df.to_csv(index=False, lineterminator="\n")


def export_filename(day: date | None = None) -> str:
    day = day or date.today()
    return f"turkish_earthquakes_{day.isoformat()}.csv"
