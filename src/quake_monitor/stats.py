"""Aggregate statistics over a snapshot of events."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from quake_monitor.models import Event

# (band, lower bound inclusive, upper bound exclusive)
MAGNITUDE_BANDS: tuple[tuple[str, float, float], ...] = (
    ("minor", -math.inf, 3.0),
    ("light", 3.0, 4.0),
    ("moderate", 4.0, 5.0),
    ("strong", 5.0, 6.0),
    ("major", 6.0, math.inf),
)

BAND_LABELS = {
    "minor": "Minor (<3.0)",
    "light": "Light (3.0-3.9)",
    "moderate": "Moderate (4.0-4.9)",
    "strong": "Strong (5.0-5.9)",
    "major": "Major (≥6.0)",
}


@dataclass(frozen=True)
class EventStats:
    total: int
    average_magnitude: float
    average_depth: float
    magnitude_distribution: dict[str, int]
    strongest: Event
    most_recent: Event
    min_magnitude: float
    max_magnitude: float
    min_depth: float
    max_depth: float

    def band_share(self, band: str) -> float:
        """Percentage of events falling into ``band``."""
        return self.magnitude_distribution[band] / self.total * 100


def magnitude_band(magnitude: float) -> str:
    for name, lower, upper in MAGNITUDE_BANDS:
        if lower <= magnitude < upper:
            return name
    # Only NaN gets here; it is filtered before aggregation
    raise ValueError(f"magnitude {magnitude!r} does not fall in any band")


def compute_stats(events: Sequence[Event]) -> Optional[EventStats]:
    """Reduce events to summary statistics in a single pass.

    Returns None for an empty collection so callers can tell "no data" apart
    from zero-valued statistics. Ties for strongest and most recent resolve
    to the earliest element in input order.
    """
    if not events:
        return None

    distribution = {name: 0 for name, _, _ in MAGNITUDE_BANDS}
    mag_sum = 0.0
    depth_sum = 0.0
    first = events[0]
    strongest = most_recent = first
    min_mag = max_mag = first.magnitude
    min_depth = max_depth = first.depth_km

    for event in events:
        mag_sum += event.magnitude
        depth_sum += event.depth_km
        distribution[magnitude_band(event.magnitude)] += 1

        if event.magnitude > strongest.magnitude:
            strongest = event
        if event.time > most_recent.time:
            most_recent = event

        min_mag = min(min_mag, event.magnitude)
        max_mag = max(max_mag, event.magnitude)
        min_depth = min(min_depth, event.depth_km)
        max_depth = max(max_depth, event.depth_km)

    total = len(events)
    return EventStats(
        total=total,
        average_magnitude=mag_sum / total,
        average_depth=depth_sum / total,
        magnitude_distribution=distribution,
        strongest=strongest,
        most_recent=most_recent,
        min_magnitude=min_mag,
        max_magnitude=max_mag,
        min_depth=min_depth,
        max_depth=max_depth,
    )
