"""Filter model: UI filter state → provider query."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Literal, Optional

from quake_monitor.models import Event

# Locale-independent wire format for date bounds
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LIVE = "live"
FILTERED = "filtered"


@dataclass(frozen=True)
class FilterCriteria:
    """Normalized query restrictions for the filtered feed."""

    min_mag: Optional[float] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def has_magnitude(self) -> bool:
        return self.min_mag is not None and self.min_mag > 0

    @property
    def has_window(self) -> bool:
        # A window with a single bound is no window at all
        return self.start is not None and self.end is not None

    @property
    def is_active(self) -> bool:
        return self.has_magnitude or self.has_window

    def to_params(self) -> dict[str, str]:
        """Query parameters holding only the active restrictions."""
        params: dict[str, str] = {}
        if self.has_magnitude:
            params["min_mag"] = f"{self.min_mag:g}"
        if self.has_window:
            params["start_date"] = self.start.strftime(DATE_FORMAT)
            params["end_date"] = self.end.strftime(DATE_FORMAT)
        return params


@dataclass(frozen=True)
class FilterState:
    """What the user selected: a magnitude threshold and an optional date pair."""

    magnitude_threshold: float = 0.0
    date_range: Optional[tuple[Optional[datetime], Optional[datetime]]] = None

    @property
    def is_active(self) -> bool:
        return to_criteria(self).is_active


@dataclass(frozen=True)
class FeedQuery:
    path: Literal["live", "filtered"]
    criteria: Optional[FilterCriteria] = None

    @property
    def is_filtered(self) -> bool:
        return self.path == FILTERED

    def params(self) -> dict[str, str]:
        return self.criteria.to_params() if self.criteria else {}


def to_criteria(state: FilterState) -> FilterCriteria:
    """Keep only the active fields of ``state``."""
    min_mag = state.magnitude_threshold if state.magnitude_threshold > 0 else None
    start = end = None
    if state.date_range is not None:
        lo, hi = state.date_range
        if lo is not None and hi is not None:
            start, end = lo, hi
    return FilterCriteria(min_mag=min_mag, start=start, end=end)


def build_query(state: FilterState | None) -> FeedQuery:
    """Route to the filtered feed when any filter is active, else the live feed."""
    if state is None:
        return FeedQuery(path=LIVE)
    criteria = to_criteria(state)
    if criteria.is_active:
        return FeedQuery(path=FILTERED, criteria=criteria)
    return FeedQuery(path=LIVE)


def search_events(
    events: Iterable[Event],
    text: str,
    field: Literal["title", "closest_city"] = "title",
) -> list[Event]:
    """Case-insensitive substring search over one text column."""
    needle = text.strip().lower()
    if not needle:
        return list(events)
    if field == "closest_city":
        return [e for e in events if needle in e.closest_city_name.lower()]
    return [e for e in events if needle in e.title.lower()]
