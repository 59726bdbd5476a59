"""Data models for the Kandilli earthquake feed."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class City:
    """A city ranked by distance from an epicenter."""

    name: str
    city_code: Optional[int] = None
    distance: float = 0.0       # Metres, as reported by the provider
    population: Optional[int] = None


@dataclass(frozen=True)
class Airport:
    name: str
    code: str = ""
    distance: float = 0.0       # Metres
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True)
class LocationContext:
    """Nested location record attached to every event."""

    closest_city: City
    epicenter: City
    closest_cities: tuple[City, ...] = ()
    airports: tuple[Airport, ...] = ()


@dataclass(frozen=True)
class Event:
    """One reported seismic occurrence. Immutable once received."""

    id: str                     # Provider document id ("_id"), unique per snapshot
    earthquake_id: str          # Provider-assigned event id
    title: str

    time: datetime              # Always timezone-aware
    latitude: float
    longitude: float
    depth_km: float             # Kilometers, non-negative
    magnitude: float

    location: LocationContext
    provider: str = "kandilli"
    location_tz: str = "Europe/Istanbul"
    created_at: Optional[int] = None
    rev: Optional[str] = None

    @property
    def closest_city_name(self) -> str:
        return self.location.closest_city.name

    @property
    def closest_city_km(self) -> float:
        return self.location.closest_city.distance / 1000


@dataclass(frozen=True)
class EnvelopeMetadata:
    date_starts: Optional[datetime] = None
    date_ends: Optional[datetime] = None
    total: int = 0


@dataclass(frozen=True)
class ResponseEnvelope:
    """Event list plus provider metadata for one feed request."""

    events: tuple[Event, ...]
    metadata: EnvelopeMetadata = field(default_factory=EnvelopeMetadata)
    rejected: int = 0           # Records dropped by validation

    @property
    def truncated_count(self) -> int:
        """How many events the provider counted but did not return."""
        return max(0, self.metadata.total - len(self.events))
