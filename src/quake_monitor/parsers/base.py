"""Abstract base parser with validation logic."""

from __future__ import annotations

import abc
import math

from quake_monitor.models import Event, ResponseEnvelope


class ValidationError(Exception):
    """Raised when an event fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")


class EventParser(abc.ABC):
    """Abstract parser that converts a provider response → ResponseEnvelope."""

    @abc.abstractmethod
    def parse(self, payload: dict) -> ResponseEnvelope:
        """Parse a decoded provider response.

        Args:
            payload: The decoded JSON body.

        Returns:
            ResponseEnvelope holding only events that passed validation.
        """

    @staticmethod
    def validate(event: Event) -> list[str]:
        """Validate an Event. Returns list of error messages (empty = valid)."""
        errors: list[str] = []

        if not math.isfinite(event.magnitude):
            errors.append(f"magnitude {event.magnitude} is not a finite number")

        if not math.isfinite(event.depth_km):
            errors.append(f"depth_km {event.depth_km} is not a finite number")
        elif event.depth_km < 0:
            errors.append(f"depth_km {event.depth_km} is negative")

        if not -90 <= event.latitude <= 90:
            errors.append(f"latitude {event.latitude} out of range [-90, 90]")

        if not -180 <= event.longitude <= 180:
            errors.append(f"longitude {event.longitude} out of range [-180, 180]")

        if event.time.tzinfo is None:
            errors.append("time is not timezone-aware")

        if not event.id:
            errors.append("id is empty")
        if not event.earthquake_id:
            errors.append("earthquake_id is empty")

        return errors

    @staticmethod
    def is_presentable(event: Event) -> bool:
        """True when magnitude and depth are usable by stats and encoding."""
        return math.isfinite(event.magnitude) and math.isfinite(event.depth_km)
