"""Parser for the Kandilli Observatory JSON feed."""

from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from quake_monitor.models import (
    Airport,
    City,
    EnvelopeMetadata,
    Event,
    LocationContext,
    ResponseEnvelope,
)
from quake_monitor.parsers.base import EventParser, ValidationError

logger = logging.getLogger(__name__)

# Kandilli reports wall-clock time in Turkey unless the record says otherwise
DEFAULT_TZ = "Europe/Istanbul"


class KandilliJSONParser(EventParser):
    """Parse a Kandilli response envelope → ResponseEnvelope.

    Records that are missing required fields or fail validation are dropped
    and counted, so nothing downstream ever sees an event without a
    magnitude or depth.
    """

    def parse(self, payload: dict) -> ResponseEnvelope:
        records = payload.get("result")
        if records is None:
            records = []
        if not isinstance(records, list):
            raise ValidationError([f"result is {type(records).__name__}, expected list"])

        events: list[Event] = []
        rejected = 0
        for record in records:
            try:
                event = self.parse_record(record)
            except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
                rejected += 1
                logger.warning("Dropping malformed record %s: %s", _record_id(record), exc)
                continue

            errors = self.validate(event)
            if errors:
                rejected += 1
                logger.warning("Dropping invalid event %s: %s", event.id, errors)
                continue
            events.append(event)

        return ResponseEnvelope(
            events=tuple(events),
            metadata=_parse_metadata(payload.get("metadata") or {}),
            rejected=rejected,
        )

    @staticmethod
    def parse_record(record: dict) -> Event:
        """Parse a single event dict from the ``result`` array."""
        record = _require_dict(record, "record")
        magnitude = _require_float(record.get("mag"), "mag")
        depth = _require_float(record.get("depth"), "depth")

        coords = record["geojson"]["coordinates"]
        longitude, latitude = float(coords[0]), float(coords[1])

        tz_name = record.get("location_tz") or DEFAULT_TZ
        raw_time = record.get("date_time") or _dotted_to_iso(record["date"])
        origin_time = _parse_local(raw_time, tz_name)

        props = _require_dict(record.get("location_properties") or {}, "location_properties")
        closest = _parse_city(props.get("closestCity") or {})
        epicenter = _parse_city(props.get("epiCenter") or {})

        return Event(
            id=str(record["_id"]),
            earthquake_id=str(record.get("earthquake_id") or record["_id"]),
            title=record.get("title") or "",
            time=origin_time,
            latitude=latitude,
            longitude=longitude,
            depth_km=depth,
            magnitude=magnitude,
            location=LocationContext(
                closest_city=closest,
                epicenter=epicenter,
                closest_cities=tuple(_parse_city(c) for c in props.get("closestCities") or []),
                airports=tuple(_parse_airport(a) for a in props.get("airports") or []),
            ),
            provider=record.get("provider") or "kandilli",
            location_tz=tz_name,
            created_at=_safe_int(record.get("created_at")),
            rev=record.get("rev"),
        )


def _parse_metadata(meta: dict) -> EnvelopeMetadata:
    return EnvelopeMetadata(
        date_starts=_safe_datetime(meta.get("date_starts")),
        date_ends=_safe_datetime(meta.get("date_ends")),
        total=_safe_int(meta.get("total")) or 0,
    )


def _parse_city(raw: dict) -> City:
    raw = _require_dict(raw, "city")
    return City(
        name=raw.get("name") or "",
        city_code=_safe_int(raw.get("cityCode")),
        distance=_safe_float(raw.get("distance")) or 0.0,
        population=_safe_int(raw.get("population")),
    )


def _parse_airport(raw: dict) -> Airport:
    raw = _require_dict(raw, "airport")
    coords = (raw.get("coordinates") or {}).get("coordinates") or [None, None]
    return Airport(
        name=raw.get("name") or "",
        code=raw.get("code") or "",
        distance=_safe_float(raw.get("distance")) or 0.0,
        latitude=_safe_float(coords[1]) if len(coords) > 1 else None,
        longitude=_safe_float(coords[0]) if coords else None,
    )


def _parse_local(value: str, tz_name: str) -> datetime:
    """Parse a provider timestamp, attaching ``tz_name`` when it is naive."""
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is not None:
        return parsed
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, assuming %s", tz_name, DEFAULT_TZ)
        tz = ZoneInfo(DEFAULT_TZ)
    return parsed.replace(tzinfo=tz)


def _dotted_to_iso(value: str) -> str:
    # "2023.02.06 04:17:32" → "2023-02-06 04:17:32"
    day, _, clock = value.partition(" ")
    return f"{day.replace('.', '-')} {clock}".strip()


def _record_id(record) -> str:
    if isinstance(record, dict):
        return str(record.get("_id") or record.get("earthquake_id") or "?")
    return "?"


def _require_dict(val, name: str) -> dict:
    if not isinstance(val, dict):
        raise ValidationError([f"{name} is {type(val).__name__}, expected object"])
    return val


def _require_float(val, name: str) -> float:
    if val is None or isinstance(val, bool):
        raise ValidationError([f"{name} is missing"])
    try:
        return float(val)
    except (TypeError, ValueError):
        raise ValidationError([f"{name} {val!r} is not numeric"]) from None


def _safe_datetime(val) -> datetime | None:
    if not val:
        return None
    try:
        return _parse_local(str(val), DEFAULT_TZ)
    except ValueError:
        return None


def _safe_float(val) -> float | None:
    if val is None:
        return None
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


def _safe_int(val) -> int | None:
    if val is None:
        return None
    try:
        return int(val)
    except (TypeError, ValueError):
        return None
