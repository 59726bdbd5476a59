from __future__ import annotations

from datetime import datetime, timezone

import pytest

from quake_monitor.models import City, Event, LocationContext


def _make_event(uid="evt1", mag=4.0, depth=10.0, time_utc=None, title="MERKEZ-DUZCE",
                city="Duzce", distance=12345.0, lat=40.84, lon=31.16):
    if time_utc is None:
        time_utc = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
    return Event(
        id=uid,
        earthquake_id=f"kq-{uid}",
        title=title,
        time=time_utc,
        latitude=lat,
        longitude=lon,
        depth_km=depth,
        magnitude=mag,
        location=LocationContext(
            closest_city=City(name=city, city_code=81, distance=distance, population=400976),
            epicenter=City(name=city, city_code=81),
        ),
    )


@pytest.fixture
def make_event():
    return _make_event
